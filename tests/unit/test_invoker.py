import asyncio
import shutil
import sys

from domains.pdf_compression.invoker import (
    GhostscriptInvoker,
    detect_ghostscript,
    is_available,
    resolve_command,
)
from domains.pdf_compression.models import ProfileKind


def _invoke(invoker, command, args, output_path):
    return asyncio.run(
        invoker.invoke(command, args, output_path=output_path, profile=ProfileKind.STANDARD)
    )


def test_successful_run_reports_output_size(tmp_path):
    output = tmp_path / "out.pdf"
    script = f"open({str(output)!r}, 'wb').write(b'x' * 1234)"

    result = _invoke(GhostscriptInvoker(handle_release_delay=0), sys.executable, ["-c", script], output)

    assert result.success
    assert result.size == 1234
    assert result.profile is ProfileKind.STANDARD
    assert result.error is None


def test_nonzero_exit_includes_diagnostics(tmp_path):
    script = "import sys; sys.stderr.write('Unrecoverable error'); sys.exit(3)"

    result = _invoke(GhostscriptInvoker(handle_release_delay=0), sys.executable, ["-c", script], tmp_path / "out.pdf")

    assert not result.success
    assert "code 3" in result.error
    assert "Unrecoverable error" in result.error


def test_missing_executable_is_a_failed_attempt(tmp_path):
    result = _invoke(GhostscriptInvoker(), str(tmp_path / "no-such-gs"), ["-dBATCH"], tmp_path / "out.pdf")

    assert not result.success
    assert "Failed to start" in result.error


def test_clean_exit_without_output_is_a_failure(tmp_path):
    result = _invoke(GhostscriptInvoker(handle_release_delay=0), sys.executable, ["-c", "pass"], tmp_path / "out.pdf")

    assert not result.success
    assert "unreadable" in result.error


def test_file_names_are_not_shell_interpreted(tmp_path):
    output = tmp_path / "out; rm -rf x.pdf"
    script = "import sys; open(sys.argv[1], 'wb').write(b'ok')"

    result = _invoke(GhostscriptInvoker(handle_release_delay=0), sys.executable, ["-c", script, str(output)], output)

    assert result.success
    assert output.read_bytes() == b"ok"


def test_timeout_is_a_failed_attempt(tmp_path):
    invoker = GhostscriptInvoker(handle_release_delay=0, timeout=0.5)

    result = _invoke(invoker, sys.executable, ["-c", "import time; time.sleep(5)"], tmp_path / "out.pdf")

    assert not result.success
    assert "timed out" in result.error


def test_detect_prefers_known_location(tmp_path):
    fake_gs = tmp_path / "gswin64c.exe"
    fake_gs.write_text("")

    assert detect_ghostscript([str(tmp_path / "missing"), str(fake_gs)]) == str(fake_gs)


def test_detect_falls_back_to_bare_name(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    assert detect_ghostscript([]) == "gs"


def test_detect_uses_path_lookup(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: "/opt/bin/gswin64c" if name == "gswin64c" else None)
    assert detect_ghostscript([]) == "/opt/bin/gswin64c"


def test_resolve_command_prefers_manual_override():
    assert resolve_command("/custom/gs", "gs") == "/custom/gs"
    assert resolve_command(None, "/usr/bin/gs") == "/usr/bin/gs"
    assert resolve_command("", "/usr/bin/gs") == "/usr/bin/gs"


def test_is_available(tmp_path):
    assert is_available(sys.executable)
    assert not is_available(str(tmp_path / "missing-binary"))
