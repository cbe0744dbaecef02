import asyncio
from pathlib import Path

from app.utils.config_store import ConfigStore
from domains.pdf_compression.controller import IngestionController
from domains.pdf_compression.relocator import FileRelocator
from scripts.pdf_watch import parse_args, run


def test_parse_args_defaults_and_overrides(tmp_path):
    args = parse_args(["--source", str(tmp_path), "--dest", "out", "--gs", "/opt/gs"])

    assert args.source == tmp_path
    assert args.dest == Path("out")
    assert args.gs == "/opt/gs"
    assert args.config is None


def test_run_returns_error_code_when_start_fails(tmp_path):
    store = ConfigStore(tmp_path / "config.json")
    store.save({"source_path": str(tmp_path / "missing"), "dest_path": str(tmp_path / "out")})
    controller = IngestionController(
        store,
        orchestrator=None,
        relocator=FileRelocator(),
        monitor_factory=lambda root: None,
        ghostscript_command="gs",
    )

    assert asyncio.run(run(controller)) == 1
