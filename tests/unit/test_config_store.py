import json

from loguru import logger

from app.utils.config_store import ConfigStore
from app.utils.log_store import LogStore


def test_missing_file_uses_defaults(tmp_path):
    store = ConfigStore(tmp_path / "config.json")
    config = store.get()

    assert config.source_path == ""
    assert config.manual_gs_path is None
    assert config.policy.pdf_settings == "/screen"
    assert config.policy.color_image_resolution == 115


def test_save_merges_and_persists(tmp_path):
    path = tmp_path / "config.json"
    store = ConfigStore(path)

    assert store.save({"source_path": "/in", "dest_path": "/out"})
    assert store.save({"policy": {"gray_image_resolution": 90}})
    assert store.save({"policy": {"downsample_method": "subsample"}})

    reloaded = ConfigStore(path).get()
    assert reloaded.source_path == "/in"
    assert reloaded.dest_path == "/out"
    assert reloaded.policy.gray_image_resolution == 90
    assert reloaded.policy.downsample_method == "subsample"
    assert reloaded.policy.color_image_resolution == 115


def test_invalid_save_keeps_previous_config(tmp_path):
    path = tmp_path / "config.json"
    store = ConfigStore(path)
    store.save({"source_path": "/in"})
    before = path.read_text()

    assert not store.save({"policy": {"color_image_resolution": -1}})
    assert not store.save({"policy": {"unknown_flag": True}})

    assert store.get().policy.color_image_resolution == 115
    assert path.read_text() == before


def test_snapshot_is_not_affected_by_later_saves(tmp_path):
    store = ConfigStore(tmp_path / "config.json")
    snapshot = store.get()

    store.save({"dest_path": "/elsewhere"})

    assert snapshot.dest_path == ""
    assert store.get().dest_path == "/elsewhere"


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    assert ConfigStore(path).get().dest_path == ""


def test_file_written_as_json(tmp_path):
    path = tmp_path / "config.json"
    ConfigStore(path).save({"manual_gs_path": "/opt/gs/bin/gs"})

    data = json.loads(path.read_text())
    assert data["manual_gs_path"] == "/opt/gs/bin/gs"
    assert data["policy"]["compress_pages"] is True


def test_validate_reports_path_problems(tmp_path):
    store = ConfigStore(tmp_path / "config.json")
    assert store.validate() == ["Source path is not defined", "Destination path is not defined"]

    store.save({"source_path": str(tmp_path / "nope"), "dest_path": str(tmp_path / "out")})
    assert store.validate() == [f"Source path does not exist: {tmp_path / 'nope'}"]

    store.save({"source_path": str(tmp_path)})
    assert store.validate() == []


def test_validate_rejects_destination_equal_to_source(tmp_path):
    store = ConfigStore(tmp_path / "config.json")
    inbox = tmp_path / "inbox"
    inbox.mkdir()

    store.save({"source_path": str(inbox), "dest_path": str(inbox / ".." / "inbox")})
    assert store.validate() == ["Destination path must differ from source path"]

    store.save({"dest_path": str(inbox / "compressed")})
    assert store.validate() == []


def test_log_store_keeps_newest_entries_first():
    store = LogStore(max_entries=3)
    store.install()
    try:
        for i in range(5):
            store.record(f"message {i}", "info")
        store.record("compressed", "success")
        logger.debug("below the buffer level")
    finally:
        store.uninstall()

    entries = store.entries()
    assert [e["message"] for e in entries] == ["compressed", "message 4", "message 3"]
    assert entries[0]["type"] == "success"


def test_log_store_clear():
    store = LogStore()
    store.install()
    try:
        store.record("something failed", "error")
        store.clear()
    finally:
        store.uninstall()

    assert [e["message"] for e in store.entries()] == ["Logs cleared"]
