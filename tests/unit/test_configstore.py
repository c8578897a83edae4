"""Tests for the JSON-file configstore."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from cloudapi_mcp.core.configstore import ConfigStore, get_configstore_path


def test_set_get(tmp_path: Path):
    store = ConfigStore(tmp_path / "nested" / "store.json")

    assert store.get("missing") is None
    assert store.get("missing", "default") == "default"

    store.set("key", {"a": 1})
    assert store.get("key") == {"a": 1}
    assert store.path.exists()


def test_update_applies_mutation(tmp_path: Path):
    store = ConfigStore(tmp_path / "store.json")
    store.set("counter", 1)

    assert store.update("counter", lambda value: value + 1) == 2
    assert store.update("fresh", lambda value: [value]) == [None]
    assert store.get("counter") == 2


def test_update_returning_none_removes_key(tmp_path: Path):
    store = ConfigStore(tmp_path / "store.json")
    store.set("key", 1)
    store.set("other", 2)

    store.update("key", lambda value: None)

    assert json.loads(store.path.read_text()) == {"other": 2}


def test_update_reads_inside_lock(tmp_path: Path, monkeypatch):
    path = tmp_path / "store.json"
    store = ConfigStore(path)
    other = ConfigStore(path)
    real_lock = store._lock

    def lock_after_other_writer():
        # Another process commits its write just before this one gets the lock
        other.update("cache", lambda value: {**(value or {}), "p2": True})
        return real_lock()

    monkeypatch.setattr(store, "_lock", lock_after_other_writer)

    store.update("cache", lambda value: {**(value or {}), "p1": True})

    assert ConfigStore(path).get("cache") == {"p1": True, "p2": True}


def test_failed_write_leaves_previous_file(tmp_path: Path):
    path = tmp_path / "store.json"
    store = ConfigStore(path)
    store.set("key", 1)

    with patch("cloudapi_mcp.core.configstore.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError, match="disk full"):
            store.set("key", 2)

    assert ConfigStore(path).get("key") == 1
    assert [p.name for p in tmp_path.iterdir() if p.suffix == ".tmp"] == []


def test_writes_visible_to_other_instances(tmp_path: Path):
    path = tmp_path / "store.json"
    ConfigStore(path).set("shared", True)

    assert ConfigStore(path).get("shared") is True


def test_unreadable_file_treated_as_empty(tmp_path: Path, caplog):
    path = tmp_path / "store.json"
    path.write_text("{not json")

    with caplog.at_level(logging.WARNING, logger="cloudapi_mcp.core.configstore"):
        store = ConfigStore(path)
        assert store.get("key") is None

    assert any("Ignoring unreadable configstore" in r.getMessage() for r in caplog.records)

    store.set("key", 1)
    assert store.get("key") == 1


def test_non_dict_file_treated_as_empty(tmp_path: Path):
    path = tmp_path / "store.json"
    path.write_text("[1, 2]")

    assert ConfigStore(path).get("key", "default") == "default"


def test_path_from_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("CLOUDAPI_MCP_CONFIGSTORE_PATH", str(tmp_path / "custom.json"))

    assert get_configstore_path() == tmp_path / "custom.json"
    assert ConfigStore().path == tmp_path / "custom.json"


def test_default_path(monkeypatch):
    monkeypatch.delenv("CLOUDAPI_MCP_CONFIGSTORE_PATH", raising=False)

    assert get_configstore_path() == Path.home() / ".cloudapi-mcp" / "configstore.json"
