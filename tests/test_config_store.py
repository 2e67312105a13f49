import json
from pathlib import Path

import pytest

from src.config_store import ConfigError, ConfigStore

from .conftest import BALKANS, UK, config_dict


def test_load_parses_channels(store: ConfigStore):
    cfg = store.config
    assert [ch.id for ch in cfg.submit_channels] == [BALKANS, UK]
    assert cfg.channel(int(BALKANS)).bounds.lat.max == 50
    assert cfg.channel(UK).sheet == "United Kingdom"
    assert cfg.channel("nope") is None
    assert cfg.current_round == 3


def test_update_baselines_rewrites_only_given_channels(store: ConfigStore, config_path: Path):
    store.update_baselines({BALKANS: 17})

    data = json.loads(config_path.read_text(encoding="utf-8"))
    by_id = {ch["id"]: ch for ch in data["submit_channels"]}
    assert by_id[BALKANS]["base_id"] == 17
    assert by_id[UK]["base_id"] == 424
    # unknown keys survive the rewrite
    assert by_id[BALKANS]["static_base_id"] == 0
    assert data["spreadsheet_id"] == "sheet-123"
    assert store.config.channel(BALKANS).base_id == 17
    assert not Path(str(config_path) + ".tmp").exists()


def test_numeric_ids_are_read_as_strings(tmp_path: Path):
    raw = config_dict()
    raw["submit_channels"][0]["id"] = 1266141785743425587
    raw["log_channel"] = 42
    p = tmp_path / "config.json"
    p.write_text(json.dumps(raw), encoding="utf-8")

    cfg = ConfigStore(str(p)).load()
    assert cfg.submit_channels[0].id == "1266141785743425587"
    assert cfg.log_channel == "42"


def test_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        ConfigStore(str(tmp_path / "missing.json")).load()


def test_invalid_json(tmp_path: Path):
    p = tmp_path / "config.json"
    p.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigStore(str(p)).load()


def test_inverted_bounds_are_rejected(tmp_path: Path):
    raw = config_dict()
    raw["submit_channels"][0]["bounds"]["lat"] = {"min": 50, "max": 40}
    p = tmp_path / "config.json"
    p.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigStore(str(p)).load()


def test_duplicate_channel_ids_are_rejected(tmp_path: Path):
    raw = config_dict()
    raw["submit_channels"][1]["id"] = BALKANS
    p = tmp_path / "config.json"
    p.write_text(json.dumps(raw), encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigStore(str(p)).load()


def test_blank_channel_keys_survive_a_rewrite(tmp_path: Path):
    raw = config_dict()
    raw["rejudge_channel"] = ""
    del raw["log_channel"]
    p = tmp_path / "config.json"
    p.write_text(json.dumps(raw), encoding="utf-8")

    store = ConfigStore(str(p))
    assert store.load().rejudge_channel is None
    store.update_baselines({BALKANS: 5})

    data = json.loads(p.read_text(encoding="utf-8"))
    assert data["rejudge_channel"] == ""
    assert "log_channel" not in data
