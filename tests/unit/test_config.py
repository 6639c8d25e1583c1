# tests/unit/test_config.py
import json

import pytest
from pydantic import ValidationError

from sdk.config import AppConfig, DistanceConfig, build_sup_distances, load_app_config


def test_default_catalog():
    cfg = AppConfig()
    assert list(cfg.sports) == ["cycling", "sup"]
    assert cfg.find_distance("cycling-5k").total_laps == 12.5
    assert cfg.find_distance("cycling-10k").total_laps == 25
    assert [d.total_laps for d in cfg.distances_for("sup")] == [1, 2]
    assert cfg.event_types == ["Practice", "Area Games", "Regional Games", "State Games"]
    assert cfg.sport_label("sup") == "Stand-Up Paddleboarding (SUP)"


def test_sup_distances_labels():
    labels = [d.label for d in build_sup_distances(3)]
    assert labels == ["1 lap", "2 laps", "3 laps"]
    assert build_sup_distances(3)[2].id == "sup-3lap"


def test_unknown_distance_falls_back_to_first():
    cfg = AppConfig()
    assert cfg.find_distance("marathon").id == "cycling-5k"


def test_distance_rejects_non_positive_laps():
    with pytest.raises(ValidationError):
        DistanceConfig(id="x", label="x", total_laps=0)


def test_load_from_env_file(monkeypatch, tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"event_types": ["Club night"], "tick_hz": 4}), encoding="utf-8")
    monkeypatch.setenv("COACHTIMER_CONFIG", str(path))
    cfg = load_app_config()
    assert cfg.event_types == ["Club night"]
    assert cfg.tick_hz == 4
    assert "cycling" in cfg.sports


def test_bad_config_yields_defaults(monkeypatch, tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_app_config(path) == AppConfig()
    assert load_app_config(tmp_path / "missing.json") == AppConfig()
    monkeypatch.delenv("COACHTIMER_CONFIG", raising=False)
    assert load_app_config() == AppConfig()
