import json

import pytest

from rigadvisor.config import EngineSettings, load_settings


def test_defaults_without_override(monkeypatch):
    monkeypatch.delenv("RIGADVISOR_SETTINGS_PATH", raising=False)
    monkeypatch.delenv("ROI_DEFAULT_TIMEFRAME_MONTHS", raising=False)
    assert load_settings() == EngineSettings()


def test_json_override_is_deep_merged(tmp_path, monkeypatch):
    monkeypatch.delenv("ROI_DEFAULT_TIMEFRAME_MONTHS", raising=False)
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"compatibility": {"socket_penalty": 40}, "roi": {"risk_factor": 0.5}}))
    settings = load_settings(path)
    assert settings.compatibility.socket_penalty == 40
    assert settings.compatibility.memory_penalty == 25
    assert settings.roi.risk_factor == 0.5


def test_settings_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"scoring": {"default_performance": 40}}))
    monkeypatch.setenv("RIGADVISOR_SETTINGS_PATH", str(path))
    assert load_settings().scoring.default_performance == 40


def test_missing_settings_file_fails_fast(tmp_path):
    with pytest.raises(RuntimeError):
        load_settings(tmp_path / "missing.json")


def test_roi_timeframe_from_environment(monkeypatch):
    monkeypatch.delenv("RIGADVISOR_SETTINGS_PATH", raising=False)
    monkeypatch.setenv("ROI_DEFAULT_TIMEFRAME_MONTHS", "36")
    assert load_settings().roi.default_timeframe_months == 36
    monkeypatch.setenv("ROI_DEFAULT_TIMEFRAME_MONTHS", "soon")
    assert load_settings().roi.default_timeframe_months == 24
