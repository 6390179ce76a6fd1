from zoneinfo import ZoneInfo

import pytest

from icecal.config import load_config


def test_defaults_when_config_file_is_missing(tmp_path):
    cfg = load_config(str(tmp_path / "missing.yaml"))

    assert cfg.timezone == "Europe/Copenhagen"
    assert cfg.tz == ZoneInfo("Europe/Copenhagen")
    assert cfg.calendar.name == "Affaldskalender"
    assert cfg.server.port == 8787


def test_values_from_yaml(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        """
        timezone: 'Europe/Berlin'
        calendar:
          name: 'Husstand'
          description: 'Tømninger'
        storage:
          path: '/tmp/icecal/events.json'
        server:
          port: 9000
        """,
        encoding="utf-8",
    )

    cfg = load_config(str(cfg_path))

    assert cfg.timezone == "Europe/Berlin"
    assert cfg.calendar.name == "Husstand"
    assert cfg.calendar.description == "Tømninger"
    assert cfg.storage.path == "/tmp/icecal/events.json"
    assert cfg.server.port == 9000
    assert cfg.server.host == "127.0.0.1"


def test_environment_overrides_file(tmp_path, monkeypatch):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("calendar:\n  name: 'Fra fil'\n", encoding="utf-8")
    monkeypatch.setenv("ICECAL_CALENDAR_NAME", "Fra miljø")
    monkeypatch.setenv("ICECAL_STORE_PATH", str(tmp_path / "events.json"))

    cfg = load_config(str(cfg_path))

    assert cfg.calendar.name == "Fra miljø"
    assert cfg.storage.path == str(tmp_path / "events.json")


def test_non_mapping_config_is_rejected(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(cfg_path))
