import json
from pathlib import Path

import pytest

from flowcanvas.config import DB_FILENAME, EditorSettings, get_settings, load_config, save_config
from flowcanvas.paths import ensure_data_dir


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FLOWCANVAS_DATA_DIR", "FLOWCANVAS_DB_PATH", "FLOWCANVAS_DISABLE_SQLITE", "FLOWCANVAS_TRIGGERS_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults(tmp_path):
    settings = get_settings(tmp_path / "missing.json")
    assert settings.use_sqlite is True
    assert settings.db_path == settings.data_dir / DB_FILENAME
    assert settings.zoom_levels == [0.5, 0.75, 1.0, 1.5]
    assert (settings.min_scale, settings.max_scale) == (0.25, 1.5)
    assert settings.drag_threshold == 4.0


def test_config_file_values(tmp_path):
    config_path = tmp_path / "config.json"
    save_config({"data_dir": str(tmp_path / "d"), "use_sqlite": False, "zoom_levels": [1.0, 0.5]}, config_path)
    settings = get_settings(config_path)
    assert settings.data_dir == tmp_path / "d"
    assert settings.use_sqlite is False
    assert settings.zoom_levels == [0.5, 1.0]


def test_environment_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.json"
    save_config({"data_dir": str(tmp_path / "from-file"), "use_sqlite": True}, config_path)
    monkeypatch.setenv("FLOWCANVAS_DATA_DIR", str(tmp_path / "from-env"))
    monkeypatch.setenv("FLOWCANVAS_DISABLE_SQLITE", "1")
    monkeypatch.setenv("FLOWCANVAS_TRIGGERS_FILE", str(tmp_path / "triggers.yaml"))
    settings = get_settings(config_path)
    assert settings.data_dir == tmp_path / "from-env"
    assert settings.use_sqlite is False
    assert settings.triggers_file == tmp_path / "triggers.yaml"


def test_explicit_db_path(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWCANVAS_DB_PATH", str(tmp_path / "elsewhere.sqlite3"))
    settings = get_settings(tmp_path / "missing.json")
    assert settings.db_path == Path(tmp_path / "elsewhere.sqlite3")


def test_corrupt_config_is_ignored(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text("{broken", encoding="utf-8")
    assert load_config(config_path) == {}
    assert get_settings(config_path).use_sqlite is True


def test_invalid_scale_bounds():
    with pytest.raises(ValueError):
        EditorSettings(min_scale=2.0, max_scale=1.0)


def test_save_config_round_trip(tmp_path):
    config_path = tmp_path / "config.json"
    save_config({"drag_threshold": 6}, config_path)
    assert json.loads(config_path.read_text(encoding="utf-8")) == {"drag_threshold": 6}
    assert get_settings(config_path).drag_threshold == 6


def test_ensure_data_dir_creates_parents(tmp_path):
    target = tmp_path / "a" / "b"
    assert ensure_data_dir(target) == target
    assert target.is_dir()
