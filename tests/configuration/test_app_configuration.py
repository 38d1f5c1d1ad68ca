from pathlib import Path

import pytest

from modledger.configuration.app_configuration import DEFAULT_HISTORY_COLORS, AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(
        "database:\n"
        "  path: ./somewhere/cases.db\n"
        "history:\n"
        "  colors: [0x000001, 2, '0x3']\n"
        "mute_scheduler:\n"
        "  enabled: false\n"
        "  catch_up_seconds: 120\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.database_path.name == "cases.db"
    assert config.history_colors == [1, 2, 3]
    assert config.mute_scheduler_enabled is False
    assert config.mute_catch_up_seconds == 120


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.database_path.name == "modledger.db"
    assert config.history_colors == DEFAULT_HISTORY_COLORS
    assert config.mute_scheduler_enabled is True
    assert config.mute_catch_up_seconds == 86400


def test_app_config_malformed_yaml_falls_back(config_path: Path) -> None:
    config_path.write_text("history: [unclosed", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.history_colors == DEFAULT_HISTORY_COLORS


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    assert AppConfig(config_path).data == {}


def test_invalid_history_colours_use_defaults(config_path: Path) -> None:
    config_path.write_text("history:\n  colors: [red, green]\n", encoding="utf-8")
    assert AppConfig(config_path).history_colors == DEFAULT_HISTORY_COLORS


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("mute_scheduler:\n  enabled: true\n", encoding="utf-8")
    config = AppConfig(config_path)
    assert config.mute_scheduler_enabled is True

    config_path.write_text("mute_scheduler:\n  enabled: false\n", encoding="utf-8")
    config.reload()

    assert config.mute_scheduler_enabled is False
    assert config.get("mute_scheduler") == {"enabled": False}
