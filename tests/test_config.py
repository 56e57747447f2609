from __future__ import annotations

from pathlib import Path

import pytest

from helloworld.config import DEFAULT_MONGODB_URI, Settings, load_settings, resolve_config_path


def test_defaults_apply_without_environment() -> None:
    settings = load_settings({})

    assert settings.port == 3000
    assert settings.host == "0.0.0.0"
    assert settings.mongodb_uri == DEFAULT_MONGODB_URI
    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.log_file is None
    assert settings.cors_origins == ("*",)


def test_environment_variables_override_defaults() -> None:
    settings = load_settings(
        {
            "PORT": "8080",
            "MONGODB_URI": "mongodb://db.internal:27017/users",
            "APP_ENV": "production",
            "LOG_LEVEL": "warning",
            "CORS_ORIGINS": "https://a.example, https://b.example",
        }
    )

    assert settings.port == 8080
    assert settings.mongodb_uri == "mongodb://db.internal:27017/users"
    assert settings.environment == "production"
    assert settings.log_level == "WARNING"
    assert settings.cors_origins == ("https://a.example", "https://b.example")


def test_node_env_sets_environment_when_app_env_is_absent() -> None:
    assert load_settings({"NODE_ENV": "staging"}).environment == "staging"
    assert load_settings({"NODE_ENV": "staging", "APP_ENV": ""}).environment == "staging"
    assert load_settings({"NODE_ENV": "staging", "APP_ENV": "production"}).environment == "production"


def test_empty_environment_values_are_ignored() -> None:
    settings = load_settings({"PORT": "", "APP_ENV": "  "})

    assert settings.port == 3000
    assert settings.environment == "development"


@pytest.mark.parametrize("value", ["abc", "0", "70000"])
def test_invalid_port_is_rejected(value: str) -> None:
    with pytest.raises(ValueError, match="port"):
        load_settings({"PORT": value})


def test_unknown_log_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="log_level"):
        load_settings({"LOG_LEVEL": "chatty"})


def test_yaml_file_is_loaded_and_environment_wins(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text(
        "port: 4000\n"
        "environment: staging\n"
        "log_file: logs/service.log\n"
        "cors_origins:\n"
        "  - https://app.example\n",
        encoding="utf-8",
    )

    settings = load_settings({"HELLOWORLD_CONFIG": str(config_path), "APP_ENV": "production"})

    assert settings.port == 4000
    assert settings.environment == "production"
    assert settings.log_file == (tmp_path / "logs" / "service.log").resolve()
    assert settings.cors_origins == ("https://app.example",)


def test_yaml_file_with_unknown_keys_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("port: 4000\nredis_url: redis://localhost\n", encoding="utf-8")

    with pytest.raises(ValueError, match="redis_url"):
        load_settings({}, config_path=config_path)


def test_yaml_file_must_contain_a_mapping(tmp_path: Path) -> None:
    config_path = tmp_path / "settings.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        load_settings({}, config_path=config_path)


def test_resolve_config_path_handles_missing_values() -> None:
    assert resolve_config_path(None) is None
    assert resolve_config_path("   ") is None
    assert resolve_config_path("/etc/helloworld.yaml") == Path("/etc/helloworld.yaml").resolve()


def test_settings_from_dict_validates_timeout() -> None:
    with pytest.raises(ValueError, match="server_selection_timeout_ms"):
        Settings.from_dict({"server_selection_timeout_ms": "-5"})
