"""Tests for the sbctool settings loader."""

from pathlib import Path

import pytest

from sbctool.config.loader import (
    NO_SSH_G_ENV_VAR,
    SETTINGS_ENV_VAR,
    ConfigError,
    load_settings,
    load_yaml,
)


@pytest.fixture
def tmp_yaml(tmp_path):
    """Create a temporary YAML file."""

    def _create(content: str, filename: str = "config.yaml") -> Path:
        path = tmp_path / filename
        path.write_text(content)
        return path

    return _create


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv(SETTINGS_ENV_VAR, raising=False)
    monkeypatch.delenv(NO_SSH_G_ENV_VAR, raising=False)
    monkeypatch.setattr(
        "sbctool.config.loader.DEFAULT_SETTINGS_PATH", tmp_path / "absent.yaml"
    )


class TestLoadYaml:
    def test_valid_yaml(self, tmp_yaml):
        assert load_yaml(tmp_yaml("tick_seconds: 0.5\n")) == {"tick_seconds": 0.5}

    def test_empty_yaml(self, tmp_yaml):
        assert load_yaml(tmp_yaml("")) == {}

    def test_file_not_found(self):
        with pytest.raises(ConfigError, match="not found"):
            load_yaml(Path("/nonexistent/config.yaml"))

    def test_invalid_yaml(self, tmp_yaml):
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_yaml(tmp_yaml("invalid: [yaml: {broken"))

    def test_root_must_be_mapping(self, tmp_yaml):
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml(tmp_yaml("- a\n- b\n"))


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings()
        assert settings.ssh.persistent is True
        assert settings.ssh.resolve_with_ssh_g is True
        assert settings.adb.default_port == 5555
        assert settings.polling.journal_interval == 3.0
        assert settings.log_capacity == 100
        assert settings.tick_seconds == 0.1

    def test_explicit_path(self, tmp_yaml):
        path = tmp_yaml(
            "ssh:\n  persistent: false\n  command_timeout: 10\n"
            "polling:\n  system_info_interval: 60\n"
        )
        settings = load_settings(path)
        assert settings.ssh.persistent is False
        assert settings.ssh.command_timeout == 10.0
        assert settings.polling.system_info_interval == 60.0

    def test_env_var_path(self, tmp_yaml, monkeypatch):
        path = tmp_yaml("adb:\n  adb_path: /opt/platform-tools/adb\n")
        monkeypatch.setenv(SETTINGS_ENV_VAR, str(path))
        assert load_settings().adb.adb_path == "/opt/platform-tools/adb"

    def test_default_path_when_present(self, tmp_yaml, monkeypatch):
        path = tmp_yaml("visible_log_lines: 10\n")
        monkeypatch.setattr("sbctool.config.loader.DEFAULT_SETTINGS_PATH", path)
        assert load_settings().visible_log_lines == 10

    def test_validation_error(self, tmp_yaml):
        with pytest.raises(ConfigError, match="validation failed"):
            load_settings(tmp_yaml("adb:\n  default_port: 70000\n"))

    def test_no_ssh_g_env_flag(self, monkeypatch):
        monkeypatch.setenv(NO_SSH_G_ENV_VAR, "1")
        assert load_settings().ssh.resolve_with_ssh_g is False

    def test_missing_explicit_file(self):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(Path("/nonexistent/config.yaml"))
