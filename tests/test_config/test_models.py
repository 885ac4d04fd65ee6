"""Tests for sbctool settings models."""

import pytest
from pydantic import ValidationError

from sbctool.config.models import (
    ADBSettings,
    DashboardSettings,
    PollingSettings,
    SSHSettings,
)


class TestSSHSettings:
    def test_defaults(self):
        settings = SSHSettings()
        assert settings.persistent is True
        assert settings.connect_timeout == 10.0
        assert settings.command_timeout == 30.0
        assert settings.resolve_with_ssh_g is True

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            SSHSettings(connect_timeout=0)


class TestADBSettings:
    def test_defaults(self):
        settings = ADBSettings()
        assert settings.adb_path == "adb"
        assert settings.default_port == 5555

    def test_port_bounds(self):
        ADBSettings(default_port=1)
        ADBSettings(default_port=65535)
        with pytest.raises(ValidationError):
            ADBSettings(default_port=0)
        with pytest.raises(ValidationError):
            ADBSettings(default_port=65536)


class TestPollingSettings:
    def test_defaults(self):
        polling = PollingSettings()
        assert polling.android_log_interval == 2.0
        assert polling.journal_interval == 3.0
        assert polling.syslog_interval == 5.0
        assert polling.system_info_interval == 30.0
        assert polling.log_tail_lines == 20

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            PollingSettings(journal_interval=-1)


class TestDashboardSettings:
    def test_defaults(self):
        settings = DashboardSettings()
        assert settings.tick_seconds == 0.1
        assert settings.log_capacity == 100
        assert settings.visible_log_lines == 20

    def test_nested_from_dict(self):
        settings = DashboardSettings(
            **{"ssh": {"persistent": False}, "polling": {"syslog_interval": 10}}
        )
        assert settings.ssh.persistent is False
        assert settings.polling.syslog_interval == 10.0
        assert settings.adb.default_port == 5555

    def test_nested_defaults_not_shared(self):
        first = DashboardSettings()
        second = DashboardSettings()
        first.ssh.persistent = False
        assert second.ssh.persistent is True
