"""Pydantic models for sbctool settings."""

from pydantic import BaseModel, Field


class SSHSettings(BaseModel):
    """SSH transport configuration."""

    persistent: bool = True  # False = spawn an ssh client process per command
    connect_timeout: float = Field(default=10.0, gt=0)
    command_timeout: float = Field(default=30.0, gt=0)
    resolve_with_ssh_g: bool = True
    password_prompt: bool = True


class ADBSettings(BaseModel):
    """ADB transport configuration."""

    adb_path: str = "adb"
    default_port: int = Field(default=5555, ge=1, le=65535)
    command_timeout: float = Field(default=30.0, gt=0)


class PollingSettings(BaseModel):
    """Collector cadence, in seconds."""

    android_log_interval: float = Field(default=2.0, gt=0)
    journal_interval: float = Field(default=3.0, gt=0)
    syslog_interval: float = Field(default=5.0, gt=0)
    system_info_interval: float = Field(default=30.0, gt=0)
    log_tail_lines: int = Field(default=20, ge=1)


class DashboardSettings(BaseModel):
    """Top-level settings for a dashboard session."""

    ssh: SSHSettings = Field(default_factory=SSHSettings)
    adb: ADBSettings = Field(default_factory=ADBSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    tick_seconds: float = Field(default=0.1, gt=0)
    log_capacity: int = Field(default=100, ge=1)
    visible_log_lines: int = Field(default=20, ge=1)
