"""Tests for ADB resolution and transport. All tests mock subprocess.run."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from sbctool.errors import ResolutionError, TransportError
from sbctool.remote.adb import ADBTransport, parse_device_list, resolve_adb_target
from sbctool.remote.target import ADBAddressMode, RemoteTarget, TransportKind

DEVICES_HEADER = "List of devices attached\n"


def completed(stdout="", stderr="", returncode=0):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture(autouse=True)
def clear_resolution_cache():
    resolve_adb_target.cache_clear()
    yield
    resolve_adb_target.cache_clear()


class TestParseDeviceList:
    def test_usb_and_network_devices(self):
        output = (
            "* daemon not running; starting now at tcp:5037\n"
            "* daemon started successfully\n"
            + DEVICES_HEADER
            + "0123456789ABCDEF       device usb:1-1 product:kvim3 model:VIM3\n"
            "192.168.1.7:5555       device product:rk3588 model:Rock5B\n"
            "\n"
        )
        devices = parse_device_list(output)
        assert [d.serial for d in devices] == ["0123456789ABCDEF", "192.168.1.7:5555"]
        assert devices[0].usb is True
        assert devices[1].usb is False
        assert all(d.state == "device" for d in devices)

    def test_empty(self):
        assert parse_device_list(DEVICES_HEADER) == []


class TestResolveDirect:
    @patch("sbctool.remote.adb.subprocess.run")
    def test_ip_port_connects(self, mock_run):
        mock_run.return_value = completed("connected to 192.168.1.7:5555\n")
        target = resolve_adb_target("192.168.1.7:5555")
        assert mock_run.call_args[0][0] == ["adb", "connect", "192.168.1.7:5555"]
        assert target.adb_mode == ADBAddressMode.DIRECT
        assert target.serial == "192.168.1.7:5555"
        assert target.host == "192.168.1.7"
        assert target.port == 5555

    @patch("sbctool.remote.adb.subprocess.run")
    def test_bare_ip_default_port(self, mock_run):
        mock_run.return_value = completed("already connected to 192.168.1.7:5555\n")
        target = resolve_adb_target("192.168.1.7")
        assert mock_run.call_args[0][0] == ["adb", "connect", "192.168.1.7:5555"]
        assert target.adb_mode == ADBAddressMode.DIRECT_DEFAULT_PORT

    @patch("sbctool.remote.adb.subprocess.run")
    def test_connect_refused(self, mock_run):
        mock_run.return_value = completed(
            "failed to connect to '192.168.1.7:5555': Connection refused\n"
        )
        with pytest.raises(ResolutionError, match="Could not connect"):
            resolve_adb_target("192.168.1.7:5555")

    @patch("sbctool.remote.adb.subprocess.run", side_effect=FileNotFoundError)
    def test_adb_missing(self, mock_run):
        with pytest.raises(ResolutionError, match="adb not found"):
            resolve_adb_target("192.168.1.7")


class TestResolveSerial:
    @patch("sbctool.remote.adb.subprocess.run")
    def test_server_routed_serial(self, mock_run):
        mock_run.return_value = completed("device\n")
        target = resolve_adb_target("0123456789ABCDEF")
        assert mock_run.call_args[0][0] == ["adb", "-s", "0123456789ABCDEF", "get-state"]
        assert target.adb_mode == ADBAddressMode.SERVER
        assert target.host == ""

    @patch("sbctool.remote.adb.subprocess.run")
    def test_unknown_serial(self, mock_run):
        mock_run.return_value = completed(
            stderr="error: device 'nope' not found", returncode=1
        )
        with pytest.raises(ResolutionError, match="not available"):
            resolve_adb_target("nope")


class TestDiscovery:
    @patch("sbctool.remote.adb.subprocess.run")
    def test_single_usb_device(self, mock_run):
        mock_run.side_effect = [
            completed(DEVICES_HEADER + "ABC123 device usb:1-1 model:VIM3\n"),
            completed("device\n"),
        ]
        target = resolve_adb_target(None)
        assert target.adb_mode == ADBAddressMode.USB
        assert target.serial == "ABC123"
        assert target.kind == TransportKind.ADB

    @patch("sbctool.remote.adb.subprocess.run")
    def test_busy_usb_device_restarts_server_once(self, mock_run):
        mock_run.side_effect = [
            completed(DEVICES_HEADER + "ABC123 device usb:1-1\n"),
            completed(stderr="error: insufficient permissions, resource busy", returncode=1),
            completed(),  # kill-server
            completed(DEVICES_HEADER + "ABC123 device usb:1-1\n"),
            completed("device\n"),
        ]
        target = resolve_adb_target(None)
        assert target.adb_mode == ADBAddressMode.USB
        commands = [c[0][0] for c in mock_run.call_args_list]
        assert ["adb", "kill-server"] in commands
        assert commands.count(["adb", "kill-server"]) == 1

    @patch("sbctool.remote.adb.subprocess.run")
    def test_enumerates_server_devices(self, mock_run):
        mock_run.return_value = completed(
            DEVICES_HEADER
            + "192.168.1.7:5555 device\n"
            "192.168.1.8:5555 device\n"
            "emulator-5554 offline\n"
        )
        target = resolve_adb_target(None)
        assert target.adb_mode == ADBAddressMode.SERVER_ENUMERATED
        assert target.serial == "192.168.1.7:5555"

    @patch("sbctool.remote.adb.subprocess.run")
    def test_no_devices(self, mock_run):
        mock_run.return_value = completed(DEVICES_HEADER)
        with pytest.raises(ResolutionError, match="No ADB devices found"):
            resolve_adb_target(None)

    @patch("sbctool.remote.adb.subprocess.run")
    def test_resolved_once(self, mock_run):
        mock_run.return_value = completed("device\n")
        first = resolve_adb_target("ABC123")
        second = resolve_adb_target("ABC123")
        assert first == second
        assert mock_run.call_count == 1


class TestADBTransport:
    def make_transport(self):
        target = RemoteTarget(kind=TransportKind.ADB, serial="ABC123")
        return ADBTransport(target)

    @patch("sbctool.remote.adb.subprocess.run")
    def test_execute(self, mock_run):
        mock_run.return_value = completed("localhost\n")
        assert self.make_transport().execute("hostname") == "localhost"
        assert mock_run.call_args[0][0] == ["adb", "-s", "ABC123", "shell", "hostname"]

    @patch("sbctool.remote.adb.subprocess.run")
    def test_failure(self, mock_run):
        mock_run.return_value = completed(stderr="error: device offline", returncode=1)
        with pytest.raises(TransportError, match="device offline"):
            self.make_transport().execute("hostname")

    @patch(
        "sbctool.remote.adb.subprocess.run",
        side_effect=subprocess.TimeoutExpired("adb", 30),
    )
    def test_timeout(self, mock_run):
        with pytest.raises(TransportError, match="timed out"):
            self.make_transport().run("logcat -d", timeout=30)

    def test_not_persistent(self):
        transport = self.make_transport()
        assert transport.persistent is False
        assert transport.supports_streaming is False
