import json

from typer.testing import CliRunner

from android_toolkit import cli, device, errors, models, platform_tools


runner = CliRunner()


class FakeRegistry:
    def __init__(self, devices):
        self.devices = devices
        self.force_refresh = None

    def list_devices(self, force_refresh=False):
        self.force_refresh = force_refresh
        return list(self.devices)

    def validate_device(self, device_id):
        for entry in self.devices:
            if entry.id == device_id:
                return entry
        raise errors.DeviceNotFoundError(device_id, [entry.id for entry in self.devices])

    def require_mode(self, device_id, required_mode):
        found = self.validate_device(device_id)
        if found.mode != required_mode:
            raise errors.ModeMismatchError(
                device_id, found.mode, required_mode, device.reboot_command(device_id, required_mode)
            )
        return found


class FakeTools:
    def __init__(self, status=None, error=None):
        self._status = status or models.InstallStatus(installed=False)
        self._error = error

    def get_status(self):
        return self._status

    def download_and_install(self, force=False):
        if self._error:
            raise self._error
        return "Platform tools are already installed at: /tmp/pt"


def _use_registry(monkeypatch, devices):
    registry = FakeRegistry(devices)
    monkeypatch.setattr(device, "DeviceRegistry", lambda: registry)
    return registry


def test_list_json_no_devices(monkeypatch):
    _use_registry(monkeypatch, [])
    result = runner.invoke(cli.app, ["list", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == []


def test_list_json_refresh(monkeypatch):
    registry = _use_registry(monkeypatch, [models.Device(id="emulator-5554", mode="device", model="Pixel_7")])
    result = runner.invoke(cli.app, ["list", "--refresh", "--json"])
    assert result.exit_code == 0
    assert registry.force_refresh is True
    payload = json.loads(result.stdout)
    assert payload[0]["id"] == "emulator-5554"
    assert payload[0]["model"] == "Pixel_7"


def test_check_unknown_device(monkeypatch):
    _use_registry(monkeypatch, [models.Device(id="A", mode="device")])
    result = runner.invoke(cli.app, ["check", "B", "--json"])
    assert result.exit_code == 3
    payload = json.loads(result.stdout)
    assert payload["available"] == ["A"]
    assert payload["hint"]


def test_check_mode_mismatch(monkeypatch):
    _use_registry(monkeypatch, [models.Device(id="A", mode="device")])
    result = runner.invoke(cli.app, ["check", "A", "--mode", "bootloader", "--json"])
    assert result.exit_code == 6
    payload = json.loads(result.stdout)
    assert payload["command"] == "adb -s A reboot bootloader"
    assert payload["current_mode"] == "device"


def test_check_success(monkeypatch):
    _use_registry(monkeypatch, [models.Device(id="A", mode="bootloader")])
    result = runner.invoke(cli.app, ["check", "A", "--mode", "bootloader", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["mode"] == "bootloader"


def test_tools_status_not_installed(monkeypatch):
    monkeypatch.setattr(platform_tools, "PlatformTools", lambda: FakeTools())
    result = runner.invoke(cli.app, ["tools", "status", "--json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"installed": False}


def test_tools_install_failure(monkeypatch):
    failure = errors.InstallFailedError(errors.DownloadFailedError("https://example.com", 503))
    monkeypatch.setattr(platform_tools, "PlatformTools", lambda: FakeTools(error=failure))
    result = runner.invoke(cli.app, ["tools", "install", "--json"])
    assert result.exit_code == 7
    payload = json.loads(result.stdout)
    assert "HTTP 503" in payload["error"]


def test_version_json():
    result = runner.invoke(cli.app, ["version", "--json"])
    assert result.exit_code == 0
    assert "version" in json.loads(result.stdout)
