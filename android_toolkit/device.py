from __future__ import annotations

import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from . import models, utils
from .config import get_settings
from .errors import (
    DeviceError,
    DeviceNotFoundError,
    DeviceOfflineError,
    ModeMismatchError,
    PermissionDeniedError,
    ToolkitError,
)
from .executor import CommandRunner

log = utils.get_logger(__name__)

DISCOVERY_ARGS = ("devices", "-l")

# adb prints `transport_id:N` on current releases and `transport:N` on older ones.
_INFO_PATTERN = re.compile(r"\b(model|product|transport(?:_id)?):(\S+)")

Parser = Callable[[str], list[models.Device]]


def parse_adb_devices(output: str) -> list[models.Device]:
    """
    Parse `adb devices -l`. The first line is the "List of devices attached" header.
    """
    devices: list[models.Device] = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 2:
            continue

        info: dict[str, str] = {}
        for key, value in _INFO_PATTERN.findall(line):
            info["transport" if key == "transport_id" else key] = value

        devices.append(models.Device(id=parts[0], mode=parts[1], **info))
    return devices


def parse_fastboot_devices(output: str) -> list[models.Device]:
    """
    Parse `fastboot devices -l`. Every listed device is in bootloader mode.
    """
    devices: list[models.Device] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        devices.append(models.Device(id=parts[0], mode="bootloader"))
    return devices


def reboot_command(device_id: str, target_mode: models.RequiredMode) -> str:
    if target_mode == "bootloader":
        return f"adb -s {device_id} reboot bootloader"
    return f"fastboot -s {device_id} reboot"


class DeviceRegistry:
    """
    Discovers adb and fastboot devices and keeps the latest snapshot for ``ttl`` seconds.

    The snapshot is replaced wholesale on every refresh. A refresh always advances
    the timestamp, even when both tools fail, so failing discovery is not re-run on
    every call inside the TTL window.
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        *,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._runner = runner if runner is not None else CommandRunner()
        self._ttl = get_settings().device_cache_ttl if ttl is None else ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, models.Device] = {}
        self._last_refresh: Optional[float] = None

    def _is_fresh(self, now: float) -> bool:
        return self._last_refresh is not None and now - self._last_refresh < self._ttl

    def list_devices(self, force_refresh: bool = False) -> list[models.Device]:
        now = self._clock()
        with self._lock:
            if not force_refresh and self._is_fresh(now):
                log.debug("Device cache hit (%d devices)", len(self._entries))
                return list(self._entries.values())

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="discovery") as pool:
            adb_future = pool.submit(self._discover, "adb", parse_adb_devices)
            fastboot_future = pool.submit(self._discover, "fastboot", parse_fastboot_devices)
            discovered = adb_future.result() + fastboot_future.result()

        entries: dict[str, models.Device] = {}
        for found in discovered:
            entries[found.id] = found

        with self._lock:
            self._entries = entries
            self._last_refresh = now
        log.debug("Discovered %d devices", len(entries))
        return list(entries.values())

    def _discover(self, tool: models.Tool, parser: Parser) -> list[models.Device]:
        try:
            result = self._runner.run(tool, None, DISCOVERY_ARGS)
        except ToolkitError as exc:
            log.warning("%s devices check failed: %s", tool, exc)
            return []
        except Exception as exc:
            log.error("%s devices check crashed: %s", tool, exc, exc_info=True)
            return []
        if not result.ok:
            log.warning("%s devices exited with code %s: %s", tool, result.code, result.stderr)
            return []

        try:
            return parser(result.stdout)
        except Exception as exc:
            log.error("Failed to parse %s output: %s", tool, exc, exc_info=True)
            return []

    def validate_device(self, device_id: str) -> models.Device:
        devices = self.list_devices()
        device = next((entry for entry in devices if entry.id == device_id), None)

        if device is None:
            raise DeviceNotFoundError(device_id, [entry.id for entry in devices])
        if device.mode == "unauthorized":
            raise PermissionDeniedError(device_id)
        if device.mode == "offline":
            raise DeviceOfflineError(device_id)
        return device

    def is_in_mode(self, device_id: str, mode: str) -> bool:
        try:
            device = self.validate_device(device_id)
        except DeviceError as exc:
            log.debug("Device mode check failed for %s: %s", device_id, exc)
            return False
        return device.mode == mode

    def require_mode(self, device_id: str, required_mode: models.RequiredMode) -> models.Device:
        if required_mode not in ("device", "bootloader"):
            raise ValueError(f"Unsupported mode '{required_mode}'. Use: device | bootloader")

        device = self.validate_device(device_id)
        if device.mode != required_mode:
            raise ModeMismatchError(
                device_id,
                current_mode=device.mode,
                required_mode=required_mode,
                command=reboot_command(device_id, required_mode),
            )
        return device

    def clear_cache(self) -> None:
        with self._lock:
            self._entries = {}
            self._last_refresh = None
