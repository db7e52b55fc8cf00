from __future__ import annotations

from typing import Iterable, Optional

PLATFORM_TOOLS_PAGE = "https://developer.android.com/tools/releases/platform-tools"


class ToolkitError(Exception):
    """Base error for discovery, validation and provisioning failures."""

    hint: Optional[str] = None

    def __init__(self, message: str, *, exit_code: int = 1, payload: Optional[dict] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.payload = payload or {}


class ToolNotFoundError(ToolkitError):
    """Raised when adb or fastboot cannot be executed because it is missing."""

    hint = "Run 'android-toolkit tools install' or set ADB_PATH/FASTBOOT_PATH."

    def __init__(self, tool: str) -> None:
        self.tool = tool
        message = f"{tool} not found. Install Android Platform Tools: {PLATFORM_TOOLS_PAGE}"
        super().__init__(message, exit_code=2, payload={"missing_tools": [tool]})


class ExecutionFailedError(ToolkitError):
    """Raised when an external tool could not be run to completion (timeout, OS error)."""

    def __init__(self, tool: str, detail: str) -> None:
        self.tool = tool
        self.detail = detail
        super().__init__(f"{tool} failed to execute: {detail}", payload={"tool": tool, "detail": detail})


class DeviceError(ToolkitError):
    """Base error for device validation."""


class DeviceNotFoundError(DeviceError):
    hint = "Use 'android-toolkit list' to see all connected devices, then retry with the correct device ID."

    def __init__(self, device_id: str, available: Iterable[str]) -> None:
        self.device_id = device_id
        self.available = list(available)
        listing = ", ".join(self.available) if self.available else "none"
        message = (
            f"Device '{device_id}' not found. Available devices: {listing}. "
            "Run 'android-toolkit list' to see all connected devices."
        )
        super().__init__(message, exit_code=3, payload={"device_id": device_id, "available": self.available})


class PermissionDeniedError(DeviceError):
    hint = 'Check the device screen for the USB debugging authorization prompt and tap "Allow".'

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        message = (
            f"USB debugging not authorized for device '{device_id}'. "
            "Check device screen for authorization prompt."
        )
        super().__init__(message, exit_code=4, payload={"device_id": device_id})


class DeviceOfflineError(DeviceError):
    hint = "Replug the USB cable or restart the adb server with 'adb kill-server'."

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        message = f"Device '{device_id}' is offline. Try reconnecting or rebooting the device."
        super().__init__(message, exit_code=5, payload={"device_id": device_id})


class ModeMismatchError(DeviceError):
    """Raised when a device is reachable but not in the mode an operation needs."""

    def __init__(self, device_id: str, current_mode: str, required_mode: str, command: str) -> None:
        self.device_id = device_id
        self.current_mode = current_mode
        self.required_mode = required_mode
        self.command = command
        if required_mode == "bootloader":
            message = (
                f"Device '{device_id}' must be in fastboot mode. Current mode: {current_mode}. "
                f"Run '{command}' first."
            )
        else:
            message = (
                f"Device '{device_id}' must be in ADB mode. Current mode: {current_mode}. "
                f"Run '{command}' to reboot to ADB mode."
            )
        self.hint = f"Run '{command}', wait for the device to reappear, then retry."
        super().__init__(
            message,
            exit_code=6,
            payload={
                "device_id": device_id,
                "current_mode": current_mode,
                "required_mode": required_mode,
                "command": command,
            },
        )


class ProvisioningError(ToolkitError):
    """Base error for platform-tools download and installation."""

    hint = f"Check network access, or install platform-tools manually from {PLATFORM_TOOLS_PAGE}."

    def __init__(self, message: str, *, payload: Optional[dict] = None) -> None:
        super().__init__(message, exit_code=7, payload=payload)


class DownloadFailedError(ProvisioningError):
    def __init__(self, url: str, status: Optional[int], reason: Optional[str] = None) -> None:
        self.url = url
        self.status = status
        message = reason or f"Failed to download: HTTP {status}"
        super().__init__(message, payload={"url": url, "status": status})


class InstallationVerificationFailedError(ProvisioningError):
    def __init__(self, root: str) -> None:
        super().__init__(
            f"Installation verification failed: binaries not found under {root}",
            payload={"path": root},
        )


class InstallFailedError(ProvisioningError):
    """Single outer error for any failure inside download_and_install."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Failed to install platform-tools: {cause}", payload={"cause": str(cause)})
