from __future__ import annotations

import subprocess
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from . import models, utils
from .config import Settings, get_settings
from .errors import ExecutionFailedError, InstallFailedError, ToolNotFoundError
from .platform_tools import PlatformTools

log = utils.get_logger(__name__)


@dataclass
class CommandResult:
    code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.code == 0


class CommandRunner:
    """
    Runs adb/fastboot with captured output.

    Executables resolve from ADB_PATH/FASTBOOT_PATH, then the provisioned
    platform-tools, then PATH. When a tool is missing and auto-install is on,
    platform-tools are installed once per runner and the command is retried.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        provisioner: Optional[PlatformTools] = None,
        *,
        auto_install: Optional[bool] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._provisioner = provisioner or PlatformTools(settings=self._settings)
        self._auto_install = self._settings.auto_install if auto_install is None else auto_install
        self._auto_install_attempted = False
        self._install_lock = threading.Lock()

    def resolve(self, tool: models.Tool) -> str:
        override = self._settings.adb_path if tool == "adb" else self._settings.fastboot_path
        if override:
            return override
        installed = self._provisioner.get_binary_paths()
        if installed is not None:
            return str(getattr(installed, tool))
        return tool

    def run(
        self,
        tool: models.Tool,
        device_id: Optional[str],
        args: Sequence[str],
        *,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        argv = (["-s", device_id] if device_id else []) + list(args)
        try:
            return self._execute(tool, self.resolve(tool), argv, timeout)
        except ToolNotFoundError:
            if not self._auto_install:
                raise

        self._install_once(tool)
        installed = self._provisioner.get_binary_paths()
        if installed is None:
            raise ToolNotFoundError(tool)
        log.info("Retrying %s with installed binary %s", tool, getattr(installed, tool))
        return self._execute(tool, str(getattr(installed, tool)), argv, timeout)

    def _install_once(self, tool: str) -> None:
        with self._install_lock:
            if self._auto_install_attempted:
                return
            self._auto_install_attempted = True
            log.warning("%s not found. Attempting automatic platform-tools installation", tool)
            try:
                message = self._provisioner.download_and_install(False)
            except InstallFailedError as exc:
                log.error("Auto-installation failed: %s", exc)
                raise ToolNotFoundError(tool) from exc
            log.info(message)

    def _execute(self, tool: str, executable: str, argv: list[str], timeout: Optional[float]) -> CommandResult:
        cmd = [executable, *argv]
        log.debug("exec: %s", " ".join(cmd))
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout or self._settings.command_timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(tool) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExecutionFailedError(tool, f"timed out after {exc.timeout}s: {' '.join(cmd)}") from exc
        except OSError as exc:
            raise ExecutionFailedError(tool, str(exc)) from exc
        return CommandResult(completed.returncode, (completed.stdout or "").strip(), (completed.stderr or "").strip())
