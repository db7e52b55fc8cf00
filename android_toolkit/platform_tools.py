from __future__ import annotations

import os
import shutil
import subprocess
import sys
import zipfile
from pathlib import Path
from typing import Optional, Sequence

import httpx

from . import models, utils
from .config import Settings, get_settings
from .errors import (
    DownloadFailedError,
    InstallationVerificationFailedError,
    InstallFailedError,
)

log = utils.get_logger(__name__)

DOWNLOAD_URLS: dict[str, str] = {
    "darwin": "https://dl.google.com/android/repository/platform-tools-latest-darwin.zip",
    "linux": "https://dl.google.com/android/repository/platform-tools-latest-linux.zip",
    "windows": "https://dl.google.com/android/repository/platform-tools-latest-windows.zip",
}

VERSION_UNKNOWN = "Unable to determine version"
_REDIRECT_STATUSES = {301, 302}


def detect_platform(system: Optional[str] = None) -> models.Platform:
    """Map a sys.platform value to darwin|linux|windows; other Unix-likes count as linux."""
    value = (system if system is not None else sys.platform).lower()
    if value == "darwin":
        return "darwin"
    if value in {"win32", "windows"}:
        return "windows"
    return "linux"


def resolve_download_url(platform: models.Platform) -> str:
    return DOWNLOAD_URLS[platform]


class PlatformTools:
    """
    Downloads and installs the Android platform-tools bundle under a fixed root.

    The zip contains a top-level ``platform-tools/`` folder and is extracted into
    ``<root>/platform-tools``, so binaries end up in
    ``<root>/platform-tools/platform-tools/``.
    """

    def __init__(
        self,
        install_root: Optional[Path | str] = None,
        *,
        settings: Optional[Settings] = None,
        platform: Optional[models.Platform] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.install_root = Path(install_root) if install_root else Path(self._settings.install_root)
        self.platform = platform or detect_platform()
        self._transport = transport

    @property
    def tools_dir(self) -> Path:
        return self.install_root / "platform-tools"

    @property
    def archive_path(self) -> Path:
        return self.install_root / "platform-tools.zip"

    def _expected_paths(self) -> models.ToolPaths:
        suffix = ".exe" if self.platform == "windows" else ""
        bin_dir = self.tools_dir / "platform-tools"
        return models.ToolPaths(adb=bin_dir / f"adb{suffix}", fastboot=bin_dir / f"fastboot{suffix}")

    def binaries_exist(self) -> bool:
        """Return True if both binaries exist; never raises."""
        try:
            paths = self._expected_paths()
            return paths.adb.exists() and paths.fastboot.exists()
        except OSError:
            return False

    def is_installed(self) -> bool:
        """Return True if both binaries exist and are executable; never raises."""
        try:
            paths = self._expected_paths()
            return all(path.is_file() and os.access(path, os.X_OK) for path in (paths.adb, paths.fastboot))
        except OSError:
            return False

    def get_binary_paths(self) -> Optional[models.ToolPaths]:
        if not self.binaries_exist():
            return None
        return self._expected_paths()

    def download_and_install(self, force: bool = False) -> str:
        """
        Install platform-tools unless already present (or ``force`` is set).

        Returns a human readable summary. Any failure surfaces as InstallFailedError
        with the underlying exception attached as ``cause``.
        """
        if not force and self.is_installed():
            return f"Platform tools are already installed at: {self.tools_dir}"

        try:
            return self._install()
        except Exception as exc:
            log.error("platform-tools installation failed: %s", exc)
            raise InstallFailedError(exc) from exc

    def _install(self) -> str:
        self.install_root.mkdir(parents=True, exist_ok=True)

        url = resolve_download_url(self.platform)
        log.info("Downloading Android Platform Tools for %s from %s", self.platform, url)
        self._download(url, self.archive_path)
        log.info("Download complete. Extracting to %s", self.tools_dir)

        shutil.rmtree(self.tools_dir, ignore_errors=True)
        self._extract(self.archive_path, self.tools_dir)

        paths = self._expected_paths()
        for binary in (paths.adb, paths.fastboot):
            self._make_executable(binary)

        self.archive_path.unlink(missing_ok=True)

        binaries = self.get_binary_paths()
        if binaries is None:
            raise InstallationVerificationFailedError(str(self.tools_dir))

        log.info("platform-tools installed at %s", self.tools_dir)
        return (
            "Android Platform Tools installed successfully!\n\n"
            f"Installation path: {self.tools_dir}\n"
            f"ADB: {binaries.adb}\n"
            f"Fastboot: {binaries.fastboot}"
        )

    def _download(self, url: str, destination: Path) -> None:
        max_redirects = self._settings.max_redirects
        current = httpx.URL(url)
        with httpx.Client(
            timeout=self._settings.download_timeout,
            follow_redirects=False,
            transport=self._transport,
        ) as client:
            for _ in range(max_redirects + 1):
                with client.stream("GET", current) as response:
                    location = response.headers.get("location")
                    if response.status_code in _REDIRECT_STATUSES and location:
                        current = current.join(location)
                        log.debug("Following HTTP %s redirect to %s", response.status_code, current)
                        continue
                    if response.status_code != 200:
                        raise DownloadFailedError(str(current), response.status_code)
                    try:
                        with destination.open("wb") as fp:
                            for chunk in response.iter_bytes():
                                fp.write(chunk)
                    except Exception:
                        destination.unlink(missing_ok=True)
                        raise
                    return
        raise DownloadFailedError(url, None, f"Failed to download: more than {max_redirects} redirects")

    @staticmethod
    def _extract(archive: Path, destination: Path) -> None:
        destination.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)

    def _make_executable(self, path: Path) -> None:
        try:
            path.chmod(0o755)
        except OSError:
            # Permission bits carry no meaning on Windows.
            if self.platform != "windows":
                raise

    def _read_version(self, cmd: Sequence[str]) -> Optional[str]:
        try:
            completed = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._settings.command_timeout,
                check=True,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            log.debug("Version check for %s failed: %s", cmd[0], exc)
            return None
        text = (completed.stdout or "").strip()
        return text.splitlines()[0] if text else None

    def get_status(self) -> models.InstallStatus:
        if not self.is_installed():
            return models.InstallStatus(installed=False)

        binaries = self.get_binary_paths()
        if binaries is None:
            return models.InstallStatus(installed=False)

        adb_version = self._read_version([str(binaries.adb), "version"])
        fastboot_version = self._read_version([str(binaries.fastboot), "--version"])
        return models.InstallStatus(
            installed=True,
            path=self.tools_dir,
            adb_path=binaries.adb,
            fastboot_path=binaries.fastboot,
            adb_version=adb_version or VERSION_UNKNOWN,
            fastboot_version=fastboot_version or VERSION_UNKNOWN,
        )
