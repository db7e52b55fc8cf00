from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field

# Status tokens adb/fastboot are known to emit. Device.mode accepts any other
# token verbatim so new tool versions do not break parsing.
KnownMode = Literal["device", "unauthorized", "offline", "bootloader", "recovery", "sideload"]
KNOWN_MODES: frozenset[str] = frozenset(get_args(KnownMode))
RequiredMode = Literal["device", "bootloader"]
Platform = Literal["darwin", "linux", "windows"]
Tool = Literal["adb", "fastboot"]


class Device(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Serial number or bootloader identifier")
    mode: str = Field(..., description="Status token reported by the discovery tool")
    model: Optional[str] = Field(None, description="Device model (adb devices -l)")
    product: Optional[str] = Field(None, description="Product name (adb devices -l)")
    transport: Optional[str] = Field(None, description="adb transport id")

    @property
    def is_known_mode(self) -> bool:
        return self.mode in KNOWN_MODES


class ToolPaths(BaseModel):
    adb: Path
    fastboot: Path


class InstallStatus(BaseModel):
    installed: bool
    path: Optional[Path] = None
    adb_path: Optional[Path] = None
    fastboot_path: Optional[Path] = None
    adb_version: Optional[str] = None
    fastboot_version: Optional[str] = None
