from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INSTALL_ROOT = Path.home() / ".android-debug-mcp"


class Settings(BaseSettings):
    adb_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("ADB_PATH"),
        description="Explicit adb executable; overrides the provisioned install and PATH",
    )
    fastboot_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FASTBOOT_PATH"),
        description="Explicit fastboot executable; overrides the provisioned install and PATH",
    )
    command_timeout: float = Field(
        default=30.0,
        validation_alias=AliasChoices("COMMAND_TIMEOUT"),
        description="Seconds before an adb/fastboot invocation is aborted",
    )
    device_cache_ttl: float = Field(
        default=5.0,
        validation_alias=AliasChoices("DEVICE_CACHE_TTL"),
        description="Seconds a discovery snapshot stays fresh",
    )
    install_root: Path = Field(
        default=DEFAULT_INSTALL_ROOT,
        validation_alias=AliasChoices("ANDROID_TOOLKIT_HOME"),
        description="Directory that receives the platform-tools download",
    )
    download_timeout: float = Field(
        default=300.0,
        validation_alias=AliasChoices("DOWNLOAD_TIMEOUT"),
        description="HTTP timeout in seconds for the platform-tools download",
    )
    max_redirects: int = Field(
        default=5,
        validation_alias=AliasChoices("MAX_REDIRECTS"),
        description="Redirect hops followed before a download is abandoned",
    )
    auto_install: bool = Field(
        default=True,
        validation_alias=AliasChoices("AUTO_INSTALL"),
        description="Provision platform-tools once when adb/fastboot is missing",
    )

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore", populate_by_name=True)


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read from the environment on first use."""
    return Settings()
