"""Configuration management for imagetofit.

Settings are loaded from .env in the current directory, with environment
variables taking highest priority.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOCAL_ENV = Path(".env")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_LOCAL_ENV),
        env_file_encoding="utf-8",
        env_prefix="IMAGETOFIT_",
        extra="ignore",
    )

    # Reference power used when estimating IF/TSS. Set IMAGETOFIT_FTP_WATTS to override.
    ftp_watts: int = Field(default=250, gt=0)

    # Directory the export commands write .zwo files into.
    output_dir: Path = Path(".")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


def get_settings() -> Settings:
    return Settings()
