# nodekeeper/src/nodekeeper/core/config.py

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from nodekeeper.core.settings import (
    DEFAULT_CACHE_SIZE,
    DEFAULT_SAVE_THRESHOLD,
    PROGRESS_INTERVAL,
    CACHE_REPORT_INTERVAL,
)


class Settings(BaseSettings):
    # Store location
    database_url: Optional[str] = Field(default=None)
    repository: Optional[Path] = Field(default=None)
    workspace: str = Field(default="default")

    # Tuning
    cache_size: int = Field(default=DEFAULT_CACHE_SIZE, gt=0)
    save_threshold: int = Field(default=DEFAULT_SAVE_THRESHOLD, gt=0)
    progress_interval: int = Field(default=PROGRESS_INTERVAL, gt=0)
    cache_report_interval: int = Field(default=CACHE_REPORT_INTERVAL, gt=0)

    # Logging
    log_level: str = Field(default="info")
    log_file: Optional[str] = Field(default="nodekeeper.log")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NODEKEEPER_",
        extra="ignore",
    )

    def build_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        if self.repository is not None:
            db_path = self.repository / "workspaces" / self.workspace / "nodes.db"
            return f"sqlite:///{db_path}"
        return "sqlite:///nodekeeper.db"


# Instantiate settings
settings = Settings()
