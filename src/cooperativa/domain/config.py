"""
Application configuration domain model.

Contains every setting that controls where data lives, how it is exported and
how the process logs.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class AppConfig(BaseModel):
    """
    Domain model for application configuration.

    Loaded from ``cooperativa.json`` and overridden by ``COOPERATIVA_*``
    environment variables (see ``infrastructure.config_loader``).
    """

    model_config = ConfigDict(extra="ignore")

    database_path: str = Field("data/cooperativa.db", description="SQLite database file")
    export_directory: str = Field("./exports", description="Where exported workbooks are written")
    filename_pattern: str = Field(
        "cooperativa_{date}.xlsx",
        description="Export file name; {date} is replaced with YYYY-MM-DD",
    )
    change_log_limit: int = Field(50, ge=1, le=1000, description="Entries shown by the change feed")
    export_workers: int = Field(9, ge=1, le=32, description="Concurrent table fetches during export")
    log_level: str = Field("INFO", description="Console log level")
    log_file: Optional[str] = Field(None, description="Optional log file (always DEBUG)")

    @field_validator("database_path", "export_directory")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Paths cannot be blank."""
        if not v or not v.strip():
            raise ValueError("Path cannot be empty")
        return v.strip()

    @field_validator("filename_pattern")
    @classmethod
    def validate_filename_pattern(cls, v: str) -> str:
        """Exports are always .xlsx workbooks."""
        if not v.lower().endswith(".xlsx"):
            raise ValueError("filename_pattern must end with .xlsx")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    def export_filename(self, date_str: str) -> str:
        return self.filename_pattern.replace("{date}", date_str)
