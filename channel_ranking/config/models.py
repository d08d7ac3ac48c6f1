"""Pydantic models describing dashboard configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_ENDPOINT = (
    "https://youtube-research.s3.ap-southeast-2.amazonaws.com/processed/latest_comparison.json"
)


class SourceConfig(BaseModel):
    """Where rankings come from and how to talk to the endpoint."""

    endpoint: str = DEFAULT_ENDPOINT
    adapter: Literal["api", "snapshot"] = "snapshot"
    timeout: float = Field(default=15.0, gt=0)
    retry_on_fail: int = Field(default=1, ge=0)
    retry_backoff: float = Field(default=0.5, ge=0)
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("endpoint")
    @classmethod
    def _require_endpoint(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("endpoint cannot be empty")
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must be an http(s) URL: {value}")
        return value


class DashboardConfig(BaseModel):
    """Top-level settings for a dashboard session."""

    source: SourceConfig = Field(default_factory=SourceConfig)
    page_size: int = Field(default=20, ge=1, le=500)
    prefetch: bool = True
    outputs_dir: Path = Field(default=Path("data/outputs"))
    selection_store: Path = Field(default=Path("data/selection.db"))

    @field_validator("outputs_dir", "selection_store", mode="before")
    @classmethod
    def _coerce_paths(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_store(self) -> "DashboardConfig":
        if self.selection_store.suffix not in (".db", ".sqlite", ".sqlite3"):
            raise ValueError("selection_store must point to an SQLite file (.db/.sqlite)")
        return self

    def resolved(self, base_dir: Path) -> "DashboardConfig":
        """Return a copy whose relative paths are anchored under ``base_dir``."""

        def _anchor(path: Path) -> Path:
            return path if path.is_absolute() else (base_dir / path).resolve()

        return self.model_copy(
            update={
                "outputs_dir": _anchor(self.outputs_dir),
                "selection_store": _anchor(self.selection_store),
            }
        )


__all__ = ["DEFAULT_ENDPOINT", "DashboardConfig", "SourceConfig"]
