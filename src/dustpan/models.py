"""Data models for dustpan."""

import os
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dustpan.progress import ProgressCounter


class DirEntry(BaseModel):
    """A single child of a listed directory."""

    name: str = Field(..., description="Entry name")
    path: str = Field(..., description="Absolute path")
    size_bytes: int = Field(0, description="Total size in bytes")
    file_count: int = Field(0, description="Number of files below this entry")
    is_dir: bool = Field(False, description="Whether the entry is a directory")
    error: Optional[str] = Field(None, description="Error message if sizing failed")


class DiskUsage(BaseModel):
    """Overall disk usage information."""

    total_bytes: int = Field(..., description="Total disk size in bytes")
    used_bytes: int = Field(..., description="Used space in bytes")
    free_bytes: int = Field(..., description="Free space in bytes")
    mount_point: str = Field("/", description="Mount point")

    @property
    def used_percent(self) -> float:
        """Percentage of disk used."""
        return (self.used_bytes / self.total_bytes) * 100 if self.total_bytes > 0 else 0


class DeletionRequest(BaseModel):
    """One or more roots to delete, with an optional progress handle."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    roots: list[str] = Field(..., description="Root paths, deleted in order")
    counter: Optional[ProgressCounter] = Field(
        None, description="Shared counter written while the run is active"
    )

    @field_validator("roots")
    @classmethod
    def _at_least_one_root(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one root path is required")
        return value


class DeletionResult(BaseModel):
    """Completion message of a deletion run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    done: bool = Field(True, description="Always true once delivered")
    count: int = Field(0, description="Files actually removed")
    err: Optional[Exception] = Field(None, description="Aggregate error, if any root failed")
    path: str = Field("", description="Refresh hint: deleted root, or '' for a full refresh")
    finished_at: datetime = Field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        """Whether every root was removed cleanly."""
        return self.err is None

    @property
    def refresh_all(self) -> bool:
        """Whether the whole view needs reloading."""
        return self.path == ""

    @property
    def refresh_parent(self) -> Optional[str]:
        """Directory whose listing changed, None when everything must reload."""
        if self.refresh_all:
            return None
        # Relative roots are resolved against the working directory
        return os.path.dirname(os.path.abspath(self.path))

    @property
    def error_message(self) -> Optional[str]:
        """Display text of the error."""
        return str(self.err) if self.err is not None else None
