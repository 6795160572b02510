"""Error types raised while assembling a local package repository."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional


class RepoError(Exception):
    """Base error class for repository operations."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class PreconditionError(RepoError):
    """A required input (repository root, R version) is missing."""


class UnsupportedFlavor(RepoError, ValueError):
    """Unknown artifact flavor."""

    def __init__(self, flavor: Any):
        super().__init__(
            f"Unsupported artifact flavor: {flavor!r}",
            details={"flavor": str(flavor)},
        )
        self.flavor = flavor


class ProvisioningError(RepoError):
    """A repository directory could not be created."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Unable to create repo path: {path}",
            details={"path": str(path), "reason": reason},
        )
        self.path = path


class MultipleLocalSources(UserWarning):
    """More than one file:// upstream repository was supplied."""
