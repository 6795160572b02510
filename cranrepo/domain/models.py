"""
Pydantic models for the local package repository.

This module defines the data models used throughout the application:
- Artifact flavors (source vs. platform binaries) and R runtime versions
- Package entries listed by upstream repository indexes
- Results returned by the index writer
- Repository settings loaded from configuration

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cranrepo.core.errors import UnsupportedFlavor


# ---------------------------------------------------------------------------
# Artifact flavors and runtime versions
# ---------------------------------------------------------------------------


class ArtifactFlavor(str, Enum):
    """
    Source or platform-binary variant of a package distribution.

    Values follow the labels used by R's package tools (``type=`` argument of
    ``install.packages``).
    """

    SOURCE = "source"
    WIN_BINARY = "win.binary"
    MAC_BINARY = "mac.binary"
    MAC_BINARY_MAVERICKS = "mac.binary.mavericks"
    MAC_BINARY_LEOPARD = "mac.binary.leopard"

    @property
    def is_binary(self) -> bool:
        return self is not ArtifactFlavor.SOURCE

    @classmethod
    def parse(cls, value: Any) -> "ArtifactFlavor":
        """
        Coerce an enum member, its value, or a short alias into a flavor.

        Raises:
            UnsupportedFlavor: If the value names no known flavor.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            try:
                return cls(key)
            except ValueError:
                pass
            if key in _FLAVOR_ALIASES:
                return _FLAVOR_ALIASES[key]
        raise UnsupportedFlavor(value)


_FLAVOR_ALIASES: Dict[str, ArtifactFlavor] = {
    "src": ArtifactFlavor.SOURCE,
    "win": ArtifactFlavor.WIN_BINARY,
    "windows": ArtifactFlavor.WIN_BINARY,
    "mac": ArtifactFlavor.MAC_BINARY,
    "macosx": ArtifactFlavor.MAC_BINARY,
    "mac-mavericks": ArtifactFlavor.MAC_BINARY_MAVERICKS,
    "mac-leopard": ArtifactFlavor.MAC_BINARY_LEOPARD,
}


class RuntimeVersion(BaseModel):
    """
    Major/minor release of the R runtime that binary packages target.

    Binary repositories are split per ``<major>.<minor>``; the patch level is
    never part of the layout.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0, description="Major release number, e.g. 4.")
    minor: int = Field(ge=0, description="Minor release number, e.g. 3.")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, value: Any) -> "RuntimeVersion":
        """
        Accept "4.3", "4.3.2", (4, 3), an R.version-like mapping
        ({"major": "4", "minor": "3.2"}) or an existing instance.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            major = value.get("major")
            minor = str(value.get("minor", "")).split(".")[0]
            return cls(major=int(major), minor=int(minor))
        if isinstance(value, (tuple, list)) and len(value) >= 2:
            return cls(major=int(value[0]), minor=int(value[1]))
        if isinstance(value, str):
            parts = value.strip().split(".")
            if len(parts) >= 2 and parts[0].isdigit() and parts[1].isdigit():
                return cls(major=int(parts[0]), minor=int(parts[1]))
        raise ValueError(f"Invalid R version: {value!r}")

    def as_tuple(self) -> Tuple[int, int]:
        return (self.major, self.minor)


# ---------------------------------------------------------------------------
# Upstream index entries
# ---------------------------------------------------------------------------


class AvailablePackage(BaseModel):
    """
    A single package stanza from an upstream repository's PACKAGES index.
    """

    name: str = Field(description="Package name (the 'Package' field).")
    version: str = Field(description="Package version string, e.g. '1.2-3'.")
    repository: str = Field(
        description="Contrib URL of the repository that listed this package.",
    )
    path: Optional[str] = Field(
        default=None,
        description="Optional 'Path' field: subdirectory of the contrib URL holding the file.",
    )
    fields: Dict[str, str] = Field(
        default_factory=dict,
        description="All fields of the index stanza, as listed upstream.",
    )

    def file_name(self, extension: str) -> str:
        return f"{self.name}_{self.version}{extension}"

    def download_url(self, extension: str) -> str:
        base = self.repository.rstrip("/")
        if self.path:
            base = f"{base}/{self.path.strip('/')}"
        return f"{base}/{self.file_name(extension)}"


# ---------------------------------------------------------------------------
# Index writer results
# ---------------------------------------------------------------------------


class IndexWriteResult(BaseModel):
    """
    Outcome of rewriting the PACKAGES index of one repository directory.
    """

    directory: Path
    index_format: str = Field(
        description="Index format family used for the write ('source', 'win.binary', 'mac.binary').",
    )
    index_path: Path
    packages: List[str] = Field(
        default_factory=list,
        description="Names of the packages listed in the written index.",
    )

    @property
    def count(self) -> int:
        return len(self.packages)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


DEFAULT_CRAN_MIRROR = "https://cloud.r-project.org"


class RepositorySettings(BaseModel):
    """
    Settings for building the local repository.
    Loaded from: cranrepo.yaml (optional) + CRANREPO_* environment variables
    """

    repos: List[str] = Field(
        default_factory=lambda: [DEFAULT_CRAN_MIRROR],
        description="Upstream repositories packages are fetched from (http(s):// or file://).",
    )
    r_version: Optional[str] = Field(
        default=None,
        description="R version binary packages target, e.g. '4.3'. Detected from Rscript when unset.",
    )
    repo_root: Optional[Path] = Field(
        default=None,
        description="Root directory of the local repository served over HTTP.",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="HTTP timeout used when querying and downloading from upstream.",
    )
    quiet: bool = Field(
        default=False,
        description="Suppress progress and folder-creation messages.",
    )

    @field_validator("r_version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        # YAML reads `r_version: 4.3` as a float.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value
