"""
Admin API endpoints for building the served repository.

This module provides:
- Adding packages to the repository (download + index rewrite)
- Rebuilding the PACKAGES index of existing folders
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from cranrepo.core.dependencies import (
    get_downloader,
    get_index_reader,
    get_index_writer,
    get_repo_root,
    get_settings,
)
from cranrepo.core.errors import RepoError
from cranrepo.data.repository import make_repo, update_repo_index
from cranrepo.domain.models import RepositorySettings
from cranrepo.services.importer.index_downloader import PackageIndexReader
from cranrepo.services.importer.package_importer import PackageDownloader
from cranrepo.storage.index_writer import IndexWriter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin")


class MakeRepoRequest(BaseModel):
    """Request model for adding packages to the repository."""

    packages: List[str] = Field(
        min_length=1,
        description="Names of the packages to download.",
    )
    flavors: List[str] = Field(
        default_factory=lambda: ["source"],
        description="Artifact flavors to build (e.g. 'source', 'win.binary').",
    )
    repos: Optional[List[str]] = Field(
        default=None,
        description="Upstream repositories, a subset of the configured ones. Defaults to all of them.",
    )
    r_version: Optional[str] = Field(
        default=None,
        description="R version for binary flavors, e.g. '4.3'.",
    )
    download: bool = True
    write_index: bool = True


class UpdateIndexRequest(BaseModel):
    """Request model for rebuilding PACKAGES indexes."""

    flavors: List[str] = Field(default_factory=lambda: ["source"])
    r_version: Optional[str] = None


def _configured(settings: RepositorySettings) -> set:
    return {repo.rstrip("/") for repo in settings.repos}


def _relative(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return str(path)


@router.post("/repo")
async def add_packages(
    body: MakeRepoRequest,
    root: Path = Depends(get_repo_root),
    settings: RepositorySettings = Depends(get_settings),
    index_reader: PackageIndexReader = Depends(get_index_reader),
    downloader: PackageDownloader = Depends(get_downloader),
    index_writer: IndexWriter = Depends(get_index_writer),
) -> dict:
    """
    Download packages into the served repository and rewrite its indexes.

    Request repositories must be among the configured ones.
    """
    repos = body.repos or settings.repos
    allowed = _configured(settings)
    unknown = [repo for repo in repos if repo.rstrip("/") not in allowed]
    if unknown:
        logger.warning(f"Rejected unconfigured repositories: {unknown}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Repositories not configured on this server: {', '.join(unknown)}",
        )

    try:
        downloaded = await make_repo(
            body.packages,
            root,
            repos=repos,
            flavors=body.flavors,
            runtime_version=body.r_version,
            download=body.download,
            write_index=body.write_index,
            quiet=settings.quiet,
            index_reader=index_reader,
            downloader=downloader,
            index_writer=index_writer,
        )
    except (RepoError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except httpx.HTTPError as e:
        logger.error(f"Upstream request failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return {"downloaded": [_relative(p, root) for p in downloaded]}


@router.post("/index")
def rebuild_index(
    body: UpdateIndexRequest,
    root: Path = Depends(get_repo_root),
    index_writer: IndexWriter = Depends(get_index_writer),
) -> Dict[str, dict]:
    """
    Rewrite the PACKAGES index of each requested flavor's folder.

    Declared sync so FastAPI runs the blocking rewrite in its threadpool.
    """
    try:
        results = update_repo_index(
            root,
            body.flavors,
            runtime_version=body.r_version,
            index_writer=index_writer,
        )
    except (RepoError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return {
        flavor.value: {
            "index": _relative(result.index_path, root),
            "packages": result.packages,
        }
        for flavor, result in results.items()
    }
