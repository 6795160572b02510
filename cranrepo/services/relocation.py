"""
Copy artifacts served by a local (file://) upstream repository into the
repository being built.

A file:// "download" leaves the archive where it is, inside the source
repository. Both repositories share the CRAN layout, so the destination of a
file is its path with the source root prefix replaced by the repository root.
"""
from __future__ import annotations

import logging
import shutil
import warnings
from pathlib import Path
from typing import Iterable, List, Optional

from cranrepo.core.errors import MultipleLocalSources
from cranrepo.domain.repo_utils import file_url_to_path, is_local_url

logger = logging.getLogger(__name__)


def local_source_path(repos: Iterable[str]) -> Optional[Path]:
    """
    Path of the first file:// repository in `repos`, or None.

    Warns with MultipleLocalSources when more than one is listed.
    """
    local_repos = [repo for repo in repos if is_local_url(repo)]
    if not local_repos:
        return None
    if len(local_repos) > 1:
        warnings.warn(
            "More than one local repos provided. Only the first listed will be used.",
            MultipleLocalSources,
            stacklevel=2,
        )
    return file_url_to_path(local_repos[0])


def relocate_downloads(
    downloaded: Iterable[Path],
    source_root: Path,
    repo_root: Path,
) -> List[Path]:
    """
    Copy every downloaded file found under `source_root` to the matching
    location under `repo_root`.

    Files outside `source_root` are returned unchanged. So are files already
    inside `repo_root` when `repo_root` lies below `source_root`, such as
    network downloads written under a local upstream's tree.
    """
    source_root = Path(source_root).resolve()
    repo_root = Path(repo_root).resolve()
    repo_nested_in_source = repo_root != source_root and repo_root.is_relative_to(source_root)

    relocated: List[Path] = []
    for path in downloaded:
        path = Path(path).resolve()
        if not path.is_relative_to(source_root) or (
            repo_nested_in_source and path.is_relative_to(repo_root)
        ):
            relocated.append(path)
            continue

        new_path = repo_root / path.relative_to(source_root)
        if new_path == path:
            relocated.append(path)
            continue
        new_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, new_path)
        logger.debug(f"Copied {path} to {new_path}")
        relocated.append(new_path)
    return relocated
