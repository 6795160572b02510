"""
Build a local CRAN-style repository from upstream repositories.

Repository layout (relative to the root):

    src/contrib/PACKAGES
    bin/windows/contrib/<major>.<minor>/PACKAGES
    bin/macosx/contrib/<major>.<minor>/PACKAGES
    bin/macosx/mavericks/contrib/<major>.<minor>/PACKAGES
    bin/macosx/leopard/contrib/<major>.<minor>/PACKAGES

Because the tree mirrors a CRAN mirror, R can install from it directly with
``install.packages(pkgs, repos = "file:///path/to/root")``.
"""
from __future__ import annotations

import asyncio
import logging
import warnings
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from cranrepo.core import dependencies
from cranrepo.core.errors import PreconditionError
from cranrepo.data.config import resolve_runtime_version
from cranrepo.domain.models import ArtifactFlavor, IndexWriteResult, RuntimeVersion
from cranrepo.domain.repo_utils import index_format_for, repo_bin_path
from cranrepo.services.importer.index_downloader import PackageIndexReader
from cranrepo.services.importer.package_importer import PackageDownloader
from cranrepo.services.relocation import local_source_path, relocate_downloads
from cranrepo.storage.index_writer import IndexWriter
from cranrepo.storage.provisioner import ensure_directory

logger = logging.getLogger(__name__)


def _parse_flavors(flavors: Iterable[Any]) -> List[ArtifactFlavor]:
    if isinstance(flavors, (str, ArtifactFlavor)):
        flavors = [flavors]
    return [ArtifactFlavor.parse(f) for f in flavors]


def _effective_runtime_version(
    flavors: Sequence[ArtifactFlavor],
    runtime_version: Optional[Any],
) -> Optional[RuntimeVersion]:
    if not any(f.is_binary for f in flavors):
        return None
    if runtime_version is not None:
        return RuntimeVersion.parse(runtime_version)
    return resolve_runtime_version(dependencies.get_settings())


async def make_repo(
    packages: Iterable[str],
    path: Path,
    repos: Optional[Sequence[str]] = None,
    flavors: Iterable[Any] = (ArtifactFlavor.SOURCE,),
    runtime_version: Optional[Any] = None,
    download: bool = True,
    write_index: bool = True,
    quiet: bool = False,
    *,
    index_reader: Optional[PackageIndexReader] = None,
    downloader: Optional[PackageDownloader] = None,
    index_writer: Optional[IndexWriter] = None,
) -> List[Path]:
    """
    Download packages into a CRAN-style folder tree and write its PACKAGES index.

    Args:
        packages: Names of the packages to download.
        path: Root folder of the repository; must already exist.
        repos: Upstream repositories (http(s):// or file://). Defaults to the
            configured repositories.
        flavors: Artifact flavors to build, processed in order.
        runtime_version: R version binary packages target. Defaults to the
            configured or installed R; unused for source packages.
        download: If False, only folders and the index are (re)built.
        write_index: If True, rewrite the PACKAGES index of every flavor.
        quiet: Suppress folder-creation and progress messages.

    Returns:
        Paths of the packages downloaded for the first flavor, relocated into
        the repository when they came from a file:// upstream. Empty if
        `download` is False.

    Raises:
        PreconditionError: If `path` does not exist.
        ProvisioningError: If a flavor's folder cannot be created; processing
            stops at that flavor.
    """
    root = Path(path)
    if not root.exists():
        raise PreconditionError("Download path does not exist", details={"path": str(root)})

    packages = list(packages)
    flavor_list = _parse_flavors(flavors)
    version = _effective_runtime_version(flavor_list, runtime_version)
    if repos is None:
        repos = dependencies.get_settings().repos
    repos = list(repos)

    index_reader = index_reader or dependencies.get_index_reader()
    downloader = downloader or dependencies.get_downloader()

    downloaded: List[List[Path]] = []
    for flavor in flavor_list:
        pkg_path = repo_bin_path(root, flavor, version)
        ensure_directory(pkg_path, quiet=quiet)

        if not download:
            continue

        available = await index_reader.available_packages(repos, flavor, version)
        fetched = await downloader.download_packages(
            packages,
            pkg_path,
            available,
            flavor,
            quiet=quiet,
        )
        logger.debug(f"Fetched {len(fetched)} {flavor.value} package(s) into {pkg_path}")
        downloaded.append(fetched)

    result: List[Path] = []
    if download:
        source_root = local_source_path(repos)
        if source_root is not None:
            # Every flavor is copied so the repository is self-contained.
            downloaded = [
                await asyncio.to_thread(relocate_downloads, d, source_root, root)
                for d in downloaded
            ]
        result = downloaded[0] if downloaded else []

    if write_index:
        # Blocking: hashes every archive in each folder.
        await asyncio.to_thread(
            update_repo_index,
            root,
            flavor_list,
            version,
            index_writer=index_writer,
        )

    return result


def update_repo_index(
    path: Path,
    flavors: Iterable[Any] = (ArtifactFlavor.SOURCE,),
    runtime_version: Optional[Any] = None,
    index_writer: Optional[IndexWriter] = None,
) -> Dict[ArtifactFlavor, IndexWriteResult]:
    """
    Rewrite the PACKAGES index of each flavor's folder under `path`.

    The macOS binary variants all use the 'mac.binary' index format.
    """
    flavor_list = _parse_flavors(flavors)
    version = _effective_runtime_version(flavor_list, runtime_version)
    index_writer = index_writer or dependencies.get_index_writer()

    results: Dict[ArtifactFlavor, IndexWriteResult] = {}
    for flavor in flavor_list:
        pkg_path = repo_bin_path(path, flavor, version)
        results[flavor] = index_writer.write_index(pkg_path, index_format_for(flavor))
    return results


def make_library(packages: Iterable[str], path: Path, flavor: Any = ArtifactFlavor.SOURCE) -> None:
    """Deprecated: use make_repo."""
    warnings.warn(
        "make_library is deprecated; use make_repo instead",
        DeprecationWarning,
        stacklevel=2,
    )
    return None
