"""
Download package artifacts from upstream repositories into the local repository.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import aiofiles
import httpx

from cranrepo.domain.models import ArtifactFlavor, AvailablePackage
from cranrepo.domain.repo_utils import artifact_extension, file_url_to_path, is_local_url

logger = logging.getLogger(__name__)


class PackageDownloader:
    """Downloads package archives listed in an availability table."""

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    async def download_packages(
        self,
        packages: Iterable[str],
        dest_dir: Path,
        available: Dict[str, AvailablePackage],
        flavor: ArtifactFlavor,
        quiet: bool = False,
    ) -> List[Path]:
        """
        Download each named package into `dest_dir`.

        Packages served by a file:// repository are not copied: the returned
        path points at the archive inside that local repository.

        Returns:
            Paths of the downloaded archives, in request order.
        """
        dest_dir = Path(dest_dir)
        extension = artifact_extension(flavor)
        downloaded: List[Path] = []

        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.timeout,
            transport=self.transport,
        ) as client:
            for name in packages:
                entry = available.get(name)
                if entry is None:
                    logger.warning(f"No package '{name}' at the repositories")
                    continue

                url = entry.download_url(extension)
                if is_local_url(url):
                    local_path = file_url_to_path(url)
                    if not local_path.is_file():
                        logger.warning(f"No package '{name}' found at {local_path}")
                        continue
                    downloaded.append(local_path)
                    continue

                target_path = dest_dir / entry.file_name(extension)
                await self.download_file(client, url, target_path, quiet=quiet)
                downloaded.append(target_path)

        return downloaded

    async def download_file(
        self,
        client: httpx.AsyncClient,
        url: str,
        target_path: Path,
        quiet: bool = False,
    ) -> int:
        """
        Stream a file to `target_path` through a temp file.

        Returns:
            Number of bytes written.
        """
        logger.debug(f"Downloading package from {url}")
        tmp_path = target_path.with_name(f"{target_path.name}.tmp")
        if tmp_path.exists():
            tmp_path.unlink()

        downloaded = 0
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("content-length", 0))

                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        await f.write(chunk)
                        downloaded += len(chunk)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise

        tmp_path.replace(target_path)
        if not quiet:
            if total_size > 0:
                logger.info(f"Downloaded {target_path.name} ({downloaded}/{total_size} bytes)")
            else:
                logger.info(f"Downloaded {target_path.name} ({downloaded} bytes)")
        return downloaded
