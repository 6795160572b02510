"""
Download and parse the PACKAGES index of upstream CRAN-style repositories.
"""
from __future__ import annotations

import gzip
import logging
from typing import Dict, Iterable, List, Optional

import aiofiles
import httpx
from debian import deb822

from cranrepo.domain.models import ArtifactFlavor, AvailablePackage, RuntimeVersion
from cranrepo.domain.repo_utils import contrib_url, file_url_to_path, is_local_url, version_key

logger = logging.getLogger(__name__)

# Tried in order; the first one found is used.
INDEX_CANDIDATES = ("PACKAGES.gz", "PACKAGES")


class PackageIndexReader:
    """Queries upstream repositories for the packages they provide."""

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def fetch_index(self, contrib: str) -> Optional[str]:
        """
        Return the text of the PACKAGES index under a contrib URL, or None if
        the repository has no index there.
        """
        if is_local_url(contrib):
            return await self._read_local_index(contrib)

        async with self._client() as client:
            for candidate in INDEX_CANDIDATES:
                url = f"{contrib.rstrip('/')}/{candidate}"
                logger.debug(f"Downloading index from {url}")
                response = await client.get(url)
                if response.status_code == 404:
                    continue
                response.raise_for_status()
                return _decode_index(candidate, response.content)
        return None

    async def _read_local_index(self, contrib: str) -> Optional[str]:
        directory = file_url_to_path(contrib)
        for candidate in INDEX_CANDIDATES:
            index_path = directory / candidate
            if not index_path.is_file():
                continue
            logger.debug(f"Reading index from {index_path}")
            async with aiofiles.open(index_path, "rb") as f:
                raw = await f.read()
            return _decode_index(candidate, raw)
        return None

    async def available_packages(
        self,
        repos: Iterable[str],
        flavor: ArtifactFlavor,
        runtime_version: Optional[RuntimeVersion] = None,
    ) -> Dict[str, AvailablePackage]:
        """
        Query every repository for the packages available for one flavor.

        When several repositories list the same package, the highest version
        wins; equal versions keep the entry of the earlier repository.
        """
        available: Dict[str, AvailablePackage] = {}
        for repo in repos:
            contrib = contrib_url(repo, flavor, runtime_version)
            text = await self.fetch_index(contrib)
            if text is None:
                logger.warning(f"Unable to access index for repository {contrib}")
                continue

            entries = parse_index(text, contrib)
            logger.debug(f"Repository {contrib} lists {len(entries)} package(s)")
            for entry in entries:
                current = available.get(entry.name)
                if current is None or version_key(entry.version) > version_key(current.version):
                    available[entry.name] = entry
        return available


def _decode_index(name: str, raw: bytes) -> str:
    if name.endswith(".gz"):
        raw = gzip.decompress(raw)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def parse_index(text: str, repository: str) -> List[AvailablePackage]:
    """Parse the stanzas of a PACKAGES file listed under `repository`."""
    entries = []
    for stanza in deb822.Deb822.iter_paragraphs(text.splitlines(True), use_apt_pkg=False):
        name = stanza.get("Package")
        version = stanza.get("Version")
        if not name or not version:
            continue
        entries.append(
            AvailablePackage(
                name=name,
                version=version,
                repository=repository,
                path=stanza.get("Path"),
                fields={str(k): v for k, v in stanza.items()},
            )
        )
    return entries
