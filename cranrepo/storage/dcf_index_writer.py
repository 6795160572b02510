"""
Write CRAN-style PACKAGES index files from the package archives in a directory.

The index is a sequence of DCF (Debian control format) stanzas, one per
package, written as both ``PACKAGES`` and ``PACKAGES.gz``.
"""
from __future__ import annotations

import gzip
import hashlib
import logging
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

from debian import deb822

from cranrepo.domain.models import IndexWriteResult
from cranrepo.domain.repo_utils import ARTIFACT_EXTENSIONS, version_key
from cranrepo.storage.index_writer import IndexWriter

logger = logging.getLogger(__name__)

INDEX_FILE = "PACKAGES"
INDEX_FILE_GZ = "PACKAGES.gz"

# Fields copied from each DESCRIPTION into the index, in output order.
INDEX_FIELDS = [
    "Package",
    "Version",
    "Priority",
    "Depends",
    "Imports",
    "LinkingTo",
    "Suggests",
    "Enhances",
    "License",
    "License_is_FOSS",
    "License_restricts_use",
    "OS_type",
    "Archs",
    "MD5sum",
    "NeedsCompilation",
]
BINARY_EXTRA_FIELDS = ["Built"]


def read_description(archive_path: Path, package: str) -> Optional[str]:
    """
    Read `<package>/DESCRIPTION` out of a source tarball or binary archive.

    Returns None if the archive has no DESCRIPTION for that package.
    """
    member = f"{package}/DESCRIPTION"
    if archive_path.suffix == ".zip":
        with zipfile.ZipFile(archive_path, "r") as zip_ref:
            if member not in zip_ref.namelist():
                return None
            raw = zip_ref.read(member)
    else:
        with tarfile.open(archive_path, "r:gz") as tar_ref:
            try:
                handle = tar_ref.extractfile(member)
            except KeyError:
                return None
            if handle is None:
                return None
            raw = handle.read()

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


def md5sum(path: Path) -> str:
    h = hashlib.md5()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def _normalize(value: str) -> str:
    # DCF continuation lines collapse into a single line.
    return " ".join(value.split())


class DcfIndexWriter(IndexWriter):
    """
    Index writer producing PACKAGES / PACKAGES.gz, as R's tools::write_PACKAGES.

    Only the latest version of each package is listed.
    """

    def write_index(self, directory: Path, index_format: str) -> IndexWriteResult:
        directory = Path(directory)
        if index_format not in ARTIFACT_EXTENSIONS:
            raise ValueError(f"Unknown index format: {index_format}")

        extension = ARTIFACT_EXTENSIONS[index_format]
        fields = list(INDEX_FIELDS)
        if index_format != "source":
            fields += BINARY_EXTRA_FIELDS

        latest: Dict[str, deb822.Deb822] = {}
        for archive_path in sorted(directory.glob(f"*_*{extension}")):
            stanza = self._build_stanza(archive_path, extension, fields)
            if stanza is None:
                continue
            name = stanza["Package"]
            current = latest.get(name)
            if current is None or version_key(stanza["Version"]) > version_key(current["Version"]):
                latest[name] = stanza

        names = sorted(latest)
        content = "\n".join(latest[name].dump() for name in names)
        index_path = directory / INDEX_FILE
        self._write_atomic(index_path, content)
        self._write_atomic(directory / INDEX_FILE_GZ, content, compress=True)

        logger.info(f"Wrote {index_path} with {len(names)} package(s)")
        return IndexWriteResult(
            directory=directory,
            index_format=index_format,
            index_path=index_path,
            packages=names,
        )

    def _build_stanza(
        self,
        archive_path: Path,
        extension: str,
        fields: List[str],
    ) -> Optional[deb822.Deb822]:
        package = archive_path.name[: -len(extension)].split("_", 1)[0]
        try:
            text = read_description(archive_path, package)
        except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as e:
            logger.warning(f"Skipping unreadable package archive {archive_path.name}: {e}")
            return None

        if text is None:
            logger.warning(f"Skipping {archive_path.name}: no {package}/DESCRIPTION found")
            return None

        description = deb822.Deb822(text)
        if "Package" not in description or "Version" not in description:
            logger.warning(f"Skipping {archive_path.name}: DESCRIPTION lacks Package/Version")
            return None

        stanza = deb822.Deb822()
        for field in fields:
            if field == "MD5sum":
                stanza[field] = md5sum(archive_path)
            elif field in description:
                stanza[field] = _normalize(description[field])
        return stanza

    @staticmethod
    def _write_atomic(target: Path, content: str, compress: bool = False) -> None:
        tmp_path = target.with_name(f"{target.name}.tmp")
        if compress:
            with gzip.open(tmp_path, "wt", encoding="utf-8") as f:
                f.write(content)
        else:
            tmp_path.write_text(content, encoding="utf-8")
        tmp_path.replace(target)
