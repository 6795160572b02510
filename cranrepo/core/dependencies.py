from pathlib import Path
from typing import Optional

from cranrepo.data.config import load_settings
from cranrepo.domain.models import RepositorySettings
from cranrepo.services.importer.index_downloader import PackageIndexReader
from cranrepo.services.importer.package_importer import PackageDownloader
from cranrepo.storage.dcf_index_writer import DcfIndexWriter
from cranrepo.storage.index_writer import IndexWriter

# Resolve project root (not the Python package root)
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_REPO_DIR = _PROJECT_ROOT / "data" / "repo"

_settings: Optional[RepositorySettings] = None
_index_reader: Optional[PackageIndexReader] = None
_downloader: Optional[PackageDownloader] = None
_index_writer: Optional[IndexWriter] = None


def get_settings() -> RepositorySettings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_repo_root() -> Path:
    """
    Root directory of the served repository.

    Priority:
    1. `repo_root` from settings (CRANREPO_ROOT / cranrepo.yaml)
    2. '<project root>/data/repo'
    """
    root = get_settings().repo_root or _DEFAULT_REPO_DIR
    root.mkdir(parents=True, exist_ok=True)
    return root


def get_index_reader() -> PackageIndexReader:
    global _index_reader
    if _index_reader is None:
        _index_reader = PackageIndexReader(timeout=get_settings().timeout_seconds)
    return _index_reader


def get_downloader() -> PackageDownloader:
    global _downloader
    if _downloader is None:
        _downloader = PackageDownloader(timeout=get_settings().timeout_seconds)
    return _downloader


def get_index_writer() -> IndexWriter:
    global _index_writer
    if _index_writer is None:
        _index_writer = DcfIndexWriter()
    return _index_writer


def reset() -> None:
    """Drop cached settings and collaborators (used after configuration changes)."""
    global _settings, _index_reader, _downloader, _index_writer
    _settings = None
    _index_reader = None
    _downloader = None
    _index_writer = None
