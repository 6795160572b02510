import gzip
import io
import tarfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

from cranrepo.core import dependencies

UPSTREAM = "https://example.test/repo"


def description_text(name: str, version: str, **fields: str) -> str:
    lines = [
        f"Package: {name}",
        f"Version: {version}",
        "Title: Test Package",
        "License: GPL-3",
    ]
    lines += [f"{key}: {value}" for key, value in fields.items()]
    return "\n".join(lines) + "\n"


def _tar_bytes(name: str, description: str) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        data = description.encode("utf-8")
        info = tarfile.TarInfo(f"{name}/DESCRIPTION")
        info.size = len(data)
        tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def source_tarball(name: str, version: str, **fields: str) -> bytes:
    """Bytes of a minimal source package `<name>_<version>.tar.gz`."""
    return _tar_bytes(name, description_text(name, version, **fields))


def mac_binary(name: str, version: str, **fields: str) -> bytes:
    return _tar_bytes(name, description_text(name, version, **fields))


def win_binary(name: str, version: str, **fields: str) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(f"{name}/DESCRIPTION", description_text(name, version, **fields))
    return buf.getvalue()


def packages_index(entries: List[Dict[str, str]]) -> str:
    """PACKAGES text with one stanza per entry."""
    stanzas = []
    for entry in entries:
        stanzas.append("".join(f"{key}: {value}\n" for key, value in entry.items()))
    return "\n".join(stanzas)


def write_package(directory: Path, name: str, version: str, data: Optional[bytes] = None, ext: str = ".tar.gz") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}_{version}{ext}"
    path.write_bytes(data if data is not None else source_tarball(name, version))
    return path


class FakeUpstream:
    """In-memory upstream repository served through httpx.MockTransport."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None, base: str = UPSTREAM):
        self.base = base.rstrip("/")
        self.files: Dict[str, bytes] = dict(files or {})
        self.requests: List[str] = []

    def add(self, relative: str, data: bytes) -> None:
        self.files[relative] = data

    def add_index(self, contrib: str, entries: List[Dict[str, str]], compress: bool = True) -> None:
        text = packages_index(entries).encode("utf-8")
        if compress:
            self.add(f"{contrib}/PACKAGES.gz", gzip.compress(text))
        else:
            self.add(f"{contrib}/PACKAGES", text)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        prefix = self.base + "/"
        if url.startswith(prefix) and url[len(prefix):] in self.files:
            return httpx.Response(200, content=self.files[url[len(prefix):]])
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep tests independent of any local cranrepo.yaml or CRANREPO_* variables."""
    monkeypatch.setenv("CRANREPO_CONFIG", str(tmp_path / "no-such-config.yaml"))
    for var in ("CRANREPO_REPOS", "CRANREPO_R_VERSION", "CRANREPO_ROOT"):
        monkeypatch.delenv(var, raising=False)
    dependencies.reset()
    yield
    dependencies.reset()


@pytest.fixture
def repo_root(tmp_path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def upstream() -> FakeUpstream:
    repo = FakeUpstream()
    repo.add_index("src/contrib", [
        {"Package": "pkgA", "Version": "1.0.0", "Depends": "R (>= 3.5.0)"},
        {"Package": "pkgB", "Version": "0.2-1"},
    ])
    repo.add("src/contrib/pkgA_1.0.0.tar.gz", source_tarball("pkgA", "1.0.0", Depends="R (>= 3.5.0)"))
    repo.add("src/contrib/pkgB_0.2-1.tar.gz", source_tarball("pkgB", "0.2-1"))
    return repo


@pytest.fixture
def local_cran(tmp_path) -> Path:
    """A file:// upstream with pkgA and pkgB source packages."""
    root = tmp_path / "local-cran"
    contrib = root / "src" / "contrib"
    write_package(contrib, "pkgA", "1.0.0")
    write_package(contrib, "pkgB", "0.2-1")
    (contrib / "PACKAGES").write_text(
        packages_index([
            {"Package": "pkgA", "Version": "1.0.0"},
            {"Package": "pkgB", "Version": "0.2-1"},
        ]),
        encoding="utf-8",
    )
    return root
