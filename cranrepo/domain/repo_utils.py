from pathlib import Path, PurePosixPath
from typing import Any, Dict, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

from cranrepo.domain.models import ArtifactFlavor, RuntimeVersion

# Platform segment under bin/ for every binary flavor.
PLATFORM_SEGMENTS: Dict[ArtifactFlavor, str] = {
    ArtifactFlavor.WIN_BINARY: "windows",
    ArtifactFlavor.MAC_BINARY: "macosx",
    ArtifactFlavor.MAC_BINARY_MAVERICKS: "macosx/mavericks",
    ArtifactFlavor.MAC_BINARY_LEOPARD: "macosx/leopard",
}

# The macOS sub-variants share one index format.
INDEX_FORMAT_FAMILY: Dict[ArtifactFlavor, str] = {
    ArtifactFlavor.SOURCE: "source",
    ArtifactFlavor.WIN_BINARY: "win.binary",
    ArtifactFlavor.MAC_BINARY: "mac.binary",
    ArtifactFlavor.MAC_BINARY_MAVERICKS: "mac.binary",
    ArtifactFlavor.MAC_BINARY_LEOPARD: "mac.binary",
}

ARTIFACT_EXTENSIONS: Dict[str, str] = {
    "source": ".tar.gz",
    "win.binary": ".zip",
    "mac.binary": ".tgz",
}

FILE_SCHEME = "file"


def contrib_path(flavor: Any, runtime_version: Optional[RuntimeVersion] = None) -> PurePosixPath:
    """
    Relative location of a flavor's packages inside a CRAN-style repository.

    Source packages live in ``src/contrib``; binaries in
    ``bin/<platform>/contrib/<major>.<minor>``.
    """
    flavor = ArtifactFlavor.parse(flavor)
    if flavor is ArtifactFlavor.SOURCE:
        return PurePosixPath("src", "contrib")

    if runtime_version is None:
        raise ValueError(f"An R version is required for {flavor.value} packages")
    version = RuntimeVersion.parse(runtime_version)
    return PurePosixPath("bin", PLATFORM_SEGMENTS[flavor], "contrib", str(version))


def repo_bin_path(root: Path, flavor: Any, runtime_version: Optional[RuntimeVersion] = None) -> Path:
    """Directory under the repository root that holds packages of one flavor."""
    return Path(root).joinpath(*contrib_path(flavor, runtime_version).parts)


def contrib_url(repo_url: str, flavor: Any, runtime_version: Optional[RuntimeVersion] = None) -> str:
    """URL of a flavor's packages inside an upstream repository."""
    return f"{repo_url.rstrip('/')}/{contrib_path(flavor, runtime_version).as_posix()}"


def index_format_for(flavor: Any) -> str:
    return INDEX_FORMAT_FAMILY[ArtifactFlavor.parse(flavor)]


def artifact_extension(flavor: Any) -> str:
    return ARTIFACT_EXTENSIONS[index_format_for(flavor)]


def is_local_url(url: str) -> bool:
    return urlparse(url).scheme.lower() == FILE_SCHEME


def file_url_to_path(url: str) -> Path:
    """
    Convert a file:// URL into a native filesystem path.

    ``file:///srv/cran`` and ``file://localhost/srv/cran`` give ``/srv/cran``;
    ``file:///C:/cran`` gives ``C:\\cran`` on Windows. A non-empty host
    (``file://./cran``) is treated as the start of a relative path.
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() != FILE_SCHEME:
        raise ValueError(f"Not a file URL: {url}")
    if parsed.netloc in ("", "localhost"):
        raw = parsed.path
    else:
        raw = parsed.netloc + parsed.path
    return Path(url2pathname(raw))


def version_key(v: str) -> tuple:
    """
    Convert an R package version ("1.2-3") into a sortable tuple.
    """
    v_str = str(v) if v is not None else ""
    parts = []
    for part in v_str.replace("-", ".").split("."):
        try:
            parts.append((0, int(part)))
        except ValueError:
            parts.append((1, part))
    return tuple(parts)
