from pathlib import Path

import pytest

from cranrepo.core.errors import UnsupportedFlavor
from cranrepo.domain.models import ArtifactFlavor, AvailablePackage, RuntimeVersion
from cranrepo.domain.repo_utils import (
    artifact_extension,
    contrib_url,
    file_url_to_path,
    index_format_for,
    is_local_url,
    repo_bin_path,
    version_key,
)

V42 = RuntimeVersion(major=4, minor=2)
ROOT = Path("/srv/cran")


@pytest.mark.parametrize("flavor,expected", [
    ("source", "src/contrib"),
    ("win.binary", "bin/windows/contrib/4.2"),
    ("mac.binary", "bin/macosx/contrib/4.2"),
    ("mac.binary.mavericks", "bin/macosx/mavericks/contrib/4.2"),
    ("mac.binary.leopard", "bin/macosx/leopard/contrib/4.2"),
])
def test_repo_bin_path_layout(flavor, expected):
    assert repo_bin_path(ROOT, flavor, V42) == ROOT / expected


def test_repo_bin_path_aliases():
    assert repo_bin_path(ROOT, "windows", V42) == ROOT / "bin" / "windows" / "contrib" / "4.2"
    assert repo_bin_path(ROOT, "mac-mavericks", V42) == ROOT / "bin" / "macosx" / "mavericks" / "contrib" / "4.2"


@pytest.mark.parametrize("flavor", list(ArtifactFlavor))
def test_repo_bin_path_is_stable_descendant(flavor):
    first = repo_bin_path(ROOT, flavor, V42)
    assert first == repo_bin_path(ROOT, flavor, V42)
    assert first.is_relative_to(ROOT)
    assert first != ROOT


def test_source_path_ignores_runtime_version():
    expected = ROOT / "src" / "contrib"
    assert repo_bin_path(ROOT, "source", None) == expected
    assert repo_bin_path(ROOT, "source", RuntimeVersion(major=3, minor=6)) == expected
    assert repo_bin_path(ROOT, "source", V42) == expected


def test_binary_path_requires_runtime_version():
    with pytest.raises(ValueError):
        repo_bin_path(ROOT, "win.binary", None)


@pytest.mark.parametrize("flavor", ["linux.binary", "", 42, None])
def test_unsupported_flavor(flavor):
    with pytest.raises(UnsupportedFlavor):
        repo_bin_path(ROOT, flavor, V42)


def test_contrib_url():
    assert contrib_url("https://cloud.r-project.org/", "source") == "https://cloud.r-project.org/src/contrib"
    assert (
        contrib_url("https://cloud.r-project.org", "mac.binary.leopard", "4.3.2")
        == "https://cloud.r-project.org/bin/macosx/leopard/contrib/4.3"
    )


def test_index_format_family():
    assert index_format_for("mac.binary") == "mac.binary"
    assert index_format_for("mac.binary.mavericks") == "mac.binary"
    assert index_format_for("mac.binary.leopard") == "mac.binary"
    assert index_format_for("win.binary") == "win.binary"
    assert index_format_for("source") == "source"


def test_artifact_extension():
    assert artifact_extension("source") == ".tar.gz"
    assert artifact_extension("windows") == ".zip"
    assert artifact_extension("mac.binary.mavericks") == ".tgz"


def test_file_url_helpers(tmp_path):
    assert is_local_url("file:///srv/cran")
    assert is_local_url("FILE:///srv/cran")
    assert not is_local_url("https://cloud.r-project.org")
    assert file_url_to_path(tmp_path.as_uri()) == tmp_path
    assert file_url_to_path("file://localhost/srv/cran") == Path("/srv/cran")
    with pytest.raises(ValueError):
        file_url_to_path("https://cloud.r-project.org")


def test_version_key_orders_r_versions():
    versions = ["1.10.0", "1.2-3", "1.2-10", "0.9"]
    assert sorted(versions, key=version_key) == ["0.9", "1.2-3", "1.2-10", "1.10.0"]


@pytest.mark.parametrize("value,expected", [
    ("4.2", (4, 2)),
    ("4.3.2", (4, 3)),
    ((3, 6), (3, 6)),
    ({"major": "4", "minor": "3.2"}, (4, 3)),
    (RuntimeVersion(major=4, minor=1), (4, 1)),
])
def test_runtime_version_parse(value, expected):
    version = RuntimeVersion.parse(value)
    assert version.as_tuple() == expected
    assert str(version) == f"{expected[0]}.{expected[1]}"


@pytest.mark.parametrize("value", ["4", "four.two", ""])
def test_runtime_version_parse_invalid(value):
    with pytest.raises(ValueError):
        RuntimeVersion.parse(value)


def test_available_package_download_url():
    entry = AvailablePackage(
        name="pkgA",
        version="1.0",
        repository="https://example.test/repo/src/contrib/",
        path="Archive/pkgA",
    )
    assert entry.file_name(".tar.gz") == "pkgA_1.0.tar.gz"
    assert entry.download_url(".tar.gz") == "https://example.test/repo/src/contrib/Archive/pkgA/pkgA_1.0.tar.gz"


def test_flavor_parse_is_case_insensitive():
    assert ArtifactFlavor.parse("MAC") is ArtifactFlavor.MAC_BINARY
    assert ArtifactFlavor.parse(" Source ") is ArtifactFlavor.SOURCE
    assert ArtifactFlavor.parse(ArtifactFlavor.WIN_BINARY) is ArtifactFlavor.WIN_BINARY
