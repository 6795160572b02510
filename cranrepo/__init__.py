"""
Assemble local CRAN-style package repositories.

    await make_repo(["ggplot2"], "/srv/cran-local", repos=["https://cloud.r-project.org"])
"""

from cranrepo.data.repository import make_library, make_repo, update_repo_index
from cranrepo.domain.models import ArtifactFlavor, IndexWriteResult, RuntimeVersion

__all__ = [
    "ArtifactFlavor",
    "IndexWriteResult",
    "RuntimeVersion",
    "make_library",
    "make_repo",
    "update_repo_index",
]
