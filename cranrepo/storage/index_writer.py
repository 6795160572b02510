from abc import ABC, abstractmethod
from pathlib import Path

from cranrepo.domain.models import IndexWriteResult


class IndexWriter(ABC):
    """
    Abstract base class for writing a repository directory's package index.
    """

    @abstractmethod
    def write_index(self, directory: Path, index_format: str) -> IndexWriteResult:
        """
        Scan the package archives in `directory` and fully rewrite its index.

        `index_format` is the index format family ('source', 'win.binary' or
        'mac.binary'); it decides which archives are scanned.
        """
        pass
