import logging
from pathlib import Path

from cranrepo.core.errors import ProvisioningError

logger = logging.getLogger(__name__)


def ensure_directory(path: Path, quiet: bool = False) -> bool:
    """
    Create a repository directory (and its parents) if it does not exist yet.

    Returns:
        True if the directory was created, False if it already existed.

    Raises:
        ProvisioningError: If the directory could not be created.
    """
    path = Path(path)
    if path.is_dir():
        return False

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Unable to create repo path {path}: {e}")
        raise ProvisioningError(path, str(e)) from e

    if not quiet:
        logger.info(f"Created new folder: {path}")
    return True
