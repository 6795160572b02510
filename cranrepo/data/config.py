from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cranrepo.core.errors import PreconditionError
from cranrepo.domain.models import RepositorySettings, RuntimeVersion

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CRANREPO_CONFIG"
REPOS_ENV_VAR = "CRANREPO_REPOS"
R_VERSION_ENV_VAR = "CRANREPO_R_VERSION"
ROOT_ENV_VAR = "CRANREPO_ROOT"

DEFAULT_CONFIG_FILE = "cranrepo.yaml"

_R_VERSION_PATTERN = re.compile(r"version (\d+)\.(\d+)")


def _config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _load_raw_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to read config {path}: {e}; using defaults")
        return {}
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring config {path}: expected a mapping")
        return {}
    return raw


def load_settings(config_path: Optional[Path] = None) -> RepositorySettings:
    """
    Load repository settings.

    Priority (highest first):
    1. Environment variables CRANREPO_REPOS, CRANREPO_R_VERSION, CRANREPO_ROOT
    2. YAML file at `config_path`, CRANREPO_CONFIG or ./cranrepo.yaml
    3. Built-in defaults
    """
    raw = _load_raw_config(Path(config_path) if config_path else _config_path())

    repos = os.environ.get(REPOS_ENV_VAR)
    if repos:
        raw["repos"] = [r.strip() for r in repos.split(",") if r.strip()]
    r_version = os.environ.get(R_VERSION_ENV_VAR)
    if r_version:
        raw["r_version"] = r_version
    root = os.environ.get(ROOT_ENV_VAR)
    if root:
        raw["repo_root"] = Path(root).expanduser()

    try:
        return RepositorySettings(**raw)
    except ValueError as e:
        logger.warning(f"Invalid repository settings: {e}; using defaults")
        return RepositorySettings()


def detect_r_version() -> Optional[RuntimeVersion]:
    """Version of the R installation on PATH, if any."""
    rscript = shutil.which("Rscript")
    if rscript is None:
        return None
    try:
        proc = subprocess.run(
            [rscript, "--version"],
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Could not run {rscript}: {e}")
        return None

    # Older releases print the banner to stderr.
    match = _R_VERSION_PATTERN.search(proc.stdout + proc.stderr)
    if not match:
        return None
    return RuntimeVersion(major=int(match.group(1)), minor=int(match.group(2)))


def resolve_runtime_version(settings: RepositorySettings) -> RuntimeVersion:
    """
    Effective R version when the caller supplied none: the configured one,
    else the installed R.
    """
    if settings.r_version:
        return RuntimeVersion.parse(settings.r_version)
    detected = detect_r_version()
    if detected is None:
        raise PreconditionError(
            f"Unable to determine the R version; set {R_VERSION_ENV_VAR} or pass runtime_version",
        )
    return detected
