"""
Repository assembly for the local CRAN-style repository.

This package is responsible for:
* Loading settings (YAML file + environment variables).
* Resolving the effective R version for binary packages.
* Orchestrating download, relocation and index writing per artifact flavor.
"""
