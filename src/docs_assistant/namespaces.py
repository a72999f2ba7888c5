"""
Namespace Validation

A namespace partitions search and retrieval to one document corpus (one site,
one version of a site). The same identifiers are used as vector store
partitions and as keys for instant-search data files on disk.

Security
--------
- Namespaces are validated to prevent path traversal when used as file names
- Only alphanumerics, hyphens, underscores, dots and colons are allowed
- Maximum 128 characters
"""

from __future__ import annotations

import re
from pathlib import Path

from .core.errors import InvalidNamespaceError


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

NAMESPACE_PATTERN = re.compile(r"^[A-Za-z0-9_.:-]{1,128}$")


# ---------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------

def validate_namespace(namespace: str) -> str:
    """
    Validate a namespace identifier and return it unchanged.

    Raises
    ------
    InvalidNamespaceError
        If the value is empty, too long, contains disallowed characters, or
        is a relative path component ("." or "..").
    """
    if not namespace:
        raise InvalidNamespaceError("namespace is required")

    if not NAMESPACE_PATTERN.match(namespace) or namespace in {".", ".."}:
        raise InvalidNamespaceError(
            f"Invalid namespace '{namespace}': must be 1-128 characters of "
            "letters, digits, '-', '_', '.', or ':'"
        )

    return namespace


def namespace_file(directory: str | Path, namespace: str, suffix: str = ".json") -> Path:
    """
    Return the data file path for a namespace inside `directory`.

    The namespace is validated before being used as a file name.
    """
    validate_namespace(namespace)
    return Path(directory) / f"{namespace}{suffix}"
