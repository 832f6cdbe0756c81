"""Detection of large modules that were split into a same-named sub-directory."""

from __future__ import annotations

import posixpath
from typing import Iterable


def module_stem(path: str) -> str:
    """File name without any extension: ``a/colorFlow.test.ts`` -> ``colorFlow``."""
    name = posixpath.basename(path)
    return name.split(".", 1)[0] if not name.startswith(".") else name


def superseding_prefix(path: str) -> str:
    directory = posixpath.dirname(path)
    stem = module_stem(path)
    return f"{directory}/{stem}/" if directory else f"{stem}/"


def has_superseding_modules(path: str, all_paths: Iterable[str]) -> bool:
    """True when ``<dir>/<stem>/`` holds at least one other module."""
    prefix = superseding_prefix(path)
    return any(other != path and other.startswith(prefix) for other in all_paths)
