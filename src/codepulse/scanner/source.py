"""Module source providers: lazy access to the text of every candidate module."""

from __future__ import annotations

import inspect
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Mapping, Protocol, Union

from codepulse.core.errors import ModuleReadFailure

Accessor = Callable[[], Union[str, Awaitable[str]]]


class ModuleSourceProvider(Protocol):
    """Supplies module paths up front and module text on demand."""

    def paths(self) -> Iterable[str]:
        ...

    def read(self, path: str) -> str | Awaitable[str]:
        ...


def normalize_path(path: str) -> str:
    """Forward slashes, no leading ``./`` or ``/``."""
    norm = path.replace("\\", "/")
    while norm.startswith("./"):
        norm = norm[2:]
    return norm.lstrip("/")


async def fetch(provider: ModuleSourceProvider, path: str) -> str:
    """Read one module, awaiting async providers. Failures become ModuleReadFailure."""
    try:
        content = provider.read(path)
        if inspect.isawaitable(content):
            content = await content
    except ModuleReadFailure:
        raise
    except Exception as exc:
        raise ModuleReadFailure(path, str(exc)) from exc
    if not isinstance(content, str):
        raise ModuleReadFailure(path, f"accessor returned {type(content).__name__}")
    return content


class MappingSourceProvider:
    """Provider over an in-memory mapping of path -> accessor (or literal text)."""

    def __init__(self, modules: Mapping[str, Accessor | str]):
        self._modules: dict[str, Accessor | str] = {
            normalize_path(p): a for p, a in modules.items()
        }

    def paths(self) -> list[str]:
        return list(self._modules)

    def read(self, path: str) -> str | Awaitable[str]:
        accessor = self._modules[normalize_path(path)]
        if callable(accessor):
            return accessor()
        return accessor


class DirectorySourceProvider:
    """Provider over a directory tree. File contents are read only when asked for."""

    def __init__(
        self,
        root: Path,
        extensions: Iterable[str] = (".ts", ".tsx", ".js", ".jsx", ".py"),
        exclude: Iterable[str] = (),
    ):
        self.root = root.resolve()
        self.extensions = tuple(extensions)
        self.exclude = [e.rstrip("/") for e in exclude]

    def paths(self) -> list[str]:
        found: list[str] = []
        for file in self.root.rglob("*"):
            if not file.is_file() or file.suffix not in self.extensions:
                continue
            rel = file.relative_to(self.root).as_posix()
            if any(f"/{excl}/" in f"/{rel}" for excl in self.exclude):
                continue
            found.append(rel)
        return sorted(found)

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")
