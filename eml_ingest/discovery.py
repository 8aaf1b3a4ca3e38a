"""Local discovery of ``.eml`` files to ingest."""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import structlog

from .errors import DiscoveryError

logger = structlog.get_logger()

EML_SUFFIX = ".eml"


def is_eml_file(path: str | os.PathLike[str]) -> bool:
    return os.fspath(path).lower().endswith(EML_SUFFIX)


def discover_email_files(path: str | os.PathLike[str]) -> list[Path]:
    """Return absolute paths of every ``.eml`` file at *path*.

    A single file must carry the ``.eml`` extension (case-insensitive).
    A directory is walked recursively, depth-first, visiting the entries
    of each directory in lexical order, so repeated calls on the same tree
    return the same list.  Symlinked directories are not followed.

    Raises :class:`DiscoveryError` when the path does not exist, a single
    file is not an ``.eml`` file, or a directory holds no ``.eml`` files.
    """
    root = Path(path)
    if not root.exists():
        raise DiscoveryError(f"path not found: {root}")

    if not root.is_dir():
        if not is_eml_file(root):
            raise DiscoveryError(f"file is not an .eml file: {root}")
        return [root.absolute()]

    files = list(_walk(root.absolute()))
    if not files:
        raise DiscoveryError(f"no .eml files found under {root}")

    logger.debug("email_files_discovered", path=str(root), count=len(files))
    return files


def _walk(directory: Path) -> Iterator[Path]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as exc:
        raise DiscoveryError(f"reading directory {directory}: {exc.strerror}") from exc

    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(Path(entry.path))
        elif is_eml_file(entry.name) and entry.is_file():
            yield Path(entry.path)
