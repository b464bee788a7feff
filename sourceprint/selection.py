"""Pick the files a run renders: glob expansion, ignore filtering, ordering."""

from __future__ import annotations

import glob
import logging
import os
import pathlib
import posixpath
from dataclasses import dataclass
from typing import Iterable, List

from .config import validate_pattern

logger = logging.getLogger(__name__)

PLAIN_EXTENSION = "txt"


@dataclass(frozen=True)
class SourceFile:
    path: pathlib.Path  # absolute path on disk
    rel: str            # path relative to the source root (slash-separated)
    extension: str      # lowercase, without the dot; "txt" when the name has none


def file_extension(rel: str) -> str:
    ext = pathlib.PurePosixPath(rel).suffix.lstrip(".").lower()
    return ext or PLAIN_EXTENSION


def is_ignored(rel: str, ignore: Iterable[str]) -> bool:
    # Literal substring match over the whole relative path, not per segment:
    # ignoring "target" also drops "docs/my-target.txt".
    return any(token and token in rel for token in ignore)


def expand_pattern(root: pathlib.Path, pattern: str) -> List[str]:
    """Relative, slash-separated matches of one pattern under root."""
    matches = glob.glob(pattern, root_dir=str(root), recursive=True)
    return [posixpath.normpath(m.replace(os.sep, "/")) for m in matches]


def select_files(root: pathlib.Path, patterns: Iterable[str], ignore: Iterable[str]) -> List[SourceFile]:
    """
    Expand every pattern against root, union the matches and return the regular
    files that survive the ignore list, sorted by relative path.
    """
    patterns = list(patterns)
    ignore = list(ignore)
    # Fail on a bad pattern before touching the filesystem.
    for pattern in patterns:
        validate_pattern(pattern)

    root = pathlib.Path(root).absolute()
    real_root = root.resolve()

    seen = set()
    selected: List[SourceFile] = []
    for pattern in patterns:
        for rel in expand_pattern(root, pattern):
            if rel in seen:
                continue
            seen.add(rel)
            if is_ignored(rel, ignore):
                logger.debug("Ignoring %s", rel)
                continue
            path = root / rel
            if path.is_symlink() or not path.is_file():
                continue
            try:
                rel.encode("utf-8")
            except UnicodeEncodeError:
                # glob hands back undecodable bytes as lone surrogates.
                logger.warning("Skipping %r: file name is not valid UTF-8", rel)
                continue
            try:
                path.resolve().relative_to(real_root)
            except ValueError:
                logger.warning("Skipping %s: resolves outside %s", rel, root)
                continue
            selected.append(SourceFile(path=path, rel=rel, extension=file_extension(rel)))

    selected.sort(key=lambda f: f.rel)
    logger.debug("Selected %d files under %s", len(selected), root)
    return selected
