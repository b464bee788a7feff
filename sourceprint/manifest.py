"""JSON manifest of the files included in a run."""

from __future__ import annotations

import json
from typing import Iterable


def dumps_manifest(paths: Iterable[str]) -> bytes:
    return json.dumps(list(paths), indent=2, ensure_ascii=False).encode("utf-8")


def loads_manifest(data: bytes | str) -> list:
    paths = json.loads(data)
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise ValueError("Manifest must be a JSON array of strings")
    return paths
