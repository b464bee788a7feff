from __future__ import annotations

import shutil
from pathlib import Path
from typing import List, Mapping, Union

import pytest

from sourceprint import acquire, pipeline

HEAD = "0123456789abcdef0123456789abcdef01234567"

SCENARIO = {
    "a.py": "print(1)\n",
    "b/node_modules/x.js": "module.exports = 1;\n",
    "b/lib/y.js": "const y = () => 2;\n",
    "README.md": "# demo\n",
}


def write_tree(root: Path, files: Mapping[str, Union[str, bytes]]) -> Path:
    """Write `relative path -> contents` entries under root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


class FakeRemote:
    """Stands in for `git clone`: copies a local tree into the clone directory."""

    def __init__(self, upstream: Path):
        self.upstream = upstream
        self.calls: List[tuple] = []
        self.error: Exception | None = None

    def clone(self, url, dst, auth=None):
        self.calls.append((url, dst, auth))
        if self.error is not None:
            raise self.error
        shutil.copytree(self.upstream, dst)


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """A local directory holding the a.py / node_modules / lib scenario."""
    return write_tree(tmp_path / "project", SCENARIO)


@pytest.fixture
def fake_remote(tmp_path: Path, monkeypatch) -> FakeRemote:
    remote = FakeRemote(write_tree(tmp_path / "upstream", SCENARIO))
    monkeypatch.setattr(acquire, "git_clone", remote.clone)
    monkeypatch.setattr(pipeline, "git_head_commit", lambda repo_dir: HEAD)
    return remote
