"""End-to-end tests for sourceprint.pipeline."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path

import pytest

from sourceprint.config import ProcessConfig
from sourceprint.errors import AcquisitionError, ConfigurationError, RenderError
from sourceprint.highlight import Highlighter
from sourceprint.pipeline import compile_content_filter, run_pipeline
from tests.conftest import HEAD, write_tree

URL = "https://example.com/acme/demo.git"
SCENARIO_CONFIG = ProcessConfig(patterns=("**/*.py", "**/*.js"), ignore=("node_modules",))


def headings(html_text: str):
    return re.findall(r"<h2>(.*?)</h2>", html_text)


def test_scenario_from_local_directory(source_tree: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    report = run_pipeline(str(source_tree), out, SCENARIO_CONFIG)

    assert report.output_dir == out / "project_generated"
    assert report.html_path == out / "project_generated" / "project.html"
    assert report.manifest_path == out / "project_generated" / "project.json"
    assert report.manifest == ["a.py", "b/lib/y.js"]
    assert report.commit is None

    manifest = json.loads(report.manifest_path.read_text(encoding="utf-8"))
    document = report.html_path.read_text(encoding="utf-8")
    assert manifest == ["a.py", "b/lib/y.js"]
    assert headings(document) == manifest
    assert "node_modules" not in document
    assert '<code class="language-py">' in document
    assert '<code class="language-js">' in document


def test_local_source_is_never_deleted(source_tree: Path, tmp_path: Path) -> None:
    run_pipeline(str(source_tree), tmp_path / "out", SCENARIO_CONFIG)
    assert sorted(p.name for p in source_tree.iterdir()) == ["README.md", "a.py", "b"]


def test_runs_are_deterministic(source_tree: Path, tmp_path: Path) -> None:
    first = run_pipeline(str(source_tree), tmp_path / "one", SCENARIO_CONFIG)
    second = run_pipeline(str(source_tree), tmp_path / "two", SCENARIO_CONFIG)

    assert first.manifest_path.read_bytes() == second.manifest_path.read_bytes()
    assert first.html_path.read_bytes() == second.html_path.read_bytes()


def test_no_matches_still_writes_both_outputs(source_tree: Path, tmp_path: Path) -> None:
    report = run_pipeline(str(source_tree), tmp_path / "out", ProcessConfig(patterns=("**/*.go",)))

    assert report.manifest_path.read_bytes() == b"[]"
    document = report.html_path.read_text(encoding="utf-8")
    assert document.startswith("<html><head>")
    assert document.endswith("<body></body></html>")
    assert headings(document) == []


def test_unknown_extension_is_rendered_as_plain_text(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "src", {"data.qqq": "<tag> & more\n"})
    report = run_pipeline(str(root), tmp_path / "out", ProcessConfig(patterns=("*.qqq",)))

    document = report.html_path.read_text(encoding="utf-8")
    assert report.manifest == ["data.qqq"]
    assert '<code class="language-qqq">&lt;tag&gt; &amp; more\n</code>' in document


def test_unreadable_file_is_skipped_with_a_warning(tmp_path: Path, caplog) -> None:
    root = write_tree(tmp_path / "src", {
        "a.py": "a = 1\n",
        "b.py": b"\xff\xfe\x00binary\x80",
        "c.py": "c = 3\n",
    })

    with caplog.at_level(logging.WARNING, logger="sourceprint"):
        report = run_pipeline(str(root), tmp_path / "out", ProcessConfig(patterns=("*.py",)))

    assert report.manifest == ["a.py", "c.py"]
    assert [s.rel for s in report.unreadable] == ["b.py"]
    assert headings(report.html_path.read_text(encoding="utf-8")) == ["a.py", "c.py"]
    assert json.loads(report.manifest_path.read_bytes()) == ["a.py", "c.py"]
    assert any("b.py" in r.getMessage() for r in caplog.records if r.levelno == logging.WARNING)


def test_read_errors_from_the_filesystem_are_skipped(tmp_path: Path, monkeypatch) -> None:
    from sourceprint import pipeline

    root = write_tree(tmp_path / "src", {"a.py": "a = 1\n", "locked.py": "secret\n"})
    real_read = pipeline.read_source

    def read(source_file):
        if source_file.rel == "locked.py":
            raise PermissionError(13, "Permission denied", str(source_file.path))
        return real_read(source_file)

    monkeypatch.setattr(pipeline, "read_source", read)
    report = run_pipeline(str(root), tmp_path / "out", ProcessConfig(patterns=("*.py",)))

    assert report.manifest == ["a.py"]
    assert report.skipped[0].rel == "locked.py"
    assert "Permission denied" in report.skipped[0].detail


def test_render_error_aborts_the_run(source_tree: Path, tmp_path: Path) -> None:
    class Broken(Highlighter):
        def highlight_body(self, rel, content, extension):
            raise RenderError(rel, ValueError("boom"))

    with pytest.raises(RenderError, match="a.py"):
        run_pipeline(str(source_tree), tmp_path / "out", SCENARIO_CONFIG, highlighter=Broken())
    assert not (tmp_path / "out" / "project_generated" / "project.html").exists()


def test_filename_override(source_tree: Path, tmp_path: Path) -> None:
    config = ProcessConfig(patterns=("*.py",), filename="snapshot")
    report = run_pipeline(str(source_tree), tmp_path / "out", config)
    assert report.html_path.name == "snapshot.html"
    assert report.manifest_path.name == "snapshot.json"
    assert report.output_dir.name == "project_generated"


def test_content_filters(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "src", {
        "app.js": "if (app.disabled('x')) {}\n",
        "other.js": "console.log(1)\n",
    })
    config = ProcessConfig(patterns=("*.js",), content_filters=("APP.DIS*",))

    report = run_pipeline(str(root), tmp_path / "out", config)

    assert report.manifest == ["app.js"]
    assert [(s.rel, s.reason) for s in report.skipped] == [("other.js", "content")]


def test_content_filter_treats_regex_characters_literally() -> None:
    pattern = compile_content_filter("foo(*)")
    assert pattern.search("call foo(1, 2)")
    assert not pattern.search("call foo 1")


def test_index_lists_processed_files(source_tree: Path, tmp_path: Path) -> None:
    config = ProcessConfig(patterns=SCENARIO_CONFIG.patterns, ignore=SCENARIO_CONFIG.ignore, include_index=True)
    report = run_pipeline(str(source_tree), tmp_path / "out", config)
    document = report.html_path.read_text(encoding="utf-8")
    assert "<details><summary>All Files</summary><p>a.py</p>\n<p>b/lib/y.js</p></details>" in document
    assert headings(document) == ["a.py", "b/lib/y.js"]


def test_progress_observer_sees_every_file(source_tree: Path, tmp_path: Path) -> None:
    seen = []
    run_pipeline(
        str(source_tree), tmp_path / "out", SCENARIO_CONFIG,
        progress=lambda done, total, f: seen.append((done, total, f.rel)),
    )
    assert seen == [(1, 2, "a.py"), (2, 2, "b/lib/y.js")]


def test_bad_pattern_fails_before_any_io(fake_remote, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        run_pipeline(URL, tmp_path / "out", ProcessConfig(patterns=("../*.py",)))
    assert fake_remote.calls == []
    assert not (tmp_path / "out").exists()


def test_missing_local_source(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        run_pipeline(str(tmp_path / "nope"), tmp_path / "out")


def test_clone_run_layout_and_cleanup(fake_remote, tmp_path: Path) -> None:
    out = tmp_path / "out"
    report = run_pipeline(URL, out, SCENARIO_CONFIG)

    assert report.commit == HEAD
    assert report.html_path == out / "demo_generated" / "demo.html"
    assert json.loads(report.manifest_path.read_bytes()) == ["a.py", "b/lib/y.js"]
    # the clone is gone once the run finishes
    assert not (out / "demo").exists()


def test_clone_run_replaces_previous_snapshot(fake_remote, tmp_path: Path) -> None:
    out = tmp_path / "out"
    write_tree(out, {"demo/stale.py": "old\n", "demo_generated/stale.html": "old"})

    first = run_pipeline(URL, out, SCENARIO_CONFIG)
    first_manifest = first.manifest_path.read_bytes()
    second = run_pipeline(URL, out, SCENARIO_CONFIG)

    assert not (out / "demo_generated" / "stale.html").exists()
    assert second.manifest_path.read_bytes() == first_manifest
    assert "stale.py" not in second.manifest


def test_keep_clone(fake_remote, tmp_path: Path) -> None:
    config = ProcessConfig(patterns=("**/*.py",), keep_clone=True)
    run_pipeline(URL, tmp_path / "out", config)
    assert (tmp_path / "out" / "demo" / "a.py").exists()


def test_acquisition_error_produces_no_output(fake_remote, tmp_path: Path) -> None:
    fake_remote.error = AcquisitionError(URL, "fatal: could not read Username")

    with pytest.raises(AcquisitionError, match="example.com/acme/demo.git"):
        run_pipeline(URL, tmp_path / "out", SCENARIO_CONFIG)
    assert not (tmp_path / "out" / "demo_generated").exists()


def test_token_auth_without_credentials_fails_before_cloning(fake_remote, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("GITHUB_USERNAME", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(ConfigurationError):
        run_pipeline(URL, tmp_path / "out", ProcessConfig(auth="token"))
    assert fake_remote.calls == []


def test_name_that_is_not_utf8_does_not_abort_the_run(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "src", {"a.py": "a = 1\n"})
    with open(os.path.join(os.fsencode(root), b"caf\xe9.py"), "wb") as f:
        f.write(b"x = 1\n")

    report = run_pipeline(str(root), tmp_path / "out", ProcessConfig(patterns=("*.py",)))

    assert report.manifest == ["a.py"]
    assert headings(report.html_path.read_text(encoding="utf-8")) == ["a.py"]
    assert json.loads(report.manifest_path.read_bytes()) == ["a.py"]


def test_line_endings_are_kept_as_read(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "src", {"notes.qqq": b"x\r\ny\r\n"})

    report = run_pipeline(str(root), tmp_path / "out", ProcessConfig(patterns=("*.qqq",)))

    document = report.html_path.read_bytes()
    assert b'<code class="language-qqq">x\r\ny\r\n</code>' in document
