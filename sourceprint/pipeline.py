"""
Run one snapshot: acquire the source, select files, highlight them and write
`<name>_generated/<stem>.html` plus `<stem>.json` under the output root.
"""

from __future__ import annotations

import logging
import pathlib
import re
import shutil
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Pattern

from .acquire import Auth, acquire, auth_from_mode, derive_name, git_head_commit, is_remote
from .config import ProcessConfig
from .document import assemble, build_stylesheet
from .errors import OutputError
from .highlight import Fragment, Highlighter
from .manifest import dumps_manifest
from .selection import SourceFile, select_files

logger = logging.getLogger(__name__)

# Called after each file with (files done, files total, file).
Progress = Callable[[int, int, SourceFile], None]


@dataclass
class SkippedFile:
    rel: str
    reason: str  # "unreadable" | "content"
    detail: str = ""


@dataclass
class RunReport:
    source: str
    root: pathlib.Path
    output_dir: pathlib.Path
    html_path: pathlib.Path
    manifest_path: pathlib.Path
    manifest: List[str] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)
    commit: str | None = None

    @property
    def unreadable(self) -> List[SkippedFile]:
        return [s for s in self.skipped if s.reason == "unreadable"]


def compile_content_filter(text: str) -> Pattern[str]:
    """`*` and `**` match any run of characters (newlines included); the rest is literal."""
    pieces = re.split(r"\*+", text)
    return re.compile(".*".join(re.escape(p) for p in pieces), re.IGNORECASE | re.DOTALL)


def matches_content(content: str, filters: Iterable[Pattern[str]]) -> bool:
    filters = list(filters)
    if not filters:
        return True
    return any(f.search(content) for f in filters)


def read_source(source_file: SourceFile) -> str:
    # Strict decoding, no newline translation: \r\n survives into the output.
    return source_file.path.read_bytes().decode("utf-8")


def _remove_tree(path: pathlib.Path) -> None:
    if not path.exists():
        return
    logger.info("Removing previous %s", path)
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise OutputError(f"Cannot remove {path}: {e}") from e


def _make_dirs(path: pathlib.Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputError(f"Cannot create directory {path}: {e}") from e


def render_files(
    files: List[SourceFile],
    config: ProcessConfig,
    highlighter: Highlighter,
    progress: Progress | None = None,
) -> tuple[List[Fragment], List[SkippedFile]]:
    """Read and highlight files in order. Read failures skip the file; render failures raise."""
    filters = [compile_content_filter(c) for c in config.content_filters]
    trace = logger.info if config.debug else logger.debug
    fragments: List[Fragment] = []
    skipped: List[SkippedFile] = []
    total = len(files)
    for done, source_file in enumerate(files, 1):
        trace("Processing %s", source_file.path)
        try:
            content = read_source(source_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", source_file.rel, e)
            skipped.append(SkippedFile(source_file.rel, "unreadable", str(e)))
        else:
            if matches_content(content, filters):
                fragments.append(highlighter.render(source_file.rel, content, source_file.extension))
            else:
                trace("No content filter matched %s", source_file.rel)
                skipped.append(SkippedFile(source_file.rel, "content"))
        if progress is not None:
            progress(done, total, source_file)
    return fragments, skipped


def run_pipeline(
    source: str,
    output_root: str | pathlib.Path = "output",
    config: ProcessConfig | None = None,
    auth: Auth | None = None,
    progress: Progress | None = None,
    highlighter: Highlighter | None = None,
) -> RunReport:
    config = config or ProcessConfig()
    # Everything that can be rejected up front is rejected before any I/O.
    config.validate()
    remote = is_remote(source)
    if auth is None and remote:
        auth = auth_from_mode(config.auth, config.ssh_key)

    output_root = pathlib.Path(output_root)
    name = derive_name(source)
    stem = config.filename or name
    clone_dir = output_root / name
    output_dir = output_root / f"{name}_generated"

    if remote:
        # Every clone run is a fresh snapshot.
        _remove_tree(clone_dir)
        _remove_tree(output_dir)
        _make_dirs(output_root)

    root = acquire(source, clone_dir, auth)
    try:
        commit = None
        if remote:
            commit = git_head_commit(str(root))
            logger.info("Clone complete (HEAD: %s)", commit[:8])

        files = select_files(root, config.patterns, config.ignore)
        logger.info("Processing %d files from %s", len(files), root)
        _make_dirs(output_dir)

        highlighter = highlighter or Highlighter()
        fragments, skipped = render_files(files, config, highlighter, progress)
        manifest = [f.rel for f in fragments]
        document = assemble(
            fragments,
            build_stylesheet(highlighter.stylesheet()),
            index=manifest if config.include_index else None,
        )

        html_path = output_dir / f"{stem}.html"
        manifest_path = output_dir / f"{stem}.json"
        try:
            html_bytes = document.encode("utf-8")
            manifest_bytes = dumps_manifest(manifest)
            html_path.write_bytes(html_bytes)
            manifest_path.write_bytes(manifest_bytes)
        except (OSError, UnicodeError) as e:
            raise OutputError(f"Cannot write output to {output_dir}: {e}") from e
    finally:
        if remote and not config.keep_clone:
            shutil.rmtree(clone_dir, ignore_errors=True)

    logger.info("Processing complete. %d files matched. Output saved to %s", len(manifest), output_dir / stem)
    return RunReport(
        source=source,
        root=root,
        output_dir=output_dir,
        html_path=html_path,
        manifest_path=manifest_path,
        manifest=manifest,
        skipped=skipped,
        commit=commit,
    )
