#!/usr/bin/env python3
"""
Render a repository into a single printable HTML page plus a JSON manifest.

Usage
    sourceprint https://github.com/expressjs/express.git -p "lib/**/*.js"
    sourceprint ./my-project -o output -p "**/*.py" -i node_modules

Outputs land in OUT_ROOT/<name>_generated/<name>.html and .json.
"""

from __future__ import annotations

import argparse
import logging
import sys
import webbrowser
from typing import List

from tqdm import tqdm

from .config import DEFAULT_IGNORE, DEFAULT_PATTERNS, ProcessConfig
from .errors import SourcePrintError
from .pipeline import run_pipeline
from .selection import SourceFile

logger = logging.getLogger("sourceprint")


class ProgressBar:
    """Progress observer backed by tqdm; the bar is created on the first file."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.bar = None

    def __call__(self, done: int, total: int, source_file: SourceFile) -> None:
        if not self.enabled:
            return
        if self.bar is None:
            self.bar = tqdm(total=total, unit="file", file=sys.stderr)
        self.bar.update(1)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Render a repository or directory into one printable HTML page")
    ap.add_argument("source", help="Git URL (https://..., git@host:owner/repo.git) or a local directory")
    ap.add_argument("-o", "--out", default="output", help="Output root (default: ./output)")
    ap.add_argument("-p", "--pattern", action="append", dest="patterns", metavar="GLOB",
                    help=f"Glob to include, repeatable (default: {' '.join(DEFAULT_PATTERNS)})")
    ap.add_argument("-i", "--ignore", action="append", metavar="SUBSTRING",
                    help=f"Skip paths containing this text, repeatable (default: {' '.join(DEFAULT_IGNORE)})")
    ap.add_argument("--filename", help="Output file stem (default: repository or directory name)")
    ap.add_argument("--auth", choices=["none", "ssh", "token"], default="none",
                    help="Clone credentials: ssh key, or GITHUB_USERNAME/GITHUB_TOKEN from the environment")
    ap.add_argument("--ssh-key", help="Private key for --auth ssh (default: ~/.ssh/id_rsa)")
    ap.add_argument("-c", "--content", action="append", default=[], metavar="TEXT",
                    help="Only keep files whose content contains TEXT (* wildcards, case-insensitive), repeatable")
    ap.add_argument("--index", action="store_true", help="Add a collapsible list of all files at the top")
    ap.add_argument("--keep-clone", action="store_true", help="Keep the cloned repository after rendering")
    ap.add_argument("--debug", action="store_true", help="Log every file processed")
    ap.add_argument("--no-progress", action="store_true", help="Don't show a progress bar")
    ap.add_argument("--open", action="store_true", help="Open the HTML file in a browser when done")
    return ap


def config_from_args(args: argparse.Namespace) -> ProcessConfig:
    return ProcessConfig(
        patterns=tuple(args.patterns) if args.patterns else DEFAULT_PATTERNS,
        ignore=tuple(args.ignore) if args.ignore else DEFAULT_IGNORE,
        filename=args.filename,
        debug=args.debug,
        content_filters=tuple(args.content),
        include_index=args.index,
        keep_clone=args.keep_clone,
        auth=args.auth,
        ssh_key=args.ssh_key,
    )


def main(argv: List[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = config_from_args(args)
    progress = ProgressBar(enabled=not args.no_progress)
    try:
        report = run_pipeline(args.source, args.out, config, progress=progress)
    except SourcePrintError as e:
        logger.error("%s", e)
        return 1
    finally:
        progress.close()

    if report.unreadable:
        print(f"⚠ Skipped {len(report.unreadable)} unreadable file(s)", file=sys.stderr)
    print(f"✓ Wrote {len(report.manifest)} files to {report.html_path.resolve()}", file=sys.stderr)
    print(f"✓ Manifest: {report.manifest_path.resolve()}", file=sys.stderr)

    if args.open:
        webbrowser.open(f"file://{report.html_path.resolve()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
