#!/usr/bin/env python3
"""
Flask web app for sourceprint with an on-disk render cache.

    GET /                                 recent renders
    GET /github.com/owner/repo            printable HTML
    GET /manifest/github.com/owner/repo   JSON manifest

`pattern` and `ignore` query parameters (repeatable) override the defaults.
"""

import hashlib
import html
import json
import logging
import os
import tempfile
import time
from pathlib import Path

from flask import Flask, Response, request

from .config import DEFAULT_IGNORE, DEFAULT_PATTERNS, ProcessConfig
from .errors import ConfigurationError, SourcePrintError
from .manifest import loads_manifest
from .pipeline import run_pipeline

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.setdefault("CACHE_DIR", os.environ.get("SOURCEPRINT_CACHE", "/tmp/sourceprint_cache"))
app.config.setdefault("CACHE_TTL_HOURS", 24)
app.config.setdefault("MAX_CACHED_REPOS", 100)


def cache_dir() -> Path:
    path = Path(app.config["CACHE_DIR"])
    path.mkdir(parents=True, exist_ok=True)
    return path


def metadata_path() -> Path:
    return cache_dir() / "metadata.json"


def load_metadata():
    """Load cache metadata"""
    path = metadata_path()
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Discarding unreadable cache metadata %s: %s", path, e)
    return {"repos": {}}


def save_metadata(metadata):
    with open(metadata_path(), "w", encoding="utf-8") as f:
        json.dump(metadata, f)


def get_cache_key(repo_url: str, config: ProcessConfig) -> str:
    raw = json.dumps([repo_url, list(config.patterns), list(config.ignore)])
    return hashlib.md5(raw.encode("utf-8")).hexdigest()


def drop_entry(metadata, key):
    metadata["repos"].pop(key, None)
    for suffix in (".html", ".json"):
        (cache_dir() / f"{key}{suffix}").unlink(missing_ok=True)


def cleanup_old_cache(metadata):
    """Remove expired entries, then the oldest ones beyond MAX_CACHED_REPOS."""
    cutoff_time = time.time() - app.config["CACHE_TTL_HOURS"] * 3600
    for key in [k for k, info in metadata["repos"].items() if info["timestamp"] < cutoff_time]:
        drop_entry(metadata, key)

    max_repos = app.config["MAX_CACHED_REPOS"]
    if len(metadata["repos"]) > max_repos:
        by_age = sorted(metadata["repos"].items(), key=lambda x: x[1]["timestamp"])
        for key, _ in by_age[:-max_repos]:
            drop_entry(metadata, key)


def cached_files_ok(key: str) -> bool:
    """Both cached files exist and the manifest is a JSON array of paths."""
    html_file = cache_dir() / f"{key}.html"
    manifest_file = cache_dir() / f"{key}.json"
    if not html_file.exists() or not manifest_file.exists():
        return False
    try:
        loads_manifest(manifest_file.read_bytes())
    except ValueError as e:
        logger.warning("Re-rendering %s: bad cached manifest: %s", key, e)
        return False
    return True


def parse_repo_path(repo_path: str) -> str:
    """`github.com/owner/repo` -> `https://github.com/owner/repo`."""
    parts = [p for p in repo_path.strip("/").split("/") if p]
    if len(parts) < 3 or "." not in parts[0] or any(p in (".", "..") for p in parts):
        raise ConfigurationError(f"Invalid path. Use: {request.host_url}github.com/owner/repo")
    return "https://" + "/".join(parts)


def config_from_request() -> ProcessConfig:
    return ProcessConfig(
        patterns=tuple(request.args.getlist("pattern")) or DEFAULT_PATTERNS,
        ignore=tuple(request.args.getlist("ignore")) or DEFAULT_IGNORE,
    )


def render_cached(repo_path: str):
    """Return (cache key, metadata entry), rendering the repository on a cache miss."""
    repo_url = parse_repo_path(repo_path)
    config = config_from_request()
    config.validate()
    key = get_cache_key(repo_url, config)
    metadata = load_metadata()

    info = metadata["repos"].get(key)
    fresh = info is not None and time.time() - info["timestamp"] < app.config["CACHE_TTL_HOURS"] * 3600
    if fresh and cached_files_ok(key):
        info["last_accessed"] = time.time()
        save_metadata(metadata)
        return key, info

    with tempfile.TemporaryDirectory(prefix="sourceprint_") as tmpdir:
        report = run_pipeline(repo_url, tmpdir, config)
        (cache_dir() / f"{key}.html").write_bytes(report.html_path.read_bytes())
        (cache_dir() / f"{key}.json").write_bytes(report.manifest_path.read_bytes())

    info = {
        "url": repo_url,
        "path": repo_path,
        "name": repo_url.rstrip("/").split("/")[-1],
        "timestamp": time.time(),
        "last_accessed": time.time(),
        "commit": (report.commit or "unknown")[:8],
        "files": len(report.manifest),
    }
    metadata["repos"][key] = info
    cleanup_old_cache(metadata)
    save_metadata(metadata)
    return key, info


def error_page(e: Exception, status: int):
    body = f"""<html>
<body style="font-family: sans-serif; padding: 40px;">
  <h1>Error</h1>
  <p>{html.escape(str(e))}</p>
  <a href="/">&larr; Back to home</a>
</body>
</html>"""
    return Response(body, status=status, mimetype="text/html")


@app.route("/")
def index():
    """Recently rendered repositories"""
    repos = sorted(load_metadata()["repos"].values(), key=lambda x: x["timestamp"], reverse=True)
    items = "".join(
        f'<li><a href="/{html.escape(info["path"])}">{html.escape(info["name"])}</a> '
        f'<span>{html.escape(info["url"])} @ {html.escape(info["commit"])}, {info.get("files", 0)} files</span> '
        f'<a href="/manifest/{html.escape(info["path"])}">manifest</a></li>'
        for info in repos[:20]
    )
    if not items:
        items = "<li>No repositories rendered yet.</li>"
    return f"""<html>
<head><meta charset="utf-8"><title>sourceprint</title></head>
<body style="font-family: Georgia, serif; margin: 2em;">
  <h1>sourceprint</h1>
  <p>Render a repository: <code>{html.escape(request.host_url)}github.com/owner/repo</code></p>
  <ul>{items}</ul>
</body>
</html>"""


@app.route("/manifest/<path:repo_path>")
def manifest(repo_path):
    try:
        key, _ = render_cached(repo_path)
    except ConfigurationError as e:
        return error_page(e, 400)
    except SourcePrintError as e:
        return error_page(e, 500)
    return Response((cache_dir() / f"{key}.json").read_bytes(), mimetype="application/json")


@app.route("/<path:repo_path>")
def render_repo(repo_path):
    try:
        key, _ = render_cached(repo_path)
    except ConfigurationError as e:
        return error_page(e, 400)
    except SourcePrintError as e:
        return error_page(e, 500)
    return Response((cache_dir() / f"{key}.html").read_bytes(), mimetype="text/html")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
