"""
Resolve a source locator to a local directory: shallow-clone a remote
repository with git, or accept an existing local directory as-is.
"""

from __future__ import annotations

import base64
import logging
import os
import pathlib
import re
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Union

from .errors import AcquisitionError, ConfigurationError

logger = logging.getLogger(__name__)

# user@host:path, the scp-like syntax git accepts for ssh remotes
SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:")


@dataclass(frozen=True)
class NoAuth:
    """Anonymous clone; git's own credential helpers still apply."""

    def git_args(self) -> List[str]:
        return []

    def git_env(self) -> Dict[str, str]:
        return {}


@dataclass(frozen=True)
class SshKeyAuth:
    key_path: pathlib.Path

    def git_args(self) -> List[str]:
        return []

    def git_env(self) -> Dict[str, str]:
        key = shlex.quote(str(self.key_path))
        return {"GIT_SSH_COMMAND": f"ssh -i {key} -o IdentitiesOnly=yes"}


@dataclass(frozen=True)
class TokenAuth:
    username: str
    token: str = field(repr=False)

    def git_args(self) -> List[str]:
        # Sent as a header so the token never lands in the remote URL or .git/config.
        basic = base64.b64encode(f"{self.username}:{self.token}".encode("utf-8")).decode("ascii")
        return ["-c", f"http.extraHeader=Authorization: Basic {basic}"]

    def git_env(self) -> Dict[str, str]:
        return {}


Auth = Union[NoAuth, SshKeyAuth, TokenAuth]


def auth_from_mode(mode: str, ssh_key: str | None = None, environ: Mapping[str, str] | None = None) -> Auth:
    """Build the credentials for an auth mode, failing early when they are missing."""
    env = os.environ if environ is None else environ
    if mode == "none":
        return NoAuth()
    if mode == "ssh":
        if ssh_key:
            key = pathlib.Path(ssh_key).expanduser()
        else:
            home = env.get("HOME")
            if not home:
                raise ConfigurationError("HOME is not set; pass --ssh-key explicitly")
            key = pathlib.Path(home, ".ssh", "id_rsa")
        if not key.is_file():
            raise ConfigurationError(f"SSH key not found: {key}")
        return SshKeyAuth(key)
    if mode == "token":
        username = env.get("GITHUB_USERNAME")
        token = env.get("GITHUB_TOKEN")
        missing = [name for name, value in (("GITHUB_USERNAME", username), ("GITHUB_TOKEN", token)) if not value]
        if missing:
            raise ConfigurationError(f"Token auth requires {', '.join(missing)} in the environment")
        return TokenAuth(username, token)
    raise ConfigurationError(f"Unknown auth mode: {mode!r}")


def run(cmd: List[str], cwd: str | None = None, check: bool = True, env: Mapping[str, str] | None = None) -> subprocess.CompletedProcess:
    return subprocess.run(cmd, cwd=cwd, check=check, text=True, capture_output=True, env=env)


def is_remote(locator: str) -> bool:
    return "://" in locator or bool(SCP_LIKE.match(locator))


def derive_name(locator: str) -> str:
    """Name used for the clone and output directories: basename without .git."""
    if is_remote(locator):
        name = re.split(r"[/:]", locator.rstrip("/"))[-1]
    else:
        name = pathlib.Path(locator).resolve().name
    if name.endswith(".git"):
        name = name[:-4]
    return name or "repo"


def git_clone(url: str, dst: str, auth: Auth | None = None) -> None:
    auth = auth or NoAuth()
    cmd = ["git", *auth.git_args(), "clone", "--depth", "1", url, dst]
    env = {**os.environ, **auth.git_env(), "GIT_TERMINAL_PROMPT": "0"}
    try:
        run(cmd, env=env)
    except subprocess.CalledProcessError as e:
        raise AcquisitionError(url, e.stderr or "") from e
    except FileNotFoundError as e:
        raise AcquisitionError(url, "git executable not found in PATH") from e


def git_head_commit(repo_dir: str) -> str:
    try:
        cp = run(["git", "rev-parse", "HEAD"], cwd=repo_dir)
        return cp.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return "(unknown)"


def acquire(locator: str, clone_dir: pathlib.Path, auth: Auth | None = None) -> pathlib.Path:
    """
    Return the local root for a locator. Remote URLs are cloned into clone_dir,
    which must not exist yet; local directories are returned resolved and are
    never modified.
    """
    if is_remote(locator):
        logger.info("Cloning %s into %s", locator, clone_dir)
        git_clone(locator, str(clone_dir), auth)
        return pathlib.Path(clone_dir)
    root = pathlib.Path(locator).expanduser()
    if not root.is_dir():
        raise ConfigurationError(f"Source directory does not exist: {locator}")
    return root.resolve()
