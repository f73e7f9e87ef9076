"""Version reporting for `pagedraft --version`.

The release number comes from the installed distribution metadata. Build
provenance (commit and commit date) is looked up, in order, from a live git
checkout, the `_build_info` module written by the hatch build hook, and the
PEP 610 `direct_url.json` of a VCS install.
"""

from __future__ import annotations

import importlib.metadata
import json
import subprocess
from pathlib import Path
from typing import Callable, NamedTuple, Optional

DISTRIBUTION = "pagedraft"


class BuildInfo(NamedTuple):
    commit: Optional[str]
    date: Optional[str]
    dirty: bool = False


def _git(args: list[str], cwd: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL
        )
    except (subprocess.CalledProcessError, OSError):
        return None
    return out.decode().strip() or None


def _from_git_checkout() -> Optional[BuildInfo]:
    here = Path(__file__).resolve().parent
    top = _git(["rev-parse", "--show-toplevel"], here)
    if top is None:
        return None
    root = Path(top)
    status = _git(["status", "--porcelain"], root)
    return BuildInfo(
        commit=_git(["rev-parse", "HEAD"], root),
        date=_git(["show", "-s", "--format=%cI", "HEAD"], root),
        dirty=bool(status),
    )


def _from_build_hook() -> Optional[BuildInfo]:
    try:
        from . import _build_info  # type: ignore
    except ImportError:
        return None
    return BuildInfo(
        commit=getattr(_build_info, "COMMIT", None),
        date=getattr(_build_info, "DATE", None),
    )


def _from_direct_url() -> Optional[BuildInfo]:
    try:
        raw = importlib.metadata.distribution(DISTRIBUTION).read_text("direct_url.json")
    except importlib.metadata.PackageNotFoundError:
        return None
    if not raw:
        return None
    try:
        commit = (json.loads(raw).get("vcs_info") or {}).get("commit_id")
    except ValueError:
        return None
    return BuildInfo(commit=commit, date=None) if commit else None


_SOURCES: tuple[Callable[[], Optional[BuildInfo]], ...] = (
    _from_git_checkout,
    _from_build_hook,
    _from_direct_url,
)


def get_build_info() -> BuildInfo:
    for source in _SOURCES:
        info = source()
        if info and (info.commit or info.date):
            return info
    return BuildInfo(commit=None, date=None)


def get_release() -> str:
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_version_string() -> str:
    """Return e.g. `pagedraft 0.1.0 (1a2b3c4-dirty 2026-01-01T00:00:00+00:00)`."""
    info = get_build_info()
    commit = info.commit[:7] if info.commit else "unknown"
    if info.dirty:
        commit += "-dirty"
    return f"{DISTRIBUTION} {get_release()} ({commit} {info.date or 'unknown'})"
