"""Hatchling build hook that stamps pagedraft with its git provenance."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

BUILD_INFO_PATH = "pagedraft/_build_info.py"


class CustomBuildHook(BuildHookInterface):
    """Write `pagedraft/_build_info.py` so installed copies can report a commit."""

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        root = Path(self.root)
        commit = self._git(["rev-parse", "HEAD"], root)
        date = self._git(["show", "-s", "--format=%cI", "HEAD"], root)
        (root / BUILD_INFO_PATH).write_text(
            "# Auto-generated at build time.\n"
            f"COMMIT = {commit!r}\n"
            f"DATE = {date!r}\n",
            encoding="utf-8",
        )
        build_data.setdefault("artifacts", []).append(BUILD_INFO_PATH)

    def _git(self, args: list[str], cwd: Path) -> str | None:
        try:
            out = subprocess.check_output(
                ["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL
            )
        except (subprocess.CalledProcessError, OSError):
            # Source tarballs build without git
            return None
        return out.decode().strip() or None
