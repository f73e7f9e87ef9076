"""Pagedraft CLI entry point.

Allows running via `python -m pagedraft` and provides the console script
defined in `pyproject.toml`.
"""

from __future__ import annotations

import logging
import sys

from .version import get_version_string


def _configure_logging(args: list[str]) -> list[str]:
    """Handle `--log FILE`; the terminal owns stdout, so logs go to a file."""
    if "--log" not in args:
        return args
    index = args.index("--log")
    if index + 1 >= len(args):
        print("--log requires a file name", file=sys.stderr)
        sys.exit(2)
    logging.basicConfig(
        filename=args[index + 1],
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    return args[:index] + args[index + 2:]


def main() -> None:
    # Very small arg parsing to support version, logging, and an optional HTML file
    args = _configure_logging(sys.argv[1:])
    if args and args[0] in ("--version", "-V"):
        print(get_version_string())
        return

    # Lazy import to avoid importing UI deps for --version
    from .editor import Editor
    editor = Editor()
    if args:
        editor.load_file(args[0])
    editor.run()


if __name__ == "__main__":  # pragma: no cover
    main()
