"""Resolution of relative and home-relative file paths."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path


def _home() -> str:
    try:
        return str(Path.home())
    except RuntimeError:
        return ""


def resolve_relative_paths(working_dir: str, compose_files: Iterable[str]) -> tuple[str, list[str]]:
    """Return the working directory and compose files as absolute paths."""
    return os.path.abspath(working_dir), abs_compose_files(compose_files)


def abs_path(working_dir: str, file_path: str) -> str:
    """Make `file_path` absolute, expanding a leading `~` to the home directory."""
    if file_path.startswith("~"):
        rest = file_path[1:].lstrip("/\\")
        return os.path.normpath(os.path.join(_home(), rest))
    if os.path.isabs(file_path):
        return file_path
    return os.path.normpath(os.path.join(working_dir, file_path))


def abs_compose_files(compose_files: Iterable[str]) -> list[str]:
    """Return the compose file paths made absolute against the current directory."""
    return [os.path.abspath(path) for path in compose_files]


def resolve_paths(base_path: str, paths: Iterable[str] | None) -> list[str] | None:
    """Resolve each path against `base_path`; `None` stays `None`."""
    if paths is None:
        return None
    return [abs_path(base_path, path) for path in paths]