"""Source-tree discovery."""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

from quality_audit.ruleset import compile_glob

DEFAULT_EXTENSIONS = (".py",)
DEFAULT_IGNORE = [
    ".git/",
    ".venv/",
    "venv/",
    "__pycache__/",
    ".tox/",
    ".mypy_cache/",
    ".ruff_cache/",
    "build/",
    "dist/",
    "reports/",
    "*.egg-info/",
]


class IgnoreMatcher:
    """Match root-relative POSIX paths against ignore globs.

    Patterns ending in ``/`` name directories at any depth. Patterns without a
    ``/`` match the basename. Anything else matches the full relative path.
    """

    def __init__(self, patterns: list[str]) -> None:
        self._dir_patterns = [
            compile_glob(item.rstrip("/")) for item in patterns if item.endswith("/")
        ]
        self._name_patterns = [compile_glob(item) for item in patterns if "/" not in item]
        self._path_patterns = [
            compile_glob(item) for item in patterns if "/" in item and not item.endswith("/")
        ]

    def ignores_dir(self, rel_path: str) -> bool:
        name = PurePosixPath(rel_path).name
        if any(regex.fullmatch(name) or regex.fullmatch(rel_path) for regex in self._dir_patterns):
            return True
        return any(regex.fullmatch(rel_path) for regex in self._path_patterns)

    def ignores_file(self, rel_path: str) -> bool:
        name = PurePosixPath(rel_path).name
        if any(regex.fullmatch(name) for regex in self._name_patterns):
            return True
        return any(regex.fullmatch(rel_path) for regex in self._path_patterns)


def iter_source_files(
    root: Path,
    *,
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS,
    ignore: list[str] | None = None,
) -> list[str]:
    """Return sorted root-relative POSIX paths of source files under ``root``."""
    matcher = IgnoreMatcher(DEFAULT_IGNORE if ignore is None else ignore)
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir
        dirnames[:] = [
            name
            for name in sorted(dirnames)
            if not matcher.ignores_dir(f"{rel_dir}/{name}" if rel_dir else name)
        ]
        for name in filenames:
            if not name.endswith(extensions):
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if matcher.ignores_file(rel_path):
                continue
            found.append(rel_path)
    return sorted(found)


def read_text(root: Path, rel_path: str) -> str:
    return (root / rel_path).read_text(encoding="utf-8", errors="replace")


def is_test_path(path: str) -> bool:
    lowered = path.lower()
    name = PurePosixPath(lowered).name
    return (
        lowered.startswith("tests/")
        or "/tests/" in lowered
        or name.startswith("test_")
        or name.endswith("_test.py")
        or name == "conftest.py"
    )
