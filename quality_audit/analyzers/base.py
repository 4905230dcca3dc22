"""Analyzer protocol and shared run context."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from quality_audit.findings import Finding
from quality_audit.ruleset import RuleSet
from quality_audit.runner import DEFAULT_TIMEOUT_SECONDS, CommandResult, run_command
from quality_audit.sources import DEFAULT_IGNORE, is_test_path, iter_source_files, read_text

logger = logging.getLogger(__name__)


class AnalyzerError(RuntimeError):
    """Raised by an analyzer that cannot produce a finding."""


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Read-only inputs shared by every analyzer in a run."""

    root: Path
    ruleset: RuleSet = field(default_factory=RuleSet)
    ignore: tuple[str, ...] = tuple(DEFAULT_IGNORE)
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    min_severity: str = "INFO"
    commands: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    max_workers: int = 4
    min_coverage: float = 70.0

    def source_files(self) -> list[str]:
        return iter_source_files(self.root, ignore=list(self.ignore))

    def production_files(self) -> list[str]:
        return [path for path in self.source_files() if not is_test_path(path)]

    def test_files(self) -> list[str]:
        return [path for path in self.source_files() if is_test_path(path)]

    def read(self, rel_path: str) -> str:
        return read_text(self.root, rel_path)

    def command(self, analyzer_id: str, default: tuple[str, ...]) -> list[str]:
        return list(self.commands.get(analyzer_id, default))

    def run_tool(
        self,
        analyzer_id: str,
        default: tuple[str, ...],
        **placeholders: str,
    ) -> CommandResult:
        """Run the configured (or default) command for ``analyzer_id``."""
        args = [item.format(**placeholders) for item in self.command(analyzer_id, default)]
        return run_command(args, cwd=self.root, timeout=self.timeout)


class Analyzer(Protocol):
    """Protocol for analyzers run by the orchestrator."""

    analyzer_id: str

    def evaluate(self, context: AnalysisContext) -> Finding:
        """Inspect the project and return a finding."""


def relative_path(raw: object, root: Path) -> str:
    """Return ``raw`` relative to ``root`` when it points inside it."""
    text = str(raw or "")
    if not text:
        return ""
    path = Path(text)
    if path.is_absolute():
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            return path.as_posix()
    return path.as_posix().removeprefix("./")


def read_files(context: AnalysisContext, paths: list[str]) -> dict[str, str]:
    """Read ``paths``, logging and skipping unreadable files."""
    contents: dict[str, str] = {}
    for path in paths:
        try:
            contents[path] = context.read(path)
        except OSError as exc:
            logger.warning("could not analyze %s: %s", path, exc)
    return contents


def clip_line(content: str, max_len: int = 80) -> str:
    stripped = content.strip()
    if len(stripped) <= max_len:
        return stripped
    return stripped[: max_len - 3] + "..."
