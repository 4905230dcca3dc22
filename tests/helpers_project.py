"""Helpers for synthetic project trees and fake analyzers."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path

from quality_audit.analyzers import AnalysisContext
from quality_audit.findings import Finding, LintFinding, SecurityFinding
from quality_audit.ruleset import RuleSet


def write_file(root: Path, rel_path: str, content: str) -> Path:
    target = root / rel_path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def make_context(root: Path, ruleset: RuleSet | None = None, **kwargs: object) -> AnalysisContext:
    return AnalysisContext(
        root=root, ruleset=ruleset or RuleSet(), **kwargs  # type: ignore[arg-type]
    )


def rule(rule_id: str, pattern: str, **overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": rule_id,
        "category": "security",
        "severity": "ERROR",
        "description": f"{rule_id} description",
        "pattern": pattern,
        "suggestion": f"fix {rule_id}",
        "example": {"bad": "bad()", "good": "good()"},
    }
    payload.update(overrides)
    return payload


@dataclass
class FakeAnalyzer:
    """Returns a canned finding and records calls."""

    analyzer_id: str
    finding: Finding = field(default_factory=LintFinding)
    calls: int = 0

    def evaluate(self, context: AnalysisContext) -> Finding:
        self.calls += 1
        return self.finding


@dataclass
class FailingAnalyzer:
    analyzer_id: str
    error: Exception = field(default_factory=lambda: RuntimeError("tool crashed"))

    def evaluate(self, context: AnalysisContext) -> Finding:
        raise self.error


@dataclass
class BlockingAnalyzer:
    """Blocks until released so tests can cancel queued work."""

    analyzer_id: str
    started: threading.Event = field(default_factory=threading.Event)
    release: threading.Event = field(default_factory=threading.Event)

    def evaluate(self, context: AnalysisContext) -> Finding:
        self.started.set()
        self.release.wait(timeout=5)
        return SecurityFinding()


def echo_command(source: Path) -> tuple[str, ...]:
    """Command that prints ``source`` verbatim, standing in for a tool's stdout."""
    return (
        sys.executable,
        "-c",
        "import sys; sys.stdout.write(open(sys.argv[1], encoding='utf-8').read())",
        str(source),
    )
