"""Architecture anti-pattern heuristics."""

from __future__ import annotations

import re
from dataclasses import dataclass

from quality_audit.analyzers.base import AnalysisContext, read_files
from quality_audit.findings import ArchitectureFinding, CodeIssue


@dataclass(frozen=True, slots=True)
class AntiPattern:
    rule: str
    trigger: re.Pattern[str]
    # Module is fine when this is present.
    remedy: re.Pattern[str] | None
    message: str
    severity: str
    suggestion: str


ANTI_PATTERNS = (
    AntiPattern(
        rule="async-without-error-handling",
        trigger=re.compile(r"^\s*async\s+def\s", re.MULTILINE),
        remedy=re.compile(r"^\s*(?:try\s*:|except\b)", re.MULTILINE),
        message="Async code without error handling",
        severity="ERROR",
        suggestion="Wrap awaited I/O in try/except and surface failures explicitly",
    ),
    AntiPattern(
        rule="print-logging",
        trigger=re.compile(r"^\s*print\(", re.MULTILINE),
        remedy=re.compile(r"\blogging\b|\blogger\b"),
        message="Using print instead of structured logging",
        severity="WARNING",
        suggestion="Use a module-level logging.getLogger(__name__)",
    ),
    AntiPattern(
        rule="unvalidated-input",
        trigger=re.compile(r"\brequest\.(?:json|form|args|get_json\()"),
        remedy=re.compile(r"validat|schema|pydantic|marshmallow", re.IGNORECASE),
        message="Request input used without validation",
        severity="ERROR",
        suggestion="Validate request payloads against a schema before use",
    ),
    AntiPattern(
        rule="wildcard-import",
        trigger=re.compile(r"^from\s+\S+\s+import\s+\*", re.MULTILINE),
        remedy=None,
        message="Wildcard import hides module dependencies",
        severity="WARNING",
        suggestion="Import the names you use explicitly",
    ),
)


class ArchitectureAnalyzer:
    """Reports module-level design smells, one per pattern per file."""

    analyzer_id = "architecture"

    def evaluate(self, context: AnalysisContext) -> ArchitectureFinding:
        items: list[CodeIssue] = []
        for path, content in read_files(context, context.production_files()).items():
            for pattern in ANTI_PATTERNS:
                match = pattern.trigger.search(content)
                if match is None:
                    continue
                if pattern.remedy is not None and pattern.remedy.search(content):
                    continue
                items.append(
                    CodeIssue(
                        file=path,
                        line=content.count("\n", 0, match.start()) + 1,
                        message=pattern.message,
                        severity=pattern.severity,
                        suggestion=pattern.suggestion,
                        rule=pattern.rule,
                    )
                )
        return ArchitectureFinding(items=items)
