"""Type-check analyzer backed by mypy's text output."""

from __future__ import annotations

import re
from pathlib import Path

from quality_audit.analyzers.base import AnalysisContext, relative_path
from quality_audit.findings import CodeIssue, TypecheckFinding

DEFAULT_COMMAND = (
    "mypy",
    "--no-color-output",
    "--no-error-summary",
    "--show-column-numbers",
    ".",
)

MYPY_LINE = re.compile(
    r"^(?P<file>[^:\n]+):(?P<line>\d+)(?::\d+)?: error: (?P<message>.+?)"
    r"(?:\s+\[(?P<code>[\w-]+)\])?$"
)
TSC_LINE = re.compile(
    r"^(?P<file>.+)\((?P<line>\d+),\d+\): error (?P<code>TS\d+): (?P<message>.+)$"
)


class TypecheckAnalyzer:
    """Runs the configured type checker and collects error lines."""

    analyzer_id = "typecheck"

    def evaluate(self, context: AnalysisContext) -> TypecheckFinding:
        result = context.run_tool(self.analyzer_id, DEFAULT_COMMAND)
        return parse_typecheck_output(result.stdout + "\n" + result.stderr, root=context.root)


def parse_typecheck_output(text: str, *, root: Path) -> TypecheckFinding:
    items: list[CodeIssue] = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip()
        match = MYPY_LINE.match(line) or TSC_LINE.match(line)
        if match is None:
            continue
        items.append(
            CodeIssue(
                file=relative_path(match.group("file"), root),
                line=int(match.group("line")),
                message=match.group("message"),
                severity="ERROR",
                rule=match.group("code") or "",
            )
        )
    return TypecheckFinding(items=items)
