"""Lint analyzer backed by ruff's JSON output."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from quality_audit.analyzers.base import AnalysisContext, relative_path
from quality_audit.findings import CodeIssue, LintFinding

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("ruff", "check", "--output-format", "json", "--exit-zero", ".")

# Syntax errors and pyflakes codes are errors; style codes are warnings.
ERROR_CODE_PREFIXES = ("E9", "F")


class LintAnalyzer:
    """Runs the configured linter and counts errors and warnings."""

    analyzer_id = "lint"

    def evaluate(self, context: AnalysisContext) -> LintFinding:
        result = context.run_tool(self.analyzer_id, DEFAULT_COMMAND)
        return parse_lint_json(result.stdout, root=context.root)


def parse_lint_json(text: str, *, root: Path) -> LintFinding:
    """Parse ruff (or eslint-shaped) JSON into a lint finding."""
    if not text.strip():
        return LintFinding()
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("lint output is not valid JSON; treating as clean")
        return LintFinding()
    if not isinstance(payload, list):
        logger.warning("unexpected lint output shape: %s", type(payload).__name__)
        return LintFinding()

    items: list[CodeIssue] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        if isinstance(entry.get("messages"), list):
            items.extend(_eslint_issues(entry, root))
        else:
            items.append(_ruff_issue(entry, root))

    errors = sum(1 for item in items if item.severity == "ERROR")
    return LintFinding(errors=errors, warnings=len(items) - errors, items=items)


def _ruff_issue(entry: dict[str, Any], root: Path) -> CodeIssue:
    code = str(entry.get("code") or "")
    location = entry.get("location")
    row = location.get("row") if isinstance(location, dict) else None
    fix = entry.get("fix")
    suggestion = str(fix.get("message") or "") if isinstance(fix, dict) else ""
    return CodeIssue(
        file=relative_path(entry.get("filename"), root),
        line=row if isinstance(row, int) else None,
        message=str(entry.get("message") or ""),
        severity="ERROR" if not code or code.startswith(ERROR_CODE_PREFIXES) else "WARNING",
        suggestion=suggestion,
        rule=code,
    )


def _eslint_issues(entry: dict[str, Any], root: Path) -> list[CodeIssue]:
    path = relative_path(entry.get("filePath"), root)
    issues: list[CodeIssue] = []
    for message in entry["messages"]:
        if not isinstance(message, dict):
            continue
        line = message.get("line")
        issues.append(
            CodeIssue(
                file=path,
                line=line if isinstance(line, int) else None,
                message=str(message.get("message") or ""),
                severity="ERROR" if message.get("severity") == 2 else "WARNING",
                rule=str(message.get("ruleId") or ""),
            )
        )
    return issues
