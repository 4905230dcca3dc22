"""Performance heuristics over production source files."""

from __future__ import annotations

import re

from quality_audit.analyzers.base import AnalysisContext, read_files
from quality_audit.findings import CodeIssue, PerformanceFinding

LARGE_MODULE_LINES = 1000

ASYNC_DEF = re.compile(r"^\s*async\s+def\s", re.MULTILINE)
BLOCKING_SLEEP = re.compile(r"\btime\.sleep\(")
BLOCKING_HTTP = re.compile(r"\brequests\.(?:get|post|put|patch|delete|head|request)\(")
PRINT_CALL = re.compile(r"^\s*print\(", re.MULTILINE)
MAIN_GUARD = re.compile(r"^if\s+__name__\s*==\s*['\"]__main__['\"]", re.MULTILINE)


class PerformanceAnalyzer:
    """Flags blocking calls in async modules, stray prints, and oversized modules."""

    analyzer_id = "performance"

    def evaluate(self, context: AnalysisContext) -> PerformanceFinding:
        items: list[CodeIssue] = []
        for path, content in read_files(context, context.production_files()).items():
            items.extend(check_module(path, content))
        return PerformanceFinding(items=items)


def check_module(path: str, content: str) -> list[CodeIssue]:
    """Return at most one issue per heuristic for ``path``."""
    items: list[CodeIssue] = []
    is_async = ASYNC_DEF.search(content) is not None

    if is_async:
        match = BLOCKING_SLEEP.search(content)
        if match:
            items.append(
                _issue(
                    path,
                    content,
                    match.start(),
                    "Blocking time.sleep() in async module",
                    "Use await asyncio.sleep() inside coroutines",
                    "blocking-sleep",
                )
            )
        match = BLOCKING_HTTP.search(content)
        if match:
            items.append(
                _issue(
                    path,
                    content,
                    match.start(),
                    "Blocking HTTP call in async module",
                    "Use an async HTTP client or run the call in an executor",
                    "blocking-http",
                )
            )

    match = PRINT_CALL.search(content)
    if match and MAIN_GUARD.search(content) is None:
        items.append(
            _issue(
                path,
                content,
                match.start(),
                "print() in library code",
                "Use logging so output can be filtered and redirected",
                "print-call",
            )
        )

    line_count = content.count("\n") + 1
    if line_count > LARGE_MODULE_LINES:
        items.append(
            CodeIssue(
                file=path,
                line=None,
                message=f"Large module ({line_count} lines)",
                severity="INFO",
                suggestion="Split the module so imports stay cheap",
                rule="large-module",
            )
        )
    return items


def _issue(
    path: str,
    content: str,
    offset: int,
    message: str,
    suggestion: str,
    rule: str,
) -> CodeIssue:
    return CodeIssue(
        file=path,
        line=content.count("\n", 0, offset) + 1,
        message=message,
        severity="WARNING",
        suggestion=suggestion,
        rule=rule,
    )
