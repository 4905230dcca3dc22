"""Test-suite analyzer: runs pytest and reads its summary line."""

from __future__ import annotations

import re

from quality_audit.analyzers.base import AnalysisContext
from quality_audit.findings import TestsFinding

DEFAULT_COMMAND = ("pytest", "-q", "-p", "no:cacheprovider")

COUNT_PATTERN = re.compile(r"(\d+) (passed|failed|errors?|skipped|xfailed|xpassed)")
TOTAL_COVERAGE = re.compile(r"^TOTAL\s+(?:\d+\s+)+(\d+(?:\.\d+)?)%", re.MULTILINE)


class TestRunAnalyzer:
    """Runs the project's test suite."""

    __test__ = False

    analyzer_id = "tests"

    def evaluate(self, context: AnalysisContext) -> TestsFinding:
        result = context.run_tool(self.analyzer_id, DEFAULT_COMMAND)
        return parse_test_output(result.stdout + "\n" + result.stderr)


def parse_test_output(text: str) -> TestsFinding:
    """Read pass/fail counts and optional pytest-cov TOTAL from the output."""
    counts = {"passed": 0, "failed": 0, "errors": 0}
    for line in reversed(text.splitlines()):
        found = COUNT_PATTERN.findall(line)
        if not found:
            continue
        for number, label in found:
            key = "errors" if label.startswith("error") else label
            if key in counts:
                counts[key] = int(number)
        break

    failed = counts["failed"] + counts["errors"]
    return TestsFinding(
        total=counts["passed"] + failed,
        passed_tests=counts["passed"],
        failed_tests=failed,
        coverage=scrape_total_coverage(text),
    )


def scrape_total_coverage(text: str) -> float | None:
    match = TOTAL_COVERAGE.search(text)
    if match is None:
        return None
    return float(match.group(1))
