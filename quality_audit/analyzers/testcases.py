"""Test-case gap analysis: modules without tests and tests without assertions."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from quality_audit.analyzers.base import AnalysisContext, read_files
from quality_audit.analyzers.coverage import load_structured_report
from quality_audit.findings import CodeIssue, MissingTest, TestCasesFinding

PUBLIC_DEFINITION = re.compile(r"^(?:async\s+)?(?:def|class)\s+([A-Za-z]\w*)", re.MULTILINE)
TEST_FUNCTION = re.compile(r"^\s*(?:async\s+)?def\s+test_\w*\(", re.MULTILINE)
ASSERTION = re.compile(r"\bassert\b|pytest\.raises|\.assert\w*\(|self\.fail\(")

SKIPPED_MODULES = {"__init__.py", "__main__.py", "conftest.py", "setup.py"}
SKIPPED_MARKERS = ("config", "constant", "settings", "types")
COVERAGE_REPORT = "coverage.json"


class TestCasesAnalyzer:
    """Matches production modules to test modules by file name."""

    __test__ = False

    analyzer_id = "test-cases"

    def evaluate(self, context: AnalysisContext) -> TestCasesFinding:
        test_paths = context.test_files()
        tested_stems = {_tested_stem(path) for path in test_paths}

        missing: list[MissingTest] = []
        for path, content in read_files(context, context.production_files()).items():
            name = PurePosixPath(path).name
            if name in SKIPPED_MODULES or any(marker in name for marker in SKIPPED_MARKERS):
                continue
            functions = tuple(PUBLIC_DEFINITION.findall(content))
            if not functions or PurePosixPath(path).stem in tested_stems:
                continue
            missing.append(
                MissingTest(
                    file=path,
                    reason=f"{len(functions)} public definitions",
                    functions=functions,
                    suggested_test_file=f"tests/test_{PurePosixPath(path).stem}.py",
                )
            )

        poor: list[CodeIssue] = []
        for path, content in read_files(context, test_paths).items():
            match = TEST_FUNCTION.search(content)
            if match is None or ASSERTION.search(content):
                continue
            poor.append(
                CodeIssue(
                    file=path,
                    line=content.count("\n", 0, match.start()) + 1,
                    message="Test module has no assertions",
                    severity="WARNING",
                    suggestion="Assert on behaviour instead of only calling the code",
                    rule="weak-test",
                )
            )

        report = load_structured_report(context.root / COVERAGE_REPORT, root=context.root)
        return TestCasesFinding(
            missing_tests=missing,
            poor_tests=poor,
            coverage=report.total if report is not None else None,
        )


def _tested_stem(path: str) -> str:
    stem = PurePosixPath(path).stem
    if stem.startswith("test_"):
        return stem[len("test_") :]
    return stem.removesuffix("_test")
