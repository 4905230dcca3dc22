"""Tests for analyzers that wrap external tools."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from quality_audit.analyzers import AnalyzerError
from quality_audit.analyzers.coverage import CoverageAnalyzer, load_structured_report
from quality_audit.analyzers.lint import LintAnalyzer, parse_lint_json
from quality_audit.analyzers.security import SecurityAnalyzer, parse_audit_json
from quality_audit.analyzers.testrun import parse_test_output, scrape_total_coverage
from quality_audit.analyzers.typecheck import parse_typecheck_output
from quality_audit.runner import ToolError, run_command
from tests.helpers_project import echo_command, make_context, write_file


def test_ruff_json_splits_errors_and_warnings(tmp_path: Path) -> None:
    payload = [
        {
            "code": "F401",
            "filename": str(tmp_path / "pkg" / "a.py"),
            "location": {"row": 3, "column": 1},
            "message": "`os` imported but unused",
            "fix": {"message": "Remove unused import"},
        },
        {
            "code": "E501",
            "filename": "pkg/b.py",
            "location": {"row": 9, "column": 101},
            "message": "Line too long",
            "fix": None,
        },
        {"code": None, "filename": "pkg/c.py", "location": {"row": 1}, "message": "SyntaxError"},
    ]

    finding = parse_lint_json(json.dumps(payload), root=tmp_path)

    assert finding.errors == 2
    assert finding.warnings == 1
    assert finding.items[0].file == "pkg/a.py"
    assert finding.items[0].line == 3
    assert finding.items[0].suggestion == "Remove unused import"
    assert finding.items[1].severity == "WARNING"
    assert finding.summary() == "2 errors, 1 warnings"
    assert finding.score() == 95


def test_eslint_shaped_output_is_accepted(tmp_path: Path) -> None:
    payload = [
        {
            "filePath": "src/app.js",
            "messages": [
                {"line": 1, "severity": 2, "message": "x is not defined", "ruleId": "no-undef"},
                {"line": 2, "severity": 1, "message": "Missing semicolon", "ruleId": "semi"},
            ],
        }
    ]

    finding = parse_lint_json(json.dumps(payload), root=tmp_path)

    assert (finding.errors, finding.warnings) == (1, 1)
    assert finding.items[0].rule == "no-undef"


def test_invalid_lint_output_is_treated_as_clean(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING):
        finding = parse_lint_json("ruff: crashed", root=tmp_path)

    assert finding.errors == 0
    assert "not valid JSON" in caplog.text
    assert parse_lint_json("", root=tmp_path).score() == 100


def test_lint_analyzer_runs_the_configured_command(tmp_path: Path) -> None:
    output = write_file(
        tmp_path,
        "ruff.json",
        json.dumps([{"code": "F841", "filename": "a.py", "location": {"row": 2}, "message": "x"}]),
    )
    context = make_context(tmp_path, commands={"lint": echo_command(output)})

    finding = LintAnalyzer().evaluate(context)

    assert finding.errors == 1
    assert finding.items[0].file == "a.py"


def test_typecheck_parses_mypy_and_tsc_lines(tmp_path: Path) -> None:
    text = "\n".join(
        [
            "pkg/a.py:12:5: error: Incompatible return value type  [return-value]",
            "pkg/a.py:13: note: See https://mypy.readthedocs.io",
            "pkg/b.py:4: error: Name 'x' is not defined",
            "src/app.ts(4,2): error TS2322: Type 'string' is not assignable to type 'number'.",
            "Found 3 errors in 3 files",
        ]
    )

    finding = parse_typecheck_output(text, root=tmp_path)

    assert [(item.file, item.line, item.rule) for item in finding.items] == [
        ("pkg/a.py", 12, "return-value"),
        ("pkg/b.py", 4, ""),
        ("src/app.ts", 4, "TS2322"),
    ]
    assert finding.items[0].message == "Incompatible return value type"
    assert finding.score() == 0
    assert parse_typecheck_output("Success: no issues found", root=tmp_path).score() == 100


def test_audit_json_counts_vulnerabilities() -> None:
    payload = {
        "dependencies": [
            {
                "name": "jinja2",
                "version": "2.10",
                "vulns": [
                    {"id": "PYSEC-2019-217", "fix_versions": ["2.10.1"], "description": "xss"}
                ],
            },
            {"name": "requests", "version": "2.32.0", "vulns": []},
        ]
    }

    finding = parse_audit_json(json.dumps(payload))

    assert finding.vulnerabilities == 1
    assert finding.score() == 80
    assert finding.passed is False
    issue = finding.issues()[0]
    assert issue.severity == "CRITICAL"
    assert issue.suggestion == "Upgrade to 2.10.1"
    assert parse_audit_json("[]").vulnerabilities == 0


def test_audit_json_must_parse() -> None:
    with pytest.raises(AnalyzerError, match="could not parse vulnerability report"):
        parse_audit_json("<html>")


def test_security_analyzer_reports_tool_failure(tmp_path: Path) -> None:
    command = (
        sys.executable,
        "-c",
        "import sys; sys.stderr.write('network unreachable\\n'); sys.exit(1)",
    )
    context = make_context(tmp_path, commands={"security": command})

    with pytest.raises(AnalyzerError, match="network unreachable"):
        SecurityAnalyzer().evaluate(context)


def test_missing_tool_raises_tool_error(tmp_path: Path) -> None:
    context = make_context(tmp_path, commands={"security": ("quality-audit-no-such-tool",)})

    with pytest.raises(ToolError, match="command not found"):
        SecurityAnalyzer().evaluate(context)


def test_pytest_summary_counts_errors_as_failures() -> None:
    text = "\n".join(
        [
            "tests/test_a.py ..F",
            "Name      Stmts   Miss  Cover",
            "TOTAL       120     30    75%",
            "==== 2 failed, 10 passed, 1 error, 3 skipped in 0.52s ====",
        ]
    )

    finding = parse_test_output(text)

    assert finding.total == 13
    assert finding.passed_tests == 10
    assert finding.failed_tests == 3
    assert finding.coverage == 75.0
    assert finding.score() == 75
    assert finding.passed is False


def test_pytest_summary_without_coverage_uses_pass_rate() -> None:
    finding = parse_test_output("4 passed in 0.10s")

    assert finding.score() == 100
    assert finding.passed is True
    assert parse_test_output("no tests ran in 0.01s").score() == 0


def test_scrape_total_coverage_reads_branch_columns() -> None:
    text = "TOTAL    200     20     40      4    88.5%"

    assert scrape_total_coverage(text) == 88.5
    assert scrape_total_coverage("nothing here") is None


def _coverage_json(tmp_path: Path) -> Path:
    payload = {
        "files": {
            "src/user_service.py": {"summary": {"percent_covered": 90.0}},
            "src/routes.py": {"summary": {"percent_covered": 40.0}},
        },
        "totals": {"percent_covered": 78.0},
    }
    return write_file(tmp_path, "fixtures/coverage.json", json.dumps(payload))


def _copy_to_output(source: Path) -> tuple[str, ...]:
    return (
        sys.executable,
        "-c",
        "import shutil, sys; shutil.copy(sys.argv[1], sys.argv[2])",
        str(source),
        "{output}",
    )


def _print_total(percent: str) -> tuple[str, ...]:
    return (sys.executable, "-c", f"print('TOTAL   10   2   {percent}%')")


def test_coverage_prefers_structured_report_and_warns_on_disagreement(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    context = make_context(
        tmp_path,
        commands={
            "coverage": _copy_to_output(_coverage_json(tmp_path)),
            "coverage-report": _print_total("80"),
        },
    )

    with caplog.at_level(logging.WARNING, logger="quality_audit.analyzers.coverage"):
        finding = CoverageAnalyzer().evaluate(context)

    assert finding.source == "structured"
    assert finding.total == 78.0
    assert finding.score() == 80
    assert "disagrees" in caplog.text
    assert [issue.file for issue in finding.issues()] == ["src/routes.py"]


def test_coverage_falls_back_to_scraped_total(tmp_path: Path) -> None:
    context = make_context(
        tmp_path,
        commands={
            "coverage": (sys.executable, "-c", "import sys; sys.exit(1)"),
            "coverage-report": _print_total("80"),
        },
    )

    finding = CoverageAnalyzer().evaluate(context)

    assert finding.source == "scraped"
    assert finding.files == {}
    assert finding.score() == 88


def test_coverage_without_any_data_fails(tmp_path: Path) -> None:
    context = make_context(
        tmp_path,
        commands={
            "coverage": (sys.executable, "-c", "import sys; sys.exit(1)"),
            "coverage-report": (sys.executable, "-c", "print('No data to report.')"),
        },
    )

    with pytest.raises(AnalyzerError, match="No coverage data found"):
        CoverageAnalyzer().evaluate(context)


def test_load_structured_report_ignores_missing_and_malformed_files(tmp_path: Path) -> None:
    broken = write_file(tmp_path, "coverage.json", "{")

    assert load_structured_report(tmp_path / "absent.json", root=tmp_path) is None
    assert load_structured_report(broken, root=tmp_path) is None


def test_run_command_limits(tmp_path: Path) -> None:
    with pytest.raises(ToolError, match="no command configured"):
        run_command([], cwd=tmp_path)
    with pytest.raises(ToolError, match="timed out"):
        run_command([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)


def test_run_command_keeps_nonzero_exit_and_merges_env(tmp_path: Path) -> None:
    result = run_command(
        [sys.executable, "-c", "import os, sys; print(os.environ['QA_MARK']); sys.exit(3)"],
        cwd=tmp_path,
        env={"QA_MARK": "seen"},
    )

    assert result.returncode == 3
    assert result.success is False
    assert result.stdout.strip() == "seen"
