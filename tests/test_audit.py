"""Tests for the top-level audit run and its console rendering."""

from __future__ import annotations

import json
from pathlib import Path

import click
import pytest

from quality_audit import __version__
from quality_audit.audit import RuleValidationError, run_audit
from quality_audit.config import AppConfig
from quality_audit.findings import CodeIssue, LintFinding, SecurityFinding
from quality_audit.output import render_human, render_json, render_validation_human
from quality_audit.ruleset import RuleSet
from tests.helpers_project import FailingAnalyzer, FakeAnalyzer, rule


def _registry() -> dict[str, object]:
    return {
        "lint": FakeAnalyzer(
            "lint",
            LintFinding(
                errors=2,
                warnings=4,
                items=[
                    CodeIssue("app.py", 3, "undefined name", "ERROR", "Define it", "F821"),
                    CodeIssue("app.py", 9, "unused import", "ERROR", "", "F401"),
                ],
            ),
        ),
        "security": FakeAnalyzer("security", SecurityFinding()),
        "typecheck": FailingAnalyzer("typecheck"),
    }


def _config(**overrides: object) -> AppConfig:
    values: dict[str, object] = {
        "analyzers": ["lint", "security"],
        "weights": {"lint": 50, "security": 50},
    }
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


def test_run_audit_scores_and_writes_default_report(tmp_path: Path) -> None:
    result = run_audit(tmp_path, _config(), registry=_registry())

    assert list(result.findings) == ["lint", "security"]
    assert result.score.overall == 96
    assert result.score.grade == "A"
    assert result.mode == "plain"
    assert list(result.reports) == ["html"]
    assert result.reports["html"].path == tmp_path.resolve() / "reports" / "code-review-report.html"
    assert result.generated_at.endswith("Z")


def test_failed_analyzer_is_reported_and_scored_as_zero(tmp_path: Path) -> None:
    config = _config(
        analyzers=["lint", "security", "typecheck"],
        weights={"lint": 50, "security": 50, "typecheck": 100},
    )

    result = run_audit(tmp_path, config, write_reports=False, registry=_registry())

    payload = result.to_dict()
    assert payload["findings"]["typecheck"]["success"] is False
    assert payload["findings"]["typecheck"]["error"] == "tool crashed"
    assert payload["passed"] == {"lint": False, "security": True, "typecheck": False}
    assert result.score.overall == 48
    assert result.reports == {}


def test_invalid_rules_stop_the_run_before_any_analyzer(tmp_path: Path) -> None:
    registry = _registry()
    config = _config(rules=[rule("broken", "(unclosed")])

    with pytest.raises(RuleValidationError) as excinfo:
        run_audit(tmp_path, config, registry=registry)

    assert registry["lint"].calls == 0  # type: ignore[attr-defined]
    assert len(excinfo.value.errors) == 1
    assert "Rule broken: Invalid regex pattern" in excinfo.value.errors[0]
    assert not (tmp_path / "reports").exists()


def test_ai_prompts_switch_to_exploratory_and_add_prompts_report(tmp_path: Path) -> None:
    config = _config(reporters=["json"], output_dir=str(tmp_path / "out"))

    result = run_audit(tmp_path, config, ai_prompts=True, registry=_registry())

    assert result.mode == "exploratory"
    assert list(result.reports) == ["json", "ai-prompts"]
    assert all(item.path.parent == tmp_path / "out" for item in result.reports.values())


def test_exploratory_mode_adds_the_summary(tmp_path: Path) -> None:
    result = run_audit(tmp_path, _config(mode="exploratory"), registry=_registry())

    assert list(result.reports) == ["html", "summary"]


def test_explicit_reports_override_config(tmp_path: Path) -> None:
    config = _config(reporters=["html"])

    result = run_audit(tmp_path, config, reports=["markdown"], registry=_registry())

    assert list(result.reports) == ["markdown"]
    assert result.mode == "plain"


def test_rule_warnings_do_not_block(tmp_path: Path) -> None:
    payload = rule("no-example", "x")
    del payload["example"]

    result = run_audit(
        tmp_path, _config(rules=[payload]), write_reports=False, registry=_registry()
    )

    assert result.rule_warnings == (
        "Rule no-example: Consider adding an example for better documentation",
    )


def test_render_human_lists_analyzers_and_top_issues(tmp_path: Path) -> None:
    result = run_audit(tmp_path, _config(), write_reports=False, registry=_registry())

    text = click.unstyle(render_human(result, fail_under=97, top=1))

    assert "Overall quality score: 96/100 (grade A)" in text
    assert "- lint: WARN 92/100, weight 50 - 2 errors, 4 warnings" in text
    assert "- security: PASS 100/100, weight 50 - 0 vulnerabilities found" in text
    assert "1. [lint] ERROR app.py:3 undefined name" in text
    assert "   fix: Define it" in text
    assert "app.py:9" not in text
    assert "Quality gate failed (fail_under=97)" in text


def test_render_json_includes_meta(tmp_path: Path) -> None:
    result = run_audit(tmp_path, _config(), write_reports=False, registry=_registry())

    payload = json.loads(render_json(result, fail_under=90))

    assert payload["meta"] == {"version": __version__, "fail_under": 90, "gate_passed": True}
    assert payload["score"]["breakdown"]["lint"] == {"score": 92, "weight": 50}
    assert payload["findings"]["lint"]["errors"] == 2


def test_render_validation_human() -> None:
    ruleset = RuleSet.from_mapping({"rules": [rule("dup", "a"), rule("dup", "b")]})

    text = click.unstyle(render_validation_human(ruleset.validate()))

    assert text.splitlines()[0] == "Rules are invalid."
    assert "- error: Duplicate rule ID: dup" in text
    assert "- total_rules: 2, categories: 0" in text
