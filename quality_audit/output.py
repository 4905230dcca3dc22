"""Console output rendering."""

from __future__ import annotations

import json
from typing import Any

import click

from quality_audit import __version__
from quality_audit.audit import RunResult
from quality_audit.findings import Finding
from quality_audit.ruleset import ValidationResult


def render_human(result: RunResult, *, fail_under: int | None = None, top: int = 5) -> str:
    """Render a compact colorized summary."""
    score = result.score
    lines: list[str] = [
        click.style(
            f"Overall quality score: {score.overall}/100 (grade {score.grade})",
            fg=_grade_color(score.grade),
            bold=True,
        )
    ]

    if result.findings:
        lines.append(click.style("Analyzers:", bold=True))
        for name, finding in result.findings.items():
            weight = score.breakdown[name].weight if name in score.breakdown else None
            weight_text = f", weight {weight}" if weight is not None else ", unweighted"
            label, color = _status(finding)
            lines.append(
                f"- {name}: "
                + click.style(label, fg=color)
                + f" {finding.score()}/100{weight_text} - {finding.summary()}"
            )

    issues = [
        (name, issue)
        for name, finding in result.findings.items()
        for issue in finding.issues()
        if issue.severity in {"CRITICAL", "ERROR"}
    ]
    if issues:
        lines.append(click.style("Top issues:", bold=True))
        for index, (name, issue) in enumerate(issues[:top], start=1):
            location = issue.file if issue.line is None else f"{issue.file}:{issue.line}"
            lines.append(f"{index}. [{name}] {issue.severity} {location} {issue.message}")
            if issue.suggestion:
                lines.append(f"   fix: {issue.suggestion}")

    if result.reports:
        lines.append(click.style("Reports:", bold=True))
        for report_type, artifact in result.reports.items():
            lines.append(f"- {report_type}: {artifact.path} ({artifact.size} bytes)")

    if fail_under is not None:
        verdict = "passed" if result.meets(fail_under) else "failed"
        lines.append(f"Quality gate {verdict} (fail_under={fail_under})")
    return "\n".join(lines)


def render_json(result: RunResult, *, fail_under: int | None = None) -> str:
    """Render stable JSON output for CI and automation."""
    return json.dumps(build_json_payload(result, fail_under=fail_under), sort_keys=True)


def build_json_payload(result: RunResult, *, fail_under: int | None = None) -> dict[str, Any]:
    payload = result.to_dict()
    payload["meta"] = {
        "version": __version__,
        "fail_under": fail_under,
        "gate_passed": result.meets(fail_under),
    }
    return payload


def render_validation_human(result: ValidationResult) -> str:
    headline = (
        click.style("Rules are valid.", fg="green", bold=True)
        if result.valid
        else click.style("Rules are invalid.", fg="red", bold=True)
    )
    lines = [headline]
    lines.extend(f"- error: {item}" for item in result.errors)
    lines.extend(f"- warning: {item}" for item in result.warnings)
    stats = result.stats
    if stats:
        lines.append(
            f"- total_rules: {stats.get('total_rules', 0)}, "
            f"categories: {stats.get('categories', 0)}"
        )
    return "\n".join(lines)


def _status(finding: Finding) -> tuple[str, str]:
    if not finding.success:
        return ("FAILED", "red")
    if finding.passed:
        return ("PASS", "green")
    return ("WARN", "yellow")


def _grade_color(grade: str) -> str:
    if grade in {"A", "B"}:
        return "green"
    if grade in {"C", "D"}:
        return "yellow"
    return "red"
