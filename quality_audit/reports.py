"""Report renderers and per-renderer failure isolation."""

from __future__ import annotations

import html
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quality_audit import __version__
from quality_audit.findings import Finding
from quality_audit.narrative import (
    build_prompts_markdown,
    build_summary_markdown,
    critical_issues,
    recommendations,
)
from quality_audit.ruleset import RuleSet
from quality_audit.scoring import ScoreResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReportArtifact:
    """Descriptor of one written report file."""

    report_type: str
    path: Path
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.report_type, "path": str(self.path), "size": self.size}


@dataclass(frozen=True, slots=True)
class ReportContext:
    """Everything a renderer may read."""

    findings: Mapping[str, Finding]
    score: ScoreResult
    project: str
    generated_at: str
    mode: str
    ruleset: RuleSet = field(default_factory=RuleSet)
    config: Mapping[str, Any] = field(default_factory=dict)

    @property
    def date_stamp(self) -> str:
        return self.generated_at[:10]


@dataclass(frozen=True, slots=True)
class _Renderer:
    filename: Callable[[ReportContext], str]
    render: Callable[[ReportContext], str]


def generate_reports(
    selected: list[str],
    context: ReportContext,
    output_dir: Path,
) -> dict[str, ReportArtifact]:
    """Render each selected known report; unknown or failing renderers are skipped."""
    artifacts: dict[str, ReportArtifact] = {}
    for report_type in selected:
        renderer = RENDERERS.get(report_type)
        if renderer is None:
            logger.warning("unknown report type '%s' skipped", report_type)
            continue
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            path = output_dir / renderer.filename(context)
            path.write_text(renderer.render(context), encoding="utf-8")
            artifacts[report_type] = ReportArtifact(
                report_type=report_type, path=path, size=path.stat().st_size
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning("report '%s' failed: %s", report_type, exc)
            continue
        logger.info("wrote %s report to %s", report_type, path)
    return artifacts


def build_report_payload(context: ReportContext) -> dict[str, Any]:
    findings = context.findings
    return {
        "metadata": {
            "generated_at": context.generated_at,
            "version": __version__,
            "tool": "quality-audit",
            "project": context.project,
            "mode": context.mode,
            "config": dict(context.config),
        },
        "score": context.score.to_dict(),
        "findings": {name: finding.to_dict() for name, finding in findings.items()},
        "summary": {
            "total_issues": sum(len(finding.issues()) for finding in findings.values()),
            "critical_issues": len(critical_issues(findings)),
            "passed_analyzers": sum(1 for finding in findings.values() if finding.success),
            "failed_analyzers": sum(1 for finding in findings.values() if not finding.success),
            "overall_grade": context.score.grade,
            "needs_improvement": context.score.overall < 80,
        },
    }


def render_json_report(context: ReportContext) -> str:
    return json.dumps(build_report_payload(context), indent=2, sort_keys=True) + "\n"


def render_markdown_report(context: ReportContext) -> str:
    score = context.score
    lines: list[str] = [
        "# Code Review Report",
        "",
        f"**Project:** {context.project}  ",
        f"**Generated:** {context.generated_at}  ",
        f"**Overall Score:** {score.overall}/100 ({score.grade})",
        "",
        "## Analysis Summary",
        "",
        "| Analyzer | Status | Score | Weight | Summary |",
        "| --- | --- | --- | --- | --- |",
    ]
    for name, finding in context.findings.items():
        weight = score.breakdown[name].weight if name in score.breakdown else "-"
        lines.append(
            f"| {name} | {_status(finding)} | {finding.score()} | {weight} | "
            f"{finding.summary()} |"
        )
    lines.extend(["", "## Recommendations", ""])
    for item in recommendations(score):
        lines.append(f"- **{item.title}**: {item.description} {item.action}".rstrip())
    lines.append("")
    return "\n".join(lines)


def render_summary_report(context: ReportContext) -> str:
    return build_summary_markdown(
        context.findings,
        context.score,
        project=context.project,
        generated_at=context.generated_at,
    )


def render_prompts_report(context: ReportContext) -> str:
    return build_prompts_markdown(
        context.findings,
        context.score,
        context.ruleset,
        project=context.project,
        generated_at=context.generated_at,
    )


def render_html_report(context: ReportContext) -> str:
    score = context.score
    color = score_color(score.overall)
    cards: list[str] = []
    for name, finding in context.findings.items():
        cards.append(
            '<div class="card {status}"><h3>{name}</h3><p class="score">{sub}/100</p>'
            "<p>{summary}</p></div>".format(
                status=_status(finding),
                name=html.escape(name),
                sub=finding.score(),
                summary=html.escape(finding.summary()),
            )
        )

    rows: list[str] = []
    for name, finding in context.findings.items():
        for issue in finding.issues():
            location = issue.file if issue.line is None else f"{issue.file}:{issue.line}"
            rows.append(
                "<tr><td>{name}</td><td>{severity}</td><td>{location}</td>"
                "<td>{message}</td><td>{suggestion}</td></tr>".format(
                    name=html.escape(name),
                    severity=html.escape(issue.severity),
                    location=html.escape(location),
                    message=html.escape(issue.message),
                    suggestion=html.escape(issue.suggestion),
                )
            )

    advice = "".join(
        "<li><strong>{}</strong> {} <em>{}</em></li>".format(
            html.escape(item.title), html.escape(item.description), html.escape(item.action)
        )
        for item in recommendations(score)
    )
    issues_table = (
        "<table><thead><tr><th>Analyzer</th><th>Severity</th><th>Location</th>"
        "<th>Message</th><th>Suggestion</th></tr></thead><tbody>"
        + "".join(rows)
        + "</tbody></table>"
        if rows
        else "<p>No issues reported.</p>"
    )
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '<meta charset="utf-8">',
            f"<title>Code Review Report - {html.escape(context.project)}</title>",
            "<style>",
            "body{font-family:sans-serif;margin:2rem;color:#222}",
            ".overall{font-size:3rem;font-weight:bold}",
            ".cards{display:flex;flex-wrap:wrap;gap:1rem}",
            ".card{border:1px solid #ddd;border-radius:6px;padding:1rem;min-width:12rem}",
            ".card.failed{border-color:#f44336}.card.warning{border-color:#FF9800}",
            ".score{font-size:1.5rem;margin:0}",
            "table{border-collapse:collapse;width:100%}",
            "td,th{border-bottom:1px solid #eee;padding:.4rem;text-align:left}",
            "</style>",
            "</head>",
            "<body>",
            "<h1>Code Review Report</h1>",
            f"<p>{html.escape(context.project)} &middot; {html.escape(context.generated_at)}</p>",
            f'<p class="overall" style="color:{color}">{score.overall}/100 ({score.grade})</p>',
            "<h2>Analyzers</h2>",
            f'<div class="cards">{"".join(cards)}</div>',
            "<h2>Issues</h2>",
            issues_table,
            "<h2>Recommendations</h2>",
            f"<ul>{advice}</ul>",
            f"<footer><small>quality-audit {__version__}</small></footer>",
            "</body>",
            "</html>",
            "",
        ]
    )


def score_color(score: int) -> str:
    if score >= 90:
        return "#4CAF50"
    if score >= 80:
        return "#8BC34A"
    if score >= 70:
        return "#FFC107"
    if score >= 60:
        return "#FF9800"
    return "#f44336"


def _status(finding: Finding) -> str:
    if not finding.success:
        return "failed"
    return "passed" if finding.passed else "warning"


RENDERERS: dict[str, _Renderer] = {
    "html": _Renderer(lambda _: "code-review-report.html", render_html_report),
    "summary": _Renderer(
        lambda context: f"review-summary-{context.date_stamp}.md", render_summary_report
    ),
    "json": _Renderer(
        lambda context: f"code-review-report-{context.date_stamp}.json", render_json_report
    ),
    "markdown": _Renderer(
        lambda context: f"code-review-summary-{context.date_stamp}.md", render_markdown_report
    ),
    "ai-prompts": _Renderer(
        lambda context: f"ai-prompts-{context.date_stamp}.md", render_prompts_report
    ),
}
