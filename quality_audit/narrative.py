"""Narrative Markdown: review summary, recommendations, and rule-focused AI prompts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from quality_audit.findings import CodeIssue, Finding
from quality_audit.ruleset import Category, Rule, RuleSet
from quality_audit.scoring import ScoreResult

BLOCKING_SEVERITIES = ("CRITICAL", "ERROR")
MAX_LISTED_ISSUES = 20


@dataclass(frozen=True, slots=True)
class Recommendation:
    title: str
    description: str
    action: str = ""


def recommendations(score: ScoreResult) -> list[Recommendation]:
    """Return score-driven next steps, most urgent first."""
    items: list[Recommendation] = []
    if score.overall < 60:
        items.append(
            Recommendation(
                "Critical quality issues",
                "The overall score is below 60. Fix blocking errors first.",
                "Rerun individual analyzers with `--analyzer` to isolate the worst areas.",
            )
        )
    breakdown = score.breakdown
    if "lint" in breakdown and breakdown["lint"].score < 80:
        items.append(
            Recommendation(
                "Lint issues",
                "Many lint findings affect consistency and readability.",
                "Run `ruff check --fix` to apply safe automatic fixes.",
            )
        )
    if "tests" in breakdown and breakdown["tests"].score < 70:
        items.append(
            Recommendation(
                "Test coverage",
                "Test coverage is below the recommended 70%.",
                "Add unit tests for core business logic and edge cases.",
            )
        )
    if "security" in breakdown and breakdown["security"].score < 100:
        items.append(
            Recommendation(
                "Security vulnerabilities",
                "Installed dependencies have known vulnerabilities.",
                "Upgrade the affected packages to a fixed version.",
            )
        )
    if not items:
        items.append(
            Recommendation(
                "Great job",
                "Code quality is in good shape.",
                "Consider broader tests, documentation, or performance work.",
            )
        )
    return items


def critical_issues(findings: Mapping[str, Finding]) -> list[tuple[str, CodeIssue]]:
    """Return blocking-severity issues across analyzers, CRITICAL before ERROR."""
    found = [
        (name, issue)
        for name, finding in findings.items()
        for issue in finding.issues()
        if issue.severity in BLOCKING_SEVERITIES
    ]
    return sorted(found, key=lambda item: BLOCKING_SEVERITIES.index(item[1].severity))


def priority_level(findings: Mapping[str, Finding], score: ScoreResult) -> str:
    if score.overall < 60 or any(
        issue.severity == "CRITICAL" for _, issue in critical_issues(findings)
    ):
        return "HIGH"
    if score.overall < 80 or any(not finding.success for finding in findings.values()):
        return "MEDIUM"
    return "LOW"


def build_summary_markdown(
    findings: Mapping[str, Finding],
    score: ScoreResult,
    *,
    project: str,
    generated_at: str,
) -> str:
    """Condensed narrative: critical issues, suggested fixes, and priority."""
    blocking = critical_issues(findings)
    lines: list[str] = [
        "# Code Review Summary",
        "",
        f"**Project:** {project}  ",
        f"**Generated:** {generated_at}  ",
        f"**Overall Score:** {score.overall}/100 ({score.grade})  ",
        f"**Priority Level:** {priority_level(findings, score)}",
        "",
        "## Analysis Overview",
        "",
    ]
    for name, finding in findings.items():
        marker = "ok" if finding.passed else ("failed" if not finding.success else "needs work")
        lines.append(f"- **{name}** ({marker}): {finding.summary()}")

    lines.extend(["", "## Critical Issues", ""])
    if blocking:
        for name, issue in blocking[:MAX_LISTED_ISSUES]:
            lines.append(f"- `{name}` {issue.severity} {_location(issue)}: {issue.message}")
        if len(blocking) > MAX_LISTED_ISSUES:
            lines.append(f"- ... and {len(blocking) - MAX_LISTED_ISSUES} more")
    else:
        lines.append("No critical issues found.")

    lines.extend(["", "## Suggested Fixes", ""])
    fixes = _unique_fixes(blocking)
    if fixes:
        lines.extend(f"- {fix}" for fix in fixes[:MAX_LISTED_ISSUES])
    else:
        lines.append("No fixes required for blocking issues.")

    lines.extend(["", "## Recommendations", ""])
    for item in recommendations(score):
        lines.append(f"### {item.title}")
        lines.append("")
        lines.append(item.description)
        if item.action:
            lines.extend(["", f"**Action:** {item.action}"])
        lines.append("")

    failed = [name for name, finding in findings.items() if not finding.success]
    if failed:
        lines.extend(["## Analyzers That Did Not Run", ""])
        lines.extend(f"- `{name}`: {findings[name].summary()}" for name in failed)
        lines.append("")
    return "\n".join(lines)


def focused_prompt(rules: list[Rule]) -> str:
    rule_lines = "\n".join(
        f"- **{rule.id}** ({rule.severity}): {rule.description}" for rule in rules
    )
    return "\n".join(
        [
            "Analyze the codebase focusing ONLY on the rules defined below. For each "
            "violation, give the exact line number, the rule ID, a specific fix, and "
            "its impact.",
            "",
            f"**Rules to Check ({len(rules)} total):**",
            rule_lines,
            "",
            "Check CRITICAL and ERROR severity first.",
        ]
    )


def category_prompt(name: str, rules: list[Rule], category: Category | None) -> str:
    description = category.description if category and category.description else None
    rule_lines = "\n".join(f"- **{rule.id}**: {rule.description}" for rule in rules)
    return "\n".join(
        [
            f"Analyze only {name}-related rules from the custom rule set.",
            "",
            f"**Category Description:** {description or 'No description available'}",
            "",
            f"**{name.capitalize()} Rules to Check:**",
            rule_lines,
            "",
            f"Report violations of these {name} rules with actionable fixes.",
        ]
    )


def build_ai_prompts(ruleset: RuleSet) -> dict[str, object]:
    """Return focused, security, and performance prompts plus custom prompts."""
    return {
        "focused_analysis": focused_prompt(ruleset.high_priority_rules()),
        "security_analysis": category_prompt(
            "security", ruleset.rules_by_category("security"), ruleset.categories.get("security")
        ),
        "performance_analysis": category_prompt(
            "performance",
            ruleset.rules_by_category("performance"),
            ruleset.categories.get("performance"),
        ),
        "custom_prompts": dict(ruleset.custom_prompts),
    }


def build_prompts_markdown(
    findings: Mapping[str, Finding],
    score: ScoreResult,
    ruleset: RuleSet,
    *,
    project: str,
    generated_at: str,
) -> str:
    lines: list[str] = [
        "# AI Analysis Prompts",
        "",
        f"**Project:** {project}  ",
        f"**Generated:** {generated_at}  ",
        f"**Overall Score:** {score.overall}/100 ({score.grade})",
        "",
        "## Static Analysis Summary",
        "",
    ]
    lines.extend(
        f"- **{name}:** {finding.summary()}"
        for name, finding in findings.items()
        if finding.success
    )
    lines.append("")

    if len(ruleset):
        prompts = build_ai_prompts(ruleset)
        lines.extend(["## Custom Rule Analysis", ""])
        for title, key in (
            ("Focused analysis", "focused_analysis"),
            ("Security analysis", "security_analysis"),
            ("Performance analysis", "performance_analysis"),
        ):
            lines.extend([f"### {title}", "", "```", str(prompts[key]), "```", ""])
        for name, text in ruleset.custom_prompts.items():
            lines.extend([f"### {name}", "", "```", text, "```", ""])

    weakest = sorted(score.breakdown.items(), key=lambda item: item[1].score)[:3]
    lines.extend(["## General Quality Prompt", "", "```"])
    lines.append(
        f"Static analysis scored this project {score.overall}/100. Identify the "
        "highest-impact issues behind that score and propose minimal fixes."
    )
    if weakest:
        areas = ", ".join(f"{name} ({item.score}/100)" for name, item in weakest)
        lines.append(f"Weakest areas: {areas}.")
    lines.extend(["```", ""])
    return "\n".join(lines)


def _location(issue: CodeIssue) -> str:
    if issue.line is None:
        return f"`{issue.file}`"
    return f"`{issue.file}:{issue.line}`"


def _unique_fixes(issues: list[tuple[str, CodeIssue]]) -> list[str]:
    fixes: list[str] = []
    for _, issue in issues:
        if issue.suggestion and issue.suggestion not in fixes:
            fixes.append(issue.suggestion)
    return fixes
