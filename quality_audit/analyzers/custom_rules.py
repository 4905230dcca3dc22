"""Custom-rule analyzer: applies the project RuleSet to every matching file."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor

from quality_audit.analyzers.base import AnalysisContext, AnalyzerError
from quality_audit.findings import CustomRulesFinding, Violation
from quality_audit.ruleset import SEVERITY_RANK, Rule

logger = logging.getLogger(__name__)


class CustomRulesAnalyzer:
    """Matches each applicable rule's pattern against file contents."""

    analyzer_id = "custom-rules"

    def evaluate(self, context: AnalysisContext) -> CustomRulesFinding:
        ruleset = context.ruleset
        if len(ruleset) == 0:
            raise AnalyzerError("No custom rules defined")

        warnings: list[str] = []
        patterns = compile_patterns(
            ruleset.rules, min_severity=context.min_severity, warnings=warnings
        )
        paths = context.source_files()
        workers = max(1, min(context.max_workers, len(paths) or 1))

        def scan(path: str) -> list[Violation]:
            try:
                content = context.read(path)
            except OSError as exc:
                logger.warning("could not analyze %s: %s", path, exc)
                return []
            applicable = [
                (rule, patterns[rule.id])
                for rule in ruleset.rules_for_file(path)
                if rule.id in patterns
            ]
            return scan_content(path, content, applicable)

        violations: list[Violation] = []
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for found in pool.map(scan, paths):
                violations.extend(found)

        return CustomRulesFinding(
            violations=violations, rules_summary=ruleset.summary(), warnings=warnings
        )


def compile_patterns(
    rules: tuple[Rule, ...],
    *,
    min_severity: str = "INFO",
    warnings: list[str] | None = None,
) -> dict[str, re.Pattern[str]]:
    """Compile rule patterns at or above ``min_severity``.

    Bad patterns are skipped and, when ``warnings`` is given, noted there.
    """
    floor = SEVERITY_RANK.get(min_severity.upper(), 0)
    compiled: dict[str, re.Pattern[str]] = {}
    for rule in rules:
        if SEVERITY_RANK.get(str(rule.severity).upper(), 0) < floor:
            continue
        try:
            compiled[rule.id] = rule.compile()
        except re.error as exc:
            logger.warning("skipping rule %s: invalid pattern: %s", rule.id, exc)
            if warnings is not None:
                warnings.append(f"Rule {rule.id} skipped: invalid pattern: {exc}")
    return compiled


def scan_content(
    path: str,
    content: str,
    rules: list[tuple[Rule, re.Pattern[str]]],
) -> list[Violation]:
    """Return one violation per non-empty match, numbered from line 1."""
    violations: list[Violation] = []
    for rule, pattern in rules:
        for match in pattern.finditer(content):
            matched = match.group(0)
            if not matched:
                continue
            violations.append(
                Violation(
                    file=path,
                    line=content.count("\n", 0, match.start()) + 1,
                    rule_id=rule.id,
                    severity=rule.severity,
                    message=rule.description,
                    suggestion=rule.suggestion,
                    matched_text=matched,
                )
            )
    return violations
