"""Sub-score policies, two-tier coverage weighting, and weighted aggregation.

Every policy is a pure function returning an integer clamped to ``[0, 100]``.
Finding variants call into these from their ``score()`` methods, and
:func:`score_findings` combines the sub-scores with the configured weight
table into the overall score and letter grade.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Protocol

GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

# Coverage tiers: names with an infrastructure marker and no core marker are
# infrastructure; everything else, including ambiguous names, is core logic.
CORE_LOGIC_MARKERS = (
    "controller",
    "service",
    "util",
    "helper",
    "config",
    "constant",
    "validat",
)
INFRASTRUCTURE_MARKERS = ("route", "router", "middleware")
CORE_LOGIC_WEIGHT = 0.8
INFRASTRUCTURE_WEIGHT = 0.2

COVERAGE_BOOST_THRESHOLD = 70.0
COVERAGE_PENALTY_THRESHOLD = 40.0
COVERAGE_BOOST = 1.1
COVERAGE_PENALTY = 0.8

BUG_PENALTIES = {
    "bugs": 25,
    "security_risks": 30,
    "potential_issues": 5,
    "performance_issues": 10,
}
CUSTOM_RULE_PENALTIES = {"CRITICAL": 20, "ERROR": 10, "WARNING": 3, "INFO": 1}


class Scorable(Protocol):
    """Anything that can report a 0-100 sub-score."""

    def score(self) -> int:
        """Return the analyzer sub-score."""


@dataclass(frozen=True, slots=True)
class AnalyzerScore:
    """One analyzer's contribution to the overall score."""

    score: int
    weight: int

    def to_dict(self) -> dict[str, int]:
        return {"score": self.score, "weight": self.weight}


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Weighted overall score, grade, and per-analyzer breakdown."""

    overall: int
    grade: str
    breakdown: dict[str, AnalyzerScore] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "grade": self.grade,
            "breakdown": {name: item.to_dict() for name, item in self.breakdown.items()},
        }


def score_findings(findings: Mapping[str, Scorable], weights: Mapping[str, int]) -> ScoreResult:
    """Combine sub-scores of analyzers present in both ``findings`` and ``weights``."""
    weighted_total = 0.0
    weight_total = 0
    breakdown: dict[str, AnalyzerScore] = {}

    for name, finding in findings.items():
        weight = weights.get(name)
        if weight is None:
            continue
        sub_score = clamp(finding.score())
        weighted_total += sub_score / 100 * weight
        weight_total += weight
        breakdown[name] = AnalyzerScore(score=sub_score, weight=weight)

    if weight_total <= 0:
        overall = 0
    else:
        overall = clamp(weighted_total / weight_total * 100)
    return ScoreResult(overall=overall, grade=grade_for(overall), breakdown=breakdown)


def grade_for(score: int) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "F"


def clamp(value: float, lower: int = 0, upper: int = 100) -> int:
    """Round half-up and clamp into ``[lower, upper]``."""
    return max(lower, min(upper, math.floor(value + 0.5)))


def lint_score(errors: int, warnings: int) -> int:
    return clamp(100 - (errors * 2 + warnings))


def typecheck_score(errors: int) -> int:
    return 100 if errors == 0 else 0


def vulnerability_score(vulnerabilities: int) -> int:
    return clamp(100 - vulnerabilities * 20)


def complexity_score(score: float | None) -> int:
    return 100 if score is None else clamp(score)


def bug_detection_score(
    *,
    bugs: int,
    security_risks: int,
    potential_issues: int,
    performance_issues: int,
) -> int:
    penalty = (
        bugs * BUG_PENALTIES["bugs"]
        + security_risks * BUG_PENALTIES["security_risks"]
        + potential_issues * BUG_PENALTIES["potential_issues"]
        + performance_issues * BUG_PENALTIES["performance_issues"]
    )
    return clamp(100 - penalty)


def custom_rules_score(severity_counts: Mapping[str, int]) -> int:
    penalty = sum(
        CUSTOM_RULE_PENALTIES.get(severity, 1) * count
        for severity, count in severity_counts.items()
    )
    return clamp(100 - penalty)


def dependency_score(*, has_cycles: bool, has_outdated: bool) -> int:
    penalty = (30 if has_cycles else 0) + (20 if has_outdated else 0)
    return clamp(100 - penalty)


def performance_score(issues: int) -> int:
    return clamp(100 - issues * 10)


def architecture_score(anti_patterns: int) -> int:
    return clamp(100 - anti_patterns * 15)


def test_cases_score(*, missing: int, poor: int, coverage: float | None = None) -> int:
    score = 100 - missing * 10 - poor * 20
    if coverage is not None:
        score = min(score, coverage)
    return clamp(score)


def tests_score(*, coverage: float | None, passed: int, total: int) -> int:
    if coverage is not None:
        return clamp(coverage)
    if total <= 0:
        return 0
    return clamp(passed / total * 100)


def classify_coverage_file(path: str) -> str:
    """Return ``"infrastructure"`` for route/middleware glue, else ``"core"``."""
    name = PurePosixPath(path.lower()).name
    is_core = any(marker in name for marker in CORE_LOGIC_MARKERS)
    is_infrastructure = any(marker in name for marker in INFRASTRUCTURE_MARKERS)
    if is_infrastructure and not is_core:
        return "infrastructure"
    return "core"


def weighted_coverage_score(file_coverage: Mapping[str, float]) -> float | None:
    """Blend per-class mean statement coverage 80/20 toward core logic.

    Returns ``None`` when there is no per-file data. When one class is empty
    the other class's mean stands in for it.
    """
    if not file_coverage:
        return None
    core: list[float] = []
    infrastructure: list[float] = []
    for path, percent in file_coverage.items():
        bucket = infrastructure if classify_coverage_file(path) == "infrastructure" else core
        bucket.append(percent)

    core_mean = _mean(core)
    infrastructure_mean = _mean(infrastructure)
    if core_mean is None or infrastructure_mean is None:
        return core_mean if core_mean is not None else infrastructure_mean
    return CORE_LOGIC_WEIGHT * core_mean + INFRASTRUCTURE_WEIGHT * infrastructure_mean


def raw_coverage_score(percent: float) -> int:
    """Convex fallback curve over aggregate statement coverage."""
    if percent >= COVERAGE_BOOST_THRESHOLD:
        return clamp(min(100.0, percent * COVERAGE_BOOST))
    if percent >= COVERAGE_PENALTY_THRESHOLD:
        return clamp(percent)
    return clamp(percent * COVERAGE_PENALTY)


def coverage_score(file_coverage: Mapping[str, float], total_percent: float | None) -> int:
    weighted = weighted_coverage_score(file_coverage)
    if weighted is not None:
        return clamp(weighted)
    if total_percent is None:
        return 0
    return raw_coverage_score(total_percent)


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)
