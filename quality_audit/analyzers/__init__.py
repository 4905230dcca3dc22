"""Analyzers package."""

from collections.abc import Callable
from dataclasses import dataclass

from quality_audit.analyzers.architecture import ArchitectureAnalyzer
from quality_audit.analyzers.base import AnalysisContext, Analyzer, AnalyzerError
from quality_audit.analyzers.bug_detection import BugDetectionAnalyzer
from quality_audit.analyzers.complexity import ComplexityAnalyzer
from quality_audit.analyzers.coverage import CoverageAnalyzer
from quality_audit.analyzers.custom_rules import CustomRulesAnalyzer
from quality_audit.analyzers.dependencies import DependencyAnalyzer
from quality_audit.analyzers.lint import LintAnalyzer
from quality_audit.analyzers.performance import PerformanceAnalyzer
from quality_audit.analyzers.security import SecurityAnalyzer
from quality_audit.analyzers.testcases import TestCasesAnalyzer
from quality_audit.analyzers.testrun import TestRunAnalyzer
from quality_audit.analyzers.typecheck import TypecheckAnalyzer

__all__ = [
    "AnalysisContext",
    "Analyzer",
    "AnalyzerError",
    "AnalyzerInfo",
    "DEFAULT_ANALYZERS",
    "DEFAULT_WEIGHTS",
    "KNOWN_ANALYZERS",
    "build_registry",
    "list_analyzer_info",
]


@dataclass(frozen=True, slots=True)
class AnalyzerInfo:
    """Analyzer metadata for listing and selection."""

    analyzer_id: str
    name: str
    description: str
    external_tool: bool
    default_enabled: bool
    default_weight: int


@dataclass(frozen=True, slots=True)
class _AnalyzerSpec:
    analyzer_id: str
    factory: Callable[[], Analyzer]
    name: str
    description: str
    external_tool: bool
    weight: int


_SPECS: tuple[_AnalyzerSpec, ...] = (
    _AnalyzerSpec("lint", LintAnalyzer, "Lint", "ruff lint errors and warnings", True, 12),
    _AnalyzerSpec("typecheck", TypecheckAnalyzer, "Type check", "mypy type errors", True, 12),
    _AnalyzerSpec(
        "security", SecurityAnalyzer, "Security", "pip-audit dependency vulnerabilities", True, 20
    ),
    _AnalyzerSpec("tests", TestRunAnalyzer, "Tests", "pytest pass rate and coverage", True, 10),
    _AnalyzerSpec(
        "coverage", CoverageAnalyzer, "Coverage", "two-tier weighted statement coverage", True, 8
    ),
    _AnalyzerSpec(
        "complexity", ComplexityAnalyzer, "Complexity", "functions over 50 lines", False, 8
    ),
    _AnalyzerSpec(
        "custom-rules",
        CustomRulesAnalyzer,
        "Custom rules",
        "project RuleSet regex violations",
        False,
        10,
    ),
    _AnalyzerSpec(
        "dependencies",
        DependencyAnalyzer,
        "Dependencies",
        "local import cycles and outdated packages",
        False,
        8,
    ),
    _AnalyzerSpec(
        "performance",
        PerformanceAnalyzer,
        "Performance",
        "blocking calls in async code and oversized modules",
        False,
        8,
    ),
    _AnalyzerSpec(
        "architecture",
        ArchitectureAnalyzer,
        "Architecture",
        "module-level design anti-patterns",
        False,
        5,
    ),
    _AnalyzerSpec(
        "bug-detection",
        BugDetectionAnalyzer,
        "Bug detection",
        "bug-prone and insecure line patterns",
        False,
        15,
    ),
    _AnalyzerSpec(
        "test-cases",
        TestCasesAnalyzer,
        "Test cases",
        "modules without tests and tests without assertions",
        False,
        12,
    ),
)

DEFAULT_ANALYZERS: tuple[str, ...] = (
    "lint",
    "typecheck",
    "security",
    "tests",
    "complexity",
    "bug-detection",
    "test-cases",
)
DEFAULT_WEIGHTS: dict[str, int] = {spec.analyzer_id: spec.weight for spec in _SPECS}
KNOWN_ANALYZERS: tuple[str, ...] = tuple(spec.analyzer_id for spec in _SPECS)


def build_registry() -> dict[str, Analyzer]:
    """Return a fresh instance of every known analyzer keyed by id."""
    return {spec.analyzer_id: spec.factory() for spec in _SPECS}


def list_analyzer_info(enabled: list[str] | None = None) -> list[AnalyzerInfo]:
    """Return metadata for all known analyzers."""
    active = set(DEFAULT_ANALYZERS if enabled is None else enabled)
    return [
        AnalyzerInfo(
            analyzer_id=spec.analyzer_id,
            name=spec.name,
            description=spec.description,
            external_tool=spec.external_tool,
            default_enabled=spec.analyzer_id in active,
            default_weight=spec.weight,
        )
        for spec in _SPECS
    ]
