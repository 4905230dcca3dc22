"""Per-analyzer finding records.

Each analyzer owns its finding shape. All variants share one interface:
``success``, ``passed``, ``score()``, ``summary()``, ``issues()`` and
``to_dict()``, so scoring and reporting never probe fields by name.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from quality_audit import scoring


@dataclass(frozen=True, slots=True)
class CodeIssue:
    """One located problem reported by an analyzer."""

    file: str
    line: int | None
    message: str
    severity: str = "WARNING"
    suggestion: str = ""
    rule: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "severity": self.severity,
            "suggestion": self.suggestion,
            "rule": self.rule,
        }


@dataclass(frozen=True, slots=True)
class Violation:
    """A custom-rule regex match."""

    file: str
    line: int
    rule_id: str
    severity: str
    message: str
    suggestion: str
    matched_text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "line": self.line,
            "rule": self.rule_id,
            "severity": self.severity,
            "message": self.message,
            "suggestion": self.suggestion,
            "matched_text": self.matched_text,
        }


@dataclass(frozen=True, slots=True)
class Vulnerability:
    package: str
    version: str
    vuln_id: str
    description: str = ""
    fix_versions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "version": self.version,
            "id": self.vuln_id,
            "description": self.description,
            "fix_versions": list(self.fix_versions),
        }


@dataclass(frozen=True, slots=True)
class OutdatedPackage:
    name: str
    current: str
    latest: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "current": self.current, "latest": self.latest}


@dataclass(frozen=True, slots=True)
class MissingTest:
    file: str
    reason: str
    functions: tuple[str, ...]
    suggested_test_file: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file,
            "reason": self.reason,
            "functions": list(self.functions),
            "suggested_test_file": self.suggested_test_file,
        }


class Finding:
    """Base class for analyzer results."""

    success = True

    @property
    def passed(self) -> bool:
        return self.success

    def score(self) -> int:
        raise NotImplementedError

    def summary(self) -> str:
        return "Analysis completed"

    def issues(self) -> list[CodeIssue]:
        return []

    def details(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "success": self.success,
            "passed": self.passed,
            "score": self.score(),
            "summary": self.summary(),
        }
        payload.update(self.details())
        return payload


@dataclass(slots=True)
class FailedFinding(Finding):
    """Recorded when an analyzer raised instead of returning a result."""

    error: str
    suggestion: str = ""
    success = False

    def score(self) -> int:
        return 0

    def summary(self) -> str:
        return f"Failed: {self.error or 'Unknown error'}"

    def details(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


@dataclass(slots=True)
class LintFinding(Finding):
    errors: int = 0
    warnings: int = 0
    items: list[CodeIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.errors == 0

    def score(self) -> int:
        return scoring.lint_score(self.errors, self.warnings)

    def summary(self) -> str:
        return f"{self.errors} errors, {self.warnings} warnings"

    def issues(self) -> list[CodeIssue]:
        return list(self.items)

    def details(self) -> dict[str, Any]:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "issues": [item.to_dict() for item in self.items],
        }


@dataclass(slots=True)
class TypecheckFinding(Finding):
    items: list[CodeIssue] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return len(self.items)

    @property
    def passed(self) -> bool:
        return self.errors == 0

    def score(self) -> int:
        return scoring.typecheck_score(self.errors)

    def summary(self) -> str:
        return f"{self.errors} type errors" if self.errors else "No type errors"

    def issues(self) -> list[CodeIssue]:
        return list(self.items)

    def details(self) -> dict[str, Any]:
        return {"errors": self.errors, "issues": [item.to_dict() for item in self.items]}


@dataclass(slots=True)
class SecurityFinding(Finding):
    items: list[Vulnerability] = field(default_factory=list)

    @property
    def vulnerabilities(self) -> int:
        return len(self.items)

    @property
    def passed(self) -> bool:
        return self.vulnerabilities == 0

    def score(self) -> int:
        return scoring.vulnerability_score(self.vulnerabilities)

    def summary(self) -> str:
        return f"{self.vulnerabilities} vulnerabilities found"

    def issues(self) -> list[CodeIssue]:
        return [
            CodeIssue(
                file=item.package,
                line=None,
                message=f"{item.vuln_id} in {item.package} {item.version}",
                severity="CRITICAL",
                suggestion=(
                    f"Upgrade to {', '.join(item.fix_versions)}"
                    if item.fix_versions
                    else "Check for a patched release or replace the package"
                ),
                rule=item.vuln_id,
            )
            for item in self.items
        ]

    def details(self) -> dict[str, Any]:
        return {
            "vulnerabilities": self.vulnerabilities,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(slots=True)
class TestsFinding(Finding):
    __test__ = False

    total: int = 0
    passed_tests: int = 0
    failed_tests: int = 0
    coverage: float | None = None

    @property
    def passed(self) -> bool:
        return self.failed_tests == 0 and self.total > 0

    def score(self) -> int:
        return scoring.tests_score(
            coverage=self.coverage, passed=self.passed_tests, total=self.total
        )

    def summary(self) -> str:
        text = f"{self.passed_tests}/{self.total} tests passed"
        if self.coverage is not None:
            text += f", {self.coverage:g}% coverage"
        return text

    def details(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "passed_tests": self.passed_tests,
            "failed_tests": self.failed_tests,
            "coverage": self.coverage,
        }


@dataclass(slots=True)
class CoverageFinding(Finding):
    files: dict[str, float] = field(default_factory=dict)
    total: float | None = None
    source: str = "structured"
    min_coverage: float = 70.0

    @property
    def passed(self) -> bool:
        return self.score() >= self.min_coverage

    def score(self) -> int:
        return scoring.coverage_score(self.files, self.total)

    def summary(self) -> str:
        total = "unknown" if self.total is None else f"{self.total:g}%"
        return f"{total} statement coverage, weighted score {self.score()}"

    def issues(self) -> list[CodeIssue]:
        return [
            CodeIssue(
                file=path,
                line=None,
                message=f"Statement coverage {percent:g}%",
                severity="WARNING",
                suggestion="Add tests for uncovered branches",
                rule="coverage",
            )
            for path, percent in sorted(self.files.items())
            if percent < self.min_coverage
        ]

    def details(self) -> dict[str, Any]:
        return {
            "coverage": self.total,
            "files": dict(self.files),
            "source": self.source,
        }


@dataclass(slots=True)
class ComplexityFinding(Finding):
    complexity_score: float | None = None
    total_functions: int = 0
    complex_functions: int = 0
    items: list[CodeIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.complex_functions == 0

    def score(self) -> int:
        return scoring.complexity_score(self.complexity_score)

    def summary(self) -> str:
        return f"Score: {self.score()}/100"

    def issues(self) -> list[CodeIssue]:
        return list(self.items)

    def details(self) -> dict[str, Any]:
        return {
            "total_functions": self.total_functions,
            "complex_functions": self.complex_functions,
            "issues": [item.to_dict() for item in self.items],
        }


@dataclass(slots=True)
class CustomRulesFinding(Finding):
    violations: list[Violation] = field(default_factory=list)
    rules_summary: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations

    def severity_counts(self) -> dict[str, int]:
        return dict(Counter(item.severity for item in self.violations))

    def score(self) -> int:
        return scoring.custom_rules_score(self.severity_counts())

    def summary(self) -> str:
        text = f"{len(self.violations)} rule violations"
        if self.warnings:
            text += f", {len(self.warnings)} rules skipped"
        return text

    def issues(self) -> list[CodeIssue]:
        return [
            CodeIssue(
                file=item.file,
                line=item.line,
                message=item.message,
                severity=item.severity,
                suggestion=item.suggestion,
                rule=item.rule_id,
            )
            for item in self.violations
        ]

    def details(self) -> dict[str, Any]:
        return {
            "violations": len(self.violations),
            "items": [item.to_dict() for item in self.violations],
            "rules_summary": dict(self.rules_summary),
            "warnings": list(self.warnings),
        }


@dataclass(slots=True)
class DependencyFinding(Finding):
    cycles: list[tuple[str, ...]] = field(default_factory=list)
    outdated: list[OutdatedPackage] = field(default_factory=list)
    outdated_checked: bool = True

    @property
    def passed(self) -> bool:
        return not self.cycles and not self.outdated

    def score(self) -> int:
        return scoring.dependency_score(
            has_cycles=bool(self.cycles), has_outdated=bool(self.outdated)
        )

    def summary(self) -> str:
        return f"{len(self.cycles)} import cycles, {len(self.outdated)} outdated packages"

    def issues(self) -> list[CodeIssue]:
        items = [
            CodeIssue(
                file=cycle[0],
                line=None,
                message="Circular import: " + " -> ".join(cycle),
                severity="ERROR",
                suggestion="Move shared code into a module both sides can import",
                rule="import-cycle",
            )
            for cycle in self.cycles
        ]
        items.extend(
            CodeIssue(
                file=package.name,
                line=None,
                message=f"{package.name} {package.current} is behind {package.latest}",
                severity="INFO",
                suggestion=f"Upgrade {package.name} to {package.latest}",
                rule="outdated-package",
            )
            for package in self.outdated
        )
        return items

    def details(self) -> dict[str, Any]:
        return {
            "cycles": [list(cycle) for cycle in self.cycles],
            "outdated": [item.to_dict() for item in self.outdated],
            "outdated_checked": self.outdated_checked,
        }


@dataclass(slots=True)
class PerformanceFinding(Finding):
    items: list[CodeIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.items

    def score(self) -> int:
        return scoring.performance_score(len(self.items))

    def summary(self) -> str:
        return f"{len(self.items)} performance issues"

    def issues(self) -> list[CodeIssue]:
        return list(self.items)

    def details(self) -> dict[str, Any]:
        return {"performance_issues": [item.to_dict() for item in self.items]}


@dataclass(slots=True)
class ArchitectureFinding(Finding):
    items: list[CodeIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.items

    def score(self) -> int:
        return scoring.architecture_score(len(self.items))

    def summary(self) -> str:
        return f"{len(self.items)} architecture anti-patterns"

    def issues(self) -> list[CodeIssue]:
        return list(self.items)

    def details(self) -> dict[str, Any]:
        return {"anti_patterns": [item.to_dict() for item in self.items]}


@dataclass(slots=True)
class BugDetectionFinding(Finding):
    bugs: list[CodeIssue] = field(default_factory=list)
    security_risks: list[CodeIssue] = field(default_factory=list)
    potential_issues: list[CodeIssue] = field(default_factory=list)
    performance_issues: list[CodeIssue] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.bugs and not self.security_risks

    def score(self) -> int:
        return scoring.bug_detection_score(
            bugs=len(self.bugs),
            security_risks=len(self.security_risks),
            potential_issues=len(self.potential_issues),
            performance_issues=len(self.performance_issues),
        )

    def summary(self) -> str:
        return (
            f"{len(self.bugs)} bugs, {len(self.security_risks)} security risks, "
            f"{len(self.potential_issues)} potential issues"
        )

    def issues(self) -> list[CodeIssue]:
        return [
            *self.security_risks,
            *self.bugs,
            *self.performance_issues,
            *self.potential_issues,
        ]

    def details(self) -> dict[str, Any]:
        return {
            "bugs": [item.to_dict() for item in self.bugs],
            "security_risks": [item.to_dict() for item in self.security_risks],
            "potential_issues": [item.to_dict() for item in self.potential_issues],
            "performance_issues": [item.to_dict() for item in self.performance_issues],
        }


@dataclass(slots=True)
class TestCasesFinding(Finding):
    __test__ = False

    missing_tests: list[MissingTest] = field(default_factory=list)
    poor_tests: list[CodeIssue] = field(default_factory=list)
    coverage: float | None = None

    @property
    def passed(self) -> bool:
        return not self.missing_tests and not self.poor_tests

    def score(self) -> int:
        return scoring.test_cases_score(
            missing=len(self.missing_tests),
            poor=len(self.poor_tests),
            coverage=self.coverage,
        )

    def summary(self) -> str:
        return (
            f"{len(self.missing_tests)} modules without tests, "
            f"{len(self.poor_tests)} weak tests"
        )

    def issues(self) -> list[CodeIssue]:
        items = [
            CodeIssue(
                file=item.file,
                line=None,
                message=f"No tests found ({item.reason})",
                severity="WARNING",
                suggestion=f"Create {item.suggested_test_file}",
                rule="missing-test",
            )
            for item in self.missing_tests
        ]
        items.extend(self.poor_tests)
        return items

    def details(self) -> dict[str, Any]:
        return {
            "missing_tests": [item.to_dict() for item in self.missing_tests],
            "poor_tests": [item.to_dict() for item in self.poor_tests],
            "coverage": self.coverage,
        }
