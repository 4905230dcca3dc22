"""Line-level bug and risk patterns."""

from __future__ import annotations

import re

from quality_audit.analyzers.base import AnalysisContext, clip_line, read_files
from quality_audit.findings import BugDetectionFinding, CodeIssue

BUGS = "bugs"
SECURITY_RISKS = "security_risks"
POTENTIAL_ISSUES = "potential_issues"
PERFORMANCE_ISSUES = "performance_issues"

SEVERITY_BY_KIND = {
    BUGS: "ERROR",
    SECURITY_RISKS: "CRITICAL",
    POTENTIAL_ISSUES: "WARNING",
    PERFORMANCE_ISSUES: "INFO",
}

PATTERNS = [
    (
        r"\bdef\s+\w+\(.*=\s*(?:\[\]|\{\}|set\(\))",
        BUGS,
        "Mutable default argument",
        "Default to None and create the container inside the function.",
    ),
    (
        r"\bis\s+(?:not\s+)?(?:['\"]|-?\d)",
        BUGS,
        "Identity comparison with a literal",
        "Use == or != for value comparison.",
    ),
    (
        r"^\s*assert\s*\(.+,.+\)\s*$",
        BUGS,
        "Assert on a tuple is always true",
        "Drop the parentheses: assert condition, message.",
    ),
    (r"\beval\(", SECURITY_RISKS, "Dynamic eval usage", "Avoid eval; parse input explicitly."),
    (
        r"\bexec\(",
        SECURITY_RISKS,
        "Dynamic exec usage",
        "Replace exec with explicit dispatch logic.",
    ),
    (
        r"\bos\.system\(",
        SECURITY_RISKS,
        "Shell execution path",
        "Use subprocess with an argument list.",
    ),
    (
        r"shell\s*=\s*True",
        SECURITY_RISKS,
        "Subprocess shell execution enabled",
        "Avoid shell=True unless inputs are trusted.",
    ),
    (
        r"\bpickle\.loads?\(",
        SECURITY_RISKS,
        "Unsafe deserialization",
        "Avoid unpickling untrusted data.",
    ),
    (
        r"\byaml\.load\((?!.*Loader)",
        SECURITY_RISKS,
        "YAML load without an explicit loader",
        "Use yaml.safe_load().",
    ),
    (
        r"verify\s*=\s*False",
        SECURITY_RISKS,
        "TLS verification disabled",
        "Keep certificate verification enabled.",
    ),
    (
        r"(?i)\b(?:password|passwd|secret|api_key|token)\s*=\s*['\"][^'\"]+['\"]",
        SECURITY_RISKS,
        "Hardcoded credential",
        "Load secrets from the environment or a secret store.",
    ),
    (
        r"^\s*except\s*:",
        POTENTIAL_ISSUES,
        "Bare except clause",
        "Catch specific exceptions.",
    ),
    (
        r"[=!]=\s*None\b",
        POTENTIAL_ISSUES,
        "Equality comparison with None",
        "Use `is None` or `is not None`.",
    ),
    (
        r"^\s*except\s+Exception\s*:\s*pass\b",
        POTENTIAL_ISSUES,
        "Exception silently ignored",
        "Log or re-raise the exception.",
    ),
    (
        r"\bfor\s+\w+\s+in\s+range\(len\(",
        PERFORMANCE_ISSUES,
        "Index-based loop over a sequence",
        "Iterate directly or use enumerate().",
    ),
    (
        r"\bin\s+\w+\.keys\(\)",
        PERFORMANCE_ISSUES,
        "Membership test against .keys()",
        "Test membership on the mapping itself.",
    ),
]

COMPILED = [
    (re.compile(regex), kind, message, suggestion) for regex, kind, message, suggestion in PATTERNS
]


class BugDetectionAnalyzer:
    """Scans production lines for bug-prone and risky constructs."""

    analyzer_id = "bug-detection"

    def evaluate(self, context: AnalysisContext) -> BugDetectionFinding:
        found: dict[str, list[CodeIssue]] = {kind: [] for kind in SEVERITY_BY_KIND}
        for path, content in read_files(context, context.production_files()).items():
            for kind, issue in scan_lines(path, content):
                found[kind].append(issue)
        return BugDetectionFinding(
            bugs=found[BUGS],
            security_risks=found[SECURITY_RISKS],
            potential_issues=found[POTENTIAL_ISSUES],
            performance_issues=found[PERFORMANCE_ISSUES],
        )


def scan_lines(path: str, content: str) -> list[tuple[str, CodeIssue]]:
    hits: list[tuple[str, CodeIssue]] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith("#"):
            continue
        for regex, kind, message, suggestion in COMPILED:
            if regex.search(line) is None:
                continue
            hits.append(
                (
                    kind,
                    CodeIssue(
                        file=path,
                        line=line_number,
                        message=f"{message}: `{clip_line(line)}`",
                        severity=SEVERITY_BY_KIND[kind],
                        suggestion=suggestion,
                        rule=kind,
                    ),
                )
            )
    return hits
