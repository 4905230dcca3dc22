"""Dependency vulnerability analyzer backed by pip-audit."""

from __future__ import annotations

import json
import logging
from typing import Any

from quality_audit.analyzers.base import AnalysisContext, AnalyzerError
from quality_audit.findings import SecurityFinding, Vulnerability

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("pip-audit", "--format", "json", "--progress-spinner", "off")


class SecurityAnalyzer:
    """Audits installed dependencies for known vulnerabilities."""

    analyzer_id = "security"

    def evaluate(self, context: AnalysisContext) -> SecurityFinding:
        result = context.run_tool(self.analyzer_id, DEFAULT_COMMAND)
        if not result.stdout.strip():
            if result.success:
                return SecurityFinding()
            raise AnalyzerError(
                result.stderr.strip().splitlines()[-1]
                if result.stderr.strip()
                else f"vulnerability audit exited with status {result.returncode}"
            )
        return parse_audit_json(result.stdout)


def parse_audit_json(text: str) -> SecurityFinding:
    """Parse pip-audit JSON, accepting both the current and the legacy list shape."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalyzerError(f"could not parse vulnerability report: {exc}") from exc

    if isinstance(payload, dict):
        dependencies = payload.get("dependencies", [])
    else:
        dependencies = payload
    if not isinstance(dependencies, list):
        logger.warning("unexpected vulnerability report shape")
        return SecurityFinding()

    items: list[Vulnerability] = []
    for dependency in dependencies:
        if not isinstance(dependency, dict):
            continue
        for vuln in dependency.get("vulns") or []:
            if isinstance(vuln, dict):
                items.append(_vulnerability(dependency, vuln))
    return SecurityFinding(items=items)


def _vulnerability(dependency: dict[str, Any], vuln: dict[str, Any]) -> Vulnerability:
    fixes = vuln.get("fix_versions") or []
    return Vulnerability(
        package=str(dependency.get("name") or "unknown"),
        version=str(dependency.get("version") or ""),
        vuln_id=str(vuln.get("id") or "unknown"),
        description=str(vuln.get("description") or ""),
        fix_versions=tuple(str(item) for item in fixes if item),
    )
