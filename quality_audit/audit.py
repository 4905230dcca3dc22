"""Top-level audit run: validate rules, run analyzers, score, and emit reports."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from quality_audit.analyzers import AnalysisContext, Analyzer, build_registry
from quality_audit.config import AppConfig
from quality_audit.findings import Finding
from quality_audit.orchestrator import AnalyzerOrchestrator
from quality_audit.reports import ReportArtifact, ReportContext, generate_reports
from quality_audit.review_mode import AI_PROMPTS_REPORT, resolve_run_mode, select_reports
from quality_audit.ruleset import ValidationResult
from quality_audit.scoring import ScoreResult, score_findings

logger = logging.getLogger(__name__)


class RuleValidationError(ValueError):
    """Raised before any analyzer runs when the rule set has blocking errors."""

    def __init__(self, result: ValidationResult) -> None:
        self.errors = list(result.errors)
        self.warnings = list(result.warnings)
        super().__init__(
            f"Rule validation failed with {len(self.errors)} error(s): " + "; ".join(self.errors)
        )


@dataclass(frozen=True, slots=True)
class RunResult:
    """Immutable outcome of one audit invocation."""

    findings: Mapping[str, Finding]
    score: ScoreResult
    reports: Mapping[str, ReportArtifact] = field(default_factory=dict)
    mode: str = "plain"
    generated_at: str = ""
    rule_warnings: tuple[str, ...] = ()

    def analyzer_status(self) -> dict[str, bool]:
        return {name: finding.passed for name, finding in self.findings.items()}

    def meets(self, fail_under: int | None) -> bool:
        return fail_under is None or self.score.overall >= fail_under

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "mode": self.mode,
            "score": self.score.to_dict(),
            "findings": {name: finding.to_dict() for name, finding in self.findings.items()},
            "passed": self.analyzer_status(),
            "reports": {name: item.to_dict() for name, item in self.reports.items()},
            "rule_warnings": list(self.rule_warnings),
        }


def build_context(root: Path, config: AppConfig) -> AnalysisContext:
    return AnalysisContext(
        root=root.resolve(),
        ruleset=config.ruleset(),
        ignore=tuple(config.ignore),
        timeout=config.timeout_seconds,
        min_severity=config.severity,
        commands={name: tuple(args) for name, args in config.tools.items()},
        max_workers=config.max_workers,
        min_coverage=config.min_coverage,
    )


def run_audit(
    root: Path,
    config: AppConfig,
    *,
    analyzers: list[str] | None = None,
    reports: list[str] | None = None,
    mode: str | None = None,
    ai_prompts: bool = False,
    ai_analysis: bool = False,
    write_reports: bool = True,
    registry: Mapping[str, Analyzer] | None = None,
) -> RunResult:
    """Run one audit of ``root``; raises ``RuleValidationError`` before analysis."""
    context = build_context(root, config)
    validation = context.ruleset.validate()
    if not validation.valid:
        raise RuleValidationError(validation)
    for warning in validation.warnings:
        logger.info("rule warning: %s", warning)

    names = list(analyzers) if analyzers is not None else list(config.analyzers)
    orchestrator = AnalyzerOrchestrator(
        registry if registry is not None else build_registry(),
        context,
        max_workers=config.max_workers,
    )
    findings = orchestrator.run(names)
    score = score_findings(findings, config.weights)

    explicit = reports if reports is not None else config.reporters
    run_mode = resolve_run_mode(
        mode or config.mode,
        explicit_reports=explicit,
        ai_prompts=ai_prompts,
        ai_analysis=ai_analysis,
    )
    generated_at = datetime.now(tz=UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")

    artifacts: dict[str, ReportArtifact] = {}
    if write_reports:
        selected = select_reports(run_mode, explicit)
        if ai_prompts and AI_PROMPTS_REPORT not in selected:
            selected.append(AI_PROMPTS_REPORT)
        output_dir = Path(config.output_dir)
        if not output_dir.is_absolute():
            output_dir = context.root / output_dir
        artifacts = generate_reports(
            selected,
            ReportContext(
                findings=findings,
                score=score,
                project=context.root.name,
                generated_at=generated_at,
                mode=run_mode,
                ruleset=context.ruleset,
                config=config.to_dict(),
            ),
            output_dir,
        )

    return RunResult(
        findings=findings,
        score=score,
        reports=artifacts,
        mode=run_mode,
        generated_at=generated_at,
        rule_warnings=tuple(validation.warnings),
    )
