"""Coverage analyzer: structured coverage.py JSON first, scraped TOTAL as fallback."""

from __future__ import annotations

import json
import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from quality_audit.analyzers.base import AnalysisContext, AnalyzerError, relative_path
from quality_audit.analyzers.testrun import scrape_total_coverage
from quality_audit.findings import CoverageFinding
from quality_audit.runner import ToolError

logger = logging.getLogger(__name__)

DEFAULT_JSON_COMMAND = ("coverage", "json", "-q", "-o", "{output}")
DEFAULT_REPORT_COMMAND = ("coverage", "report")
REPORT_COMMAND_KEY = "coverage-report"

# Structured and scraped totals may differ by rounding.
DISAGREEMENT_TOLERANCE = 1.0


@dataclass(slots=True)
class StructuredCoverage:
    files: dict[str, float] = field(default_factory=dict)
    total: float | None = None


class CoverageAnalyzer:
    """Reads statement coverage and applies the two-tier weighting."""

    analyzer_id = "coverage"

    def evaluate(self, context: AnalysisContext) -> CoverageFinding:
        structured: StructuredCoverage | None = None
        with tempfile.TemporaryDirectory(prefix="quality-audit-") as tmp:
            report_path = Path(tmp) / "coverage.json"
            try:
                context.run_tool(self.analyzer_id, DEFAULT_JSON_COMMAND, output=str(report_path))
                structured = load_structured_report(report_path, root=context.root)
            except ToolError as exc:
                logger.info("structured coverage unavailable: %s", exc)

        scraped: float | None = None
        try:
            result = context.run_tool(REPORT_COMMAND_KEY, DEFAULT_REPORT_COMMAND)
            scraped = scrape_total_coverage(result.stdout)
        except ToolError:
            if structured is None:
                raise

        if structured is not None:
            if (
                structured.total is not None
                and scraped is not None
                and abs(structured.total - scraped) > DISAGREEMENT_TOLERANCE
            ):
                logger.warning(
                    "structured coverage %.1f%% disagrees with reported TOTAL %.1f%%",
                    structured.total,
                    scraped,
                )
            return CoverageFinding(
                files=structured.files,
                total=structured.total if structured.total is not None else scraped,
                source="structured",
                min_coverage=context.min_coverage,
            )
        if scraped is not None:
            return CoverageFinding(
                total=scraped, source="scraped", min_coverage=context.min_coverage
            )
        raise AnalyzerError("No coverage data found; run the test suite under coverage first")


def load_structured_report(path: Path, *, root: Path) -> StructuredCoverage | None:
    """Load a coverage.py JSON report; ``None`` when missing or malformed."""
    if not path.is_file():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("could not read coverage report %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        return None

    files: dict[str, float] = {}
    raw_files = payload.get("files")
    if isinstance(raw_files, dict):
        for name, data in raw_files.items():
            percent = _percent(data)
            if percent is not None:
                files[relative_path(name, root)] = percent
    return StructuredCoverage(files=files, total=_percent(payload.get("totals")))


def _percent(data: object) -> float | None:
    if not isinstance(data, dict):
        return None
    summary = data.get("summary", data)
    if not isinstance(summary, dict):
        return None
    value = summary.get("percent_covered")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)
