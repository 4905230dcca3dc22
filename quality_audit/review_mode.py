"""Run modes and report selection."""

from __future__ import annotations

MODE_PLAIN = "plain"
MODE_EXPLORATORY = "exploratory"
RUN_MODES = (MODE_PLAIN, MODE_EXPLORATORY)

PRIMARY_REPORT = "html"
NARRATIVE_REPORT = "summary"
AI_PROMPTS_REPORT = "ai-prompts"

DEFAULT_REPORTS = {
    MODE_PLAIN: (PRIMARY_REPORT,),
    MODE_EXPLORATORY: (PRIMARY_REPORT, NARRATIVE_REPORT),
}

# Any of these in an explicit report list implies an AI-assisted run.
EXPLORATORY_REPORTS = frozenset({NARRATIVE_REPORT, AI_PROMPTS_REPORT})


def normalize_run_mode(raw: str | None, default: str = MODE_PLAIN) -> str:
    """Normalize run mode labels."""
    value = (raw or default).strip().lower().replace("_", "-")
    if value not in RUN_MODES:
        allowed = ", ".join(sorted(RUN_MODES))
        raise ValueError(f"run mode must be one of: {allowed}")
    return value


def resolve_run_mode(
    requested: str | None = None,
    *,
    explicit_reports: list[str] | None = None,
    ai_prompts: bool = False,
    ai_analysis: bool = False,
) -> str:
    """Return exploratory when any AI-oriented output is asked for."""
    mode = normalize_run_mode(requested)
    if ai_prompts or ai_analysis:
        return MODE_EXPLORATORY
    if explicit_reports and EXPLORATORY_REPORTS.intersection(explicit_reports):
        return MODE_EXPLORATORY
    return mode


def select_reports(mode: str, explicit: list[str] | None = None) -> list[str]:
    """Explicit lists win (deduplicated, order kept); otherwise use the mode default."""
    if explicit is not None:
        selected: list[str] = []
        for report_type in explicit:
            if report_type not in selected:
                selected.append(report_type)
        return selected
    return list(DEFAULT_REPORTS[normalize_run_mode(mode)])
