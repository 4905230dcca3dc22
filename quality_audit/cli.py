"""CLI entrypoint for quality-audit."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated

import click
import typer

from quality_audit import __version__
from quality_audit.analyzers import list_analyzer_info
from quality_audit.audit import RuleValidationError, run_audit
from quality_audit.config import (
    AppConfig,
    check_config,
    default_config_template,
    load_app_config,
)
from quality_audit.output import render_human, render_json, render_validation_human
from quality_audit.review_mode import normalize_run_mode
from quality_audit.ruleset import RuleSet, RuleSetError
from quality_audit.templates import (
    init_project,
    list_templates,
    load_template_ruleset,
    template_info,
)

app = typer.Typer(
    name="quality-audit",
    no_args_is_help=True,
    help="Audit a source tree and produce a weighted quality score.",
)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    """Print version and exit when --version is provided."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=version_callback),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log analyzer progress to stderr.")
    ] = False,
) -> None:
    """Root command callback."""
    _ = version
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        force=True,
    )


@app.command("analyze")
def analyze_command(
    repo: Annotated[Path, typer.Option(help="Project root to audit.")] = Path("."),
    analyzer: Annotated[
        list[str] | None,
        typer.Option("--analyzer", "-a", help="Analyzer to run (repeatable)."),
    ] = None,
    report: Annotated[
        list[str] | None,
        typer.Option("--report", "-r", help="Report type to write (repeatable)."),
    ] = None,
    no_reports: Annotated[
        bool, typer.Option("--no-reports", help="Skip writing report files.")
    ] = False,
    mode: Annotated[
        str | None, typer.Option(help="Run mode: plain|exploratory.", show_default="plain")
    ] = None,
    ai_prompts: Annotated[
        bool, typer.Option("--ai-prompts", help="Also write rule-focused AI prompts.")
    ] = False,
    ai_analysis: Annotated[
        bool, typer.Option("--ai-analysis", help="Request the narrative AI summary.")
    ] = False,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    fail_under: Annotated[
        int | None, typer.Option(help="Exit nonzero if overall score is below this value.")
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Run analyzers, score the project, and write reports."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")
    if mode is not None:
        try:
            mode = normalize_run_mode(mode)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--mode") from exc

    app_config = _load_config_or_raise(repo, config_file)
    try:
        result = run_audit(
            repo,
            app_config,
            analyzers=analyzer or None,
            reports=report or None,
            mode=mode,
            ai_prompts=ai_prompts,
            ai_analysis=ai_analysis,
            write_reports=not no_reports,
        )
    except RuleValidationError as exc:
        typer.echo(click.style("Rule validation failed:", fg="red", bold=True), err=True)
        for error in exc.errors:
            typer.echo(f"- {error}", err=True)
        raise typer.Exit(code=2) from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.rules") from exc

    threshold = fail_under if fail_under is not None else app_config.fail_under
    if output_format == "json":
        typer.echo(render_json(result, fail_under=threshold))
    else:
        typer.echo(render_human(result, fail_under=threshold))

    if not result.meets(threshold):
        raise typer.Exit(code=1)


@app.command("analyzers")
def analyzers_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List available analyzers and whether they are enabled."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    enabled = set(app_config.analyzers)
    info = list_analyzer_info()

    if output_format == "json":
        payload = {
            "analyzers": [
                {
                    "analyzer_id": item.analyzer_id,
                    "name": item.name,
                    "description": item.description,
                    "external_tool": item.external_tool,
                    "default_enabled": item.default_enabled,
                    "enabled": item.analyzer_id in enabled,
                    "weight": app_config.weights.get(item.analyzer_id, item.default_weight),
                }
                for item in info
            ],
            "meta": {"config_source": app_config.source},
        }
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = ["Available analyzers:"]
    for item in info:
        status = "enabled" if item.analyzer_id in enabled else "disabled"
        weight = app_config.weights.get(item.analyzer_id, item.default_weight)
        lines.append(f"- {item.analyzer_id} [{status}, weight {weight}] - {item.description}")
    typer.echo("\n".join(lines))


@app.command("rules")
def rules_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    rules_file: Annotated[
        Path | None,
        typer.Option("--rules-file", help="Read rules from a TOML/JSON file instead."),
    ] = None,
    validate: Annotated[
        bool, typer.Option("--validate", help="Validate and exit nonzero on errors.")
    ] = False,
    export: Annotated[
        Path | None, typer.Option("--export", help="Write the rule set as JSON.")
    ] = None,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """List, validate, or export the custom rule set."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    ruleset = _load_ruleset_or_raise(repo, config_file, rules_file)
    result = ruleset.validate()

    if export is not None:
        try:
            ruleset.save(export)
        except RuleSetError as exc:
            raise typer.BadParameter(str(exc), param_hint="--export") from exc

    if output_format == "json":
        payload = {
            "rules": [rule.to_dict() for rule in ruleset.rules],
            "summary": ruleset.summary(),
            "validation": result.to_dict(),
        }
        typer.echo(json.dumps(payload, sort_keys=True))
    elif validate:
        typer.echo(render_validation_human(result))
    else:
        lines = [f"Custom rules ({len(ruleset)}):"]
        for rule in ruleset.rules:
            scope = f" files={list(rule.files)}" if rule.files else ""
            lines.append(f"- {rule.id} [{rule.severity}/{rule.category}] {rule.description}{scope}")
        if not result.valid:
            lines.append(click.style(f"{len(result.errors)} validation errors", fg="red"))
        typer.echo("\n".join(lines))

    if validate and not result.valid:
        raise typer.Exit(code=1)


@app.command("templates")
def templates_command(
    show: Annotated[str | None, typer.Option("--show", help="Template to describe.")] = None,
    validate: Annotated[
        str | None, typer.Option("--validate", help="Template to validate.")
    ] = None,
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
) -> None:
    """List, describe, or validate bundled rule templates."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    if validate is not None:
        try:
            result = load_template_ruleset(validate).validate()
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--validate") from exc
        if output_format == "json":
            typer.echo(json.dumps(result.to_dict(), sort_keys=True))
        else:
            typer.echo(render_validation_human(result))
        if not result.valid:
            raise typer.Exit(code=1)
        return

    if show is not None:
        try:
            info = template_info(show)
            ruleset = load_template_ruleset(show)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--show") from exc
        if output_format == "json":
            payload = info.to_dict()
            payload["rule_ids"] = [rule.id for rule in ruleset.rules]
            typer.echo(json.dumps(payload, sort_keys=True))
            return
        lines = [f"{info.name} v{info.version}: {info.description}"]
        lines.extend(f"- {rule.id} [{rule.severity}] {rule.description}" for rule in ruleset.rules)
        typer.echo("\n".join(lines))
        return

    templates = list_templates()
    if output_format == "json":
        payload = {"templates": [item.to_dict() for item in templates]}
        typer.echo(json.dumps(payload, sort_keys=True))
        return
    lines = ["Available templates:"]
    for item in templates:
        lines.append(f"- {item.name} ({item.rules} rules) - {item.description}")
    typer.echo("\n".join(lines))


@app.command("config")
def config_command(
    repo: Annotated[Path, typer.Option(help="Repository path.")] = Path("."),
    format: Annotated[str, typer.Option(help="Output format: human|json.")] = "human",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config TOML file."),
    ] = None,
) -> None:
    """Show resolved configuration."""
    output_format = format.lower()
    if output_format not in {"human", "json"}:
        raise typer.BadParameter("format must be one of: human, json", param_hint="--format")

    app_config = _load_config_or_raise(repo, config_file)
    payload = app_config.to_dict()
    payload["warnings"] = check_config(app_config, repo.resolve()).warnings

    if output_format == "json":
        typer.echo(json.dumps(payload, sort_keys=True))
        return

    lines = [
        "Resolved configuration:",
        f"- source: {payload['source'] or 'defaults'}",
        f"- extends: {payload['extends'] or 'none'}",
        f"- analyzers: {payload['analyzers']}",
        f"- reporters: {payload['reporters'] or 'mode default'}",
        f"- mode: {payload['mode']}",
        f"- rules: {payload['rules']}",
        f"- severity: {payload['severity']}",
        f"- output_dir: {payload['output_dir']}",
        f"- fail_under: {payload['fail_under']}",
    ]
    lines.extend(f"- warning: {item}" for item in payload["warnings"])
    typer.echo("\n".join(lines))


@app.command("config-init")
def config_init_command(
    out: Annotated[Path, typer.Option(help="Output path for starter config TOML.")] = Path(
        ".quality-audit.toml"
    ),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite if file already exists."),
    ] = False,
) -> None:
    """Create a starter repository config file."""
    out_path = out.resolve()
    if out_path.exists() and not force:
        raise typer.BadParameter(
            f"Refusing to overwrite existing file: {out_path}. Use --force to overwrite."
        )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(default_config_template(), encoding="utf-8")
    typer.echo(f"Wrote starter config: {out_path}")


@app.command("init")
def init_command(
    template: Annotated[str, typer.Option("--template", "-t", help="Template to extend.")],
    repo: Annotated[Path, typer.Option(help="Project root.")] = Path("."),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing project config."),
    ] = False,
) -> None:
    """Initialize a project config that extends a bundled template."""
    try:
        result = init_project(template, repo.resolve(), force=force)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--template") from exc
    if result.created:
        typer.echo(f"Wrote {result.config_path} extending '{template}'")
    else:
        typer.echo(f"Kept existing {result.config_path}; use --force to overwrite")
    typer.echo(f"Reports directory: {result.reports_dir}")


def main() -> None:
    """Console script entrypoint."""
    app()


def _load_config_or_raise(repo: Path, config_file: Path | None = None) -> AppConfig:
    try:
        return load_app_config(repo, config_path=config_file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc


def _load_ruleset_or_raise(
    repo: Path,
    config_file: Path | None,
    rules_file: Path | None,
) -> RuleSet:
    if rules_file is not None:
        try:
            return RuleSet.load(rules_file)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--rules-file") from exc
    app_config = _load_config_or_raise(repo, config_file)
    try:
        return app_config.ruleset()
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config.rules") from exc
