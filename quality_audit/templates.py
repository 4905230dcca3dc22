"""Bundled rule templates and project initialization."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

from quality_audit.ruleset import RuleSet, ValidationResult

logger = logging.getLogger(__name__)

TEMPLATE_PACKAGE = "quality_audit.rule_templates"
TEMPLATE_SUFFIX = ".toml"
PROJECT_CONFIG_FILENAME = ".quality-audit.toml"


@dataclass(frozen=True, slots=True)
class TemplateInfo:
    """Template metadata for listing."""

    name: str
    description: str
    version: str
    rules: int
    categories: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "rules": self.rules,
            "categories": self.categories,
        }


@dataclass(frozen=True, slots=True)
class InitResult:
    """Files touched by ``init_project``."""

    template: str
    config_path: Path
    reports_dir: Path
    created: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "template": self.template,
            "config_path": str(self.config_path),
            "reports_dir": str(self.reports_dir),
            "created": self.created,
        }


def template_names() -> list[str]:
    root = resources.files(TEMPLATE_PACKAGE)
    return sorted(
        entry.name.removesuffix(TEMPLATE_SUFFIX)
        for entry in root.iterdir()
        if entry.is_file() and entry.name.endswith(TEMPLATE_SUFFIX)
    )


def load_template_mapping(name: str) -> dict[str, Any]:
    """Return the raw TOML mapping of template ``name``."""
    if name not in template_names():
        available = ", ".join(template_names()) or "none"
        raise ValueError(f"Template '{name}' not found (available: {available})")
    resource = resources.files(TEMPLATE_PACKAGE) / f"{name}{TEMPLATE_SUFFIX}"
    try:
        return tomllib.loads(resource.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to load template '{name}': {exc}") from exc


def template_info(name: str) -> TemplateInfo:
    mapping = load_template_mapping(name)
    metadata = mapping.get("metadata")
    metadata = metadata if isinstance(metadata, dict) else {}
    rules = mapping.get("rules")
    categories = mapping.get("categories")
    return TemplateInfo(
        name=name,
        description=str(metadata.get("description") or f"Template for {name} services"),
        version=str(metadata.get("version") or "1.0.0"),
        rules=len(rules) if isinstance(rules, list) else 0,
        categories=len(categories) if isinstance(categories, dict) else 0,
    )


def list_templates() -> list[TemplateInfo]:
    return [template_info(name) for name in template_names()]


def load_template_ruleset(name: str) -> RuleSet:
    return RuleSet.from_mapping(load_template_mapping(name))


def validate_template(name: str) -> ValidationResult:
    return load_template_ruleset(name).validate()


def init_project(name: str, target: Path, *, force: bool = False) -> InitResult:
    """Write a project config extending template ``name`` and create the reports dir."""
    mapping = load_template_mapping(name)
    config_path = target / PROJECT_CONFIG_FILENAME
    reports_dir = target / "reports"

    created = True
    if config_path.exists() and not force:
        logger.warning("%s already exists; not overwriting", config_path)
        created = False
    else:
        config_path.write_text(project_config_text(name, mapping), encoding="utf-8")
    reports_dir.mkdir(parents=True, exist_ok=True)
    return InitResult(
        template=name,
        config_path=config_path,
        reports_dir=reports_dir,
        created=created,
    )


def project_config_text(name: str, mapping: dict[str, Any]) -> str:
    analyzers = mapping.get("analyzers")
    lines = [
        f'extends = "{name}"',
        'output_dir = "reports"',
        "fail_under = 60",
    ]
    if isinstance(analyzers, list) and analyzers:
        lines.append("analyzers = [" + ", ".join(f'"{item}"' for item in analyzers) + "]")
    lines.extend(
        [
            "",
            "# Project rules are appended to the template's; a rule with the",
            "# same id replaces the template rule.",
            "# [[rules]]",
            '# id = "no-todo"',
            '# category = "maintainability"',
            '# severity = "INFO"',
            '# description = "Unresolved TODO"',
            "# pattern = 'TODO'",
            '# suggestion = "Resolve or file a ticket"',
            "",
        ]
    )
    return "\n".join(lines)
