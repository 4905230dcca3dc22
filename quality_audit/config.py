"""Configuration loading for quality-audit."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quality_audit.analyzers import DEFAULT_ANALYZERS, DEFAULT_WEIGHTS, KNOWN_ANALYZERS
from quality_audit.review_mode import MODE_PLAIN, RUN_MODES
from quality_audit.ruleset import SEVERITIES, RuleSet
from quality_audit.runner import DEFAULT_TIMEOUT_SECONDS
from quality_audit.sources import DEFAULT_IGNORE
from quality_audit.templates import load_template_mapping

CONFIG_FILENAMES = (".quality-audit.toml", "quality-audit.toml")
PYPROJECT_FILENAME = "pyproject.toml"
PYPROJECT_TOOL_KEYS = ("quality_audit", "quality-audit")

KNOWN_REPORTERS = ("html", "summary", "json", "markdown", "ai-prompts")


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration values resolved from project files."""

    analyzers: list[str] = field(default_factory=lambda: list(DEFAULT_ANALYZERS))
    weights: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    rules: list[dict[str, Any]] = field(default_factory=list)
    categories: dict[str, Any] = field(default_factory=dict)
    custom_prompts: dict[str, str] = field(default_factory=dict)
    extends: str | None = None
    ignore: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE))
    severity: str = "INFO"
    reporters: list[str] | None = None
    mode: str = MODE_PLAIN
    output_dir: str = "reports"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_workers: int = 4
    min_coverage: float = 70.0
    fail_under: int | None = None
    tools: dict[str, list[str]] = field(default_factory=dict)
    source: str | None = None

    def ruleset(self) -> RuleSet:
        return RuleSet.from_mapping(
            {
                "rules": self.rules,
                "categories": self.categories,
                "custom_prompts": self.custom_prompts,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "analyzers": list(self.analyzers),
            "weights": dict(self.weights),
            "rules": len(self.rules),
            "categories": sorted(self.categories),
            "extends": self.extends,
            "ignore": list(self.ignore),
            "severity": self.severity,
            "reporters": list(self.reporters) if self.reporters is not None else None,
            "mode": self.mode,
            "output_dir": self.output_dir,
            "timeout_seconds": self.timeout_seconds,
            "max_workers": self.max_workers,
            "min_coverage": self.min_coverage,
            "fail_under": self.fail_under,
            "tools": {name: list(args) for name, args in self.tools.items()},
            "source": self.source,
        }


@dataclass(slots=True)
class ConfigCheck:
    """Non-fatal findings about a loaded configuration."""

    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def load_app_config(repo: Path, config_path: Path | None = None) -> AppConfig:
    """Load config from explicit path or repository-local files with precedence."""
    repo = repo.resolve()
    if config_path is not None:
        resolved = config_path if config_path.is_absolute() else (repo / config_path)
        if not resolved.exists():
            raise ValueError(f"Config file does not exist: {resolved}")
        mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
        return _from_mapping(mapping, source=str(resolved))

    for filename in CONFIG_FILENAMES:
        resolved = repo / filename
        if resolved.exists():
            mapping = _extract_config_mapping(_load_toml(resolved), source_path=resolved)
            return _from_mapping(mapping, source=str(resolved))

    pyproject_path = repo / PYPROJECT_FILENAME
    if pyproject_path.exists():
        mapping = _extract_config_mapping(_load_toml(pyproject_path), source_path=pyproject_path)
        if mapping:
            return _from_mapping(mapping, source=str(pyproject_path))

    return AppConfig()


def check_config(config: AppConfig, repo: Path) -> ConfigCheck:
    """Report unknown analyzers/reporters and a missing output parent directory."""
    warnings: list[str] = []
    unknown_analyzers = [name for name in config.analyzers if name not in KNOWN_ANALYZERS]
    if unknown_analyzers:
        warnings.append(f"Unknown analyzers: {', '.join(unknown_analyzers)}")
    unknown_reporters = [
        name for name in config.reporters or [] if name not in KNOWN_REPORTERS
    ]
    if unknown_reporters:
        warnings.append(f"Unknown reporters: {', '.join(unknown_reporters)}")
    output = Path(config.output_dir)
    output = output if output.is_absolute() else repo / output
    if not output.parent.exists():
        warnings.append(f"Output directory parent does not exist: {config.output_dir}")
    return ConfigCheck(warnings=warnings)


def default_config_template() -> str:
    """Return a starter config template users can customize."""
    return "\n".join(
        [
            '# extends = "backend-service"',
            "analyzers = [",
            *(f'  "{name}",' for name in DEFAULT_ANALYZERS),
            "]",
            '# reporters = ["html", "json"]',
            'mode = "plain"',
            'output_dir = "reports"',
            'severity = "INFO"',
            "fail_under = 60",
            "timeout_seconds = 120",
            "max_workers = 4",
            "min_coverage = 70",
            "ignore = [",
            *(f'  "{pattern}",' for pattern in DEFAULT_IGNORE),
            "]",
            "",
            "[weights]",
            *(f'"{name}" = {weight}' for name, weight in DEFAULT_WEIGHTS.items()),
            "",
            "[tools]",
            '# lint = ["ruff", "check", "--output-format", "json", "--exit-zero", "src"]',
            '# tests = ["pytest", "-q", "--cov=src"]',
            "",
            "[categories.security]",
            'priority = "HIGH"',
            'description = "Dangerous runtime constructs"',
            "",
            "[[rules]]",
            'id = "no-eval"',
            'category = "security"',
            'severity = "CRITICAL"',
            'description = "eval() on dynamic input"',
            "pattern = '\\beval\\('",
            'suggestion = "Parse input explicitly"',
            'files = ["**/*.py"]',
            'example = { bad = "eval(text)", good = "ast.literal_eval(text)" }',
            "",
            "[custom_prompts]",
            '# review = "Focus on error handling in request handlers."',
            "",
        ]
    )


def merge_template(template: dict[str, Any], project: dict[str, Any]) -> dict[str, Any]:
    """Merge ``project`` over ``template``.

    Tables merge recursively, lists are unioned in order, and project rules
    replace template rules with the same id.
    """
    merged: dict[str, Any] = {
        key: value for key, value in template.items() if key not in {"metadata", "rules"}
    }
    for key, value in project.items():
        if key == "rules":
            continue
        base = merged.get(key)
        if isinstance(value, dict) and isinstance(base, dict):
            merged[key] = merge_template(base, value)
        elif isinstance(value, list) and isinstance(base, list):
            merged[key] = _union(base, value)
        else:
            merged[key] = value

    template_rules = template.get("rules") or []
    project_rules = project.get("rules") or []
    if isinstance(template_rules, list) and isinstance(project_rules, list):
        overridden = {item.get("id") for item in project_rules if isinstance(item, dict)}
        merged["rules"] = [
            item
            for item in template_rules
            if not (isinstance(item, dict) and item.get("id") in overridden)
        ] + project_rules
    else:
        merged["rules"] = project_rules
    return merged


def _load_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as file_obj:
            loaded = tomllib.load(file_obj)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Invalid TOML in {path}: {exc}") from exc
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _extract_config_mapping(loaded: dict[str, Any], *, source_path: Path) -> dict[str, Any]:
    if source_path.name == PYPROJECT_FILENAME:
        section = _find_pyproject_tool_section(loaded)
        return section if section is not None else {}

    tool_section = _find_pyproject_tool_section(loaded)
    if tool_section is not None:
        return tool_section
    return loaded


def _find_pyproject_tool_section(loaded: dict[str, Any]) -> dict[str, Any] | None:
    tool = loaded.get("tool")
    if not isinstance(tool, dict):
        return None
    for key in PYPROJECT_TOOL_KEYS:
        section = tool.get(key)
        if isinstance(section, dict):
            return section
    return None


def _from_mapping(mapping: dict[str, Any], *, source: str) -> AppConfig:
    extends = mapping.get("extends")
    if extends is not None:
        extends = _as_str(extends, "extends")
        mapping = merge_template(load_template_mapping(extends), mapping)

    raw_fail = mapping.get("fail_under")
    fail_value = None if raw_fail is None else _as_score(raw_fail, "fail_under")

    max_workers = _as_int(mapping.get("max_workers", 4), "max_workers")
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    timeout = _as_float(mapping.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS), "timeout_seconds")
    if timeout <= 0:
        raise ValueError("timeout_seconds must be > 0")

    analyzers = mapping.get("analyzers")
    reporters = mapping.get("reporters")
    ignore = mapping.get("ignore")
    return AppConfig(
        analyzers=(
            _as_str_list(analyzers, "analyzers")
            if analyzers is not None
            else list(DEFAULT_ANALYZERS)
        ),
        weights=_parse_weights(_as_table(mapping.get("weights"), "weights")),
        rules=_as_table_list(mapping.get("rules"), "rules"),
        categories=_as_table(mapping.get("categories"), "categories"),
        custom_prompts=_as_str_mapping(mapping.get("custom_prompts"), "custom_prompts"),
        extends=extends,
        ignore=_as_str_list(ignore, "ignore") if ignore is not None else list(DEFAULT_IGNORE),
        severity=_as_choice(mapping.get("severity", "INFO"), set(SEVERITIES), "severity"),
        reporters=_as_str_list(reporters, "reporters") if reporters is not None else None,
        mode=_as_choice(mapping.get("mode", MODE_PLAIN), set(RUN_MODES), "mode"),
        output_dir=_as_str(mapping.get("output_dir", "reports"), "output_dir"),
        timeout_seconds=timeout,
        max_workers=max_workers,
        min_coverage=_as_float(mapping.get("min_coverage", 70.0), "min_coverage"),
        fail_under=fail_value,
        tools=_parse_tools(_as_table(mapping.get("tools"), "tools")),
        source=source,
    )


def _parse_weights(value: dict[str, Any]) -> dict[str, int]:
    weights = dict(DEFAULT_WEIGHTS)
    for key, raw in value.items():
        weight = _as_int(raw, f"weights.{key}")
        if weight <= 0:
            raise ValueError(f"weights.{key} must be a positive integer")
        weights[key] = weight
    return weights


def _parse_tools(value: dict[str, Any]) -> dict[str, list[str]]:
    tools: dict[str, list[str]] = {}
    for key, raw in value.items():
        args = _as_str_list(raw, f"tools.{key}")
        if not args:
            raise ValueError(f"tools.{key} must not be empty")
        tools[key] = args
    return tools


def _union(base: list[Any], extra: list[Any]) -> list[Any]:
    merged = list(base)
    for item in extra:
        if item not in merged:
            merged.append(item)
    return merged


def _as_table(value: Any, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{field_name} must be a table/object")
    return value


def _as_table_list(value: Any, field_name: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of tables")
    output: list[dict[str, Any]] = []
    for item in value:
        if not isinstance(item, dict):
            raise ValueError(f"{field_name} must be a list of tables")
        output.append(item)
    return output


def _as_str_list(value: Any, field_name: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"{field_name} must be a list of strings")
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"{field_name} must be a list of strings")
        items.append(item)
    return items


def _as_str_mapping(value: Any, field_name: str) -> dict[str, str]:
    table = _as_table(value, field_name)
    return {str(key): _as_str(raw, f"{field_name}.{key}") for key, raw in table.items()}


def _as_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")
    return value


def _as_choice(raw: Any, allowed: set[str], field_name: str) -> str:
    value = str(raw).strip()
    for choice in allowed:
        if value.lower() == choice.lower():
            return choice
    choices = ", ".join(sorted(allowed))
    raise ValueError(f"{field_name} must be one of: {choices}")


def _as_int(raw: Any, field_name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"{field_name} must be an integer")
    return raw


def _as_score(raw: Any, field_name: str) -> int:
    value = _as_int(raw, field_name)
    if not 0 <= value <= 100:
        raise ValueError(f"{field_name} must be between 0 and 100")
    return value


def _as_float(raw: Any, field_name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"{field_name} must be a number")
    return float(raw)
