"""User-defined pattern rules: validation, file matching, and mutation."""

from __future__ import annotations

import json
import re
import tomllib
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

SEVERITIES = ("CRITICAL", "ERROR", "WARNING", "INFO")
SEVERITY_RANK = {"INFO": 0, "WARNING": 1, "ERROR": 2, "CRITICAL": 3}
PRIORITIES = ("HIGH", "MEDIUM", "LOW")
REQUIRED_FIELDS = ("id", "category", "severity", "description", "pattern", "suggestion")


class RuleSetError(ValueError):
    """Raised when a rule mutation or rule-file operation is rejected."""


def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a path glob into an anchored regex.

    ``**`` matches across separators, ``*`` and ``?`` never do. A ``**/``
    prefix also matches zero directories, so ``**/*.py`` selects ``a.py``.
    """
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                index += 2
                if pattern.startswith("/", index):
                    parts.append("(?:.*/)?")
                    index += 1
                else:
                    parts.append(".*")
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts), re.DOTALL)


@dataclass(frozen=True, slots=True)
class Rule:
    """A single regex rule applied to raw file content."""

    id: str = ""
    category: str = ""
    severity: str = ""
    description: str = ""
    pattern: str = ""
    suggestion: str = ""
    files: Any = None
    example: Any = None
    _file_regexes: tuple[re.Pattern[str], ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if isinstance(self.files, tuple):
            compiled = tuple(compile_glob(item) for item in self.files if isinstance(item, str))
            object.__setattr__(self, "_file_regexes", compiled)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Rule:
        files = raw.get("files")
        if isinstance(files, list):
            files = tuple(files)
        example = raw.get("example")
        if isinstance(example, Mapping):
            example = dict(example)
        return cls(
            id=_text(raw.get("id")),
            category=_text(raw.get("category")),
            severity=_text(raw.get("severity")),
            description=_text(raw.get("description")),
            pattern=_text(raw.get("pattern")),
            suggestion=_text(raw.get("suggestion")),
            files=files,
            example=example,
        )

    def applies_to(self, path: str) -> bool:
        """Return True when the rule should be evaluated against ``path``."""
        if not self.files:
            return True
        return any(regex.fullmatch(path) for regex in self._file_regexes)

    def compile(self) -> re.Pattern[str]:
        """Compile the content pattern; raises ``re.error`` when malformed."""
        return re.compile(self.pattern, re.MULTILINE)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "category": self.category,
            "severity": self.severity,
            "description": self.description,
            "pattern": self.pattern,
            "suggestion": self.suggestion,
        }
        if self.files is not None:
            payload["files"] = list(self.files) if isinstance(self.files, tuple) else self.files
        if self.example is not None:
            payload["example"] = self.example
        return payload


@dataclass(frozen=True, slots=True)
class Category:
    """Rule grouping with a review priority."""

    name: str
    priority: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"priority": self.priority, "description": self.description}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a whole rule set."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "stats": dict(self.stats),
        }


def validate_rule(rule: Rule, index: int) -> tuple[list[str], list[str]]:
    """Validate one rule and return ``(errors, warnings)``."""
    errors: list[str] = []
    warnings: list[str] = []
    label = rule.id or f"#{index}"

    for field_name in REQUIRED_FIELDS:
        if not getattr(rule, field_name):
            errors.append(f"Rule {index}: Missing required field '{field_name}'")

    if rule.severity and rule.severity not in SEVERITIES:
        errors.append(
            f"Rule {label}: Invalid severity '{rule.severity}'. "
            f"Must be one of: {', '.join(SEVERITIES)}"
        )

    if rule.pattern:
        try:
            rule.compile()
        except re.error as exc:
            errors.append(f"Rule {label}: Invalid regex pattern: {exc}")

    if rule.files is not None and not isinstance(rule.files, tuple):
        errors.append(f"Rule {label}: 'files' must be a list of glob patterns")
    elif rule.files is not None and not all(isinstance(item, str) for item in rule.files):
        errors.append(f"Rule {label}: 'files' entries must be glob strings")

    if rule.example is None:
        warnings.append(f"Rule {label}: Consider adding an example for better documentation")
    elif not isinstance(rule.example, dict) or not (
        rule.example.get("bad") and rule.example.get("good")
    ):
        warnings.append(f"Rule {label}: Example should have both 'bad' and 'good' properties")

    return errors, warnings


class RuleSet:
    """Validated collection of pattern rules and their categories."""

    def __init__(
        self,
        rules: list[Rule] | None = None,
        categories: dict[str, Category] | None = None,
        *,
        metadata: dict[str, Any] | None = None,
        custom_prompts: dict[str, str] | None = None,
    ) -> None:
        self._rules: list[Rule] = list(rules or [])
        self.categories: dict[str, Category] = dict(categories or {})
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.custom_prompts: dict[str, str] = dict(custom_prompts or {})

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> RuleSet:
        """Build a rule set from a config/template mapping."""
        raw_rules = mapping.get("rules", [])
        if raw_rules is None:
            raw_rules = []
        if not isinstance(raw_rules, list):
            raise ValueError("rules must be a list of tables")
        rules: list[Rule] = []
        for item in raw_rules:
            if not isinstance(item, Mapping):
                raise ValueError("rules must be a list of tables")
            rules.append(Rule.from_mapping(item))

        raw_categories = mapping.get("categories") or {}
        if not isinstance(raw_categories, Mapping):
            raise ValueError("categories must be a table/object")
        categories: dict[str, Category] = {}
        for name, value in raw_categories.items():
            value = value if isinstance(value, Mapping) else {}
            categories[str(name)] = Category(
                name=str(name),
                priority=_text(value.get("priority")),
                description=_text(value.get("description")),
            )

        metadata = mapping.get("metadata")
        prompts = mapping.get("custom_prompts", mapping.get("customPrompts"))
        return cls(
            rules,
            categories,
            metadata=dict(metadata) if isinstance(metadata, Mapping) else None,
            custom_prompts=(
                {str(key): str(value) for key, value in prompts.items()}
                if isinstance(prompts, Mapping)
                else None
            ),
        )

    @classmethod
    def load(cls, path: Path) -> RuleSet:
        """Load rules from a ``.json`` or ``.toml`` file."""
        try:
            if path.suffix == ".toml":
                with path.open("rb") as file_obj:
                    loaded = tomllib.load(file_obj)
            else:
                loaded = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise RuleSetError(f"Failed to load rules from {path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise RuleSetError(f"Failed to load rules from {path}: expected a table/object")
        return cls.from_mapping(loaded)

    def save(self, path: Path) -> None:
        """Write the rule set as JSON."""
        payload = {
            "metadata": self.metadata,
            "categories": {name: item.to_dict() for name, item in self.categories.items()},
            "rules": [rule.to_dict() for rule in self._rules],
            "custom_prompts": self.custom_prompts,
        }
        try:
            path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        except OSError as exc:
            raise RuleSetError(f"Failed to save rules to {path}: {exc}") from exc

    def validate(self) -> ValidationResult:
        """Validate every rule and category."""
        errors: list[str] = []
        warnings: list[str] = []
        seen_ids: set[str] = set()

        for index, rule in enumerate(self._rules):
            rule_errors, rule_warnings = validate_rule(rule, index)
            errors.extend(rule_errors)
            warnings.extend(rule_warnings)
            if rule.id:
                if rule.id in seen_ids:
                    errors.append(f"Duplicate rule ID: {rule.id}")
                else:
                    seen_ids.add(rule.id)

        warnings.extend(self._category_warnings())
        return ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=warnings,
            stats={
                "total_rules": len(self._rules),
                "categories": len(self.categories),
                "severity_breakdown": self.severity_breakdown(),
            },
        )

    def _category_warnings(self) -> list[str]:
        warnings: list[str] = []
        for name, category in self.categories.items():
            if category.priority not in PRIORITIES:
                warnings.append(
                    f"Category {name}: Invalid or missing priority. "
                    f"Should be one of: {', '.join(PRIORITIES)}"
                )
            if not category.description:
                warnings.append(f"Category {name}: Missing description")
        return warnings

    def rules_for_file(self, path: str) -> list[Rule]:
        """Return rules whose file globs select ``path`` (POSIX, root-relative)."""
        return [rule for rule in self._rules if rule.applies_to(path)]

    def rules_by_category(self, category: str) -> list[Rule]:
        return [rule for rule in self._rules if rule.category == category]

    def rules_by_severity(self, severity: str) -> list[Rule]:
        return [rule for rule in self._rules if rule.severity == severity]

    def high_priority_rules(self) -> list[Rule]:
        return [rule for rule in self._rules if rule.severity in {"CRITICAL", "ERROR"}]

    def severity_breakdown(self) -> dict[str, int]:
        return dict(Counter(rule.severity or "UNKNOWN" for rule in self._rules))

    def summary(self) -> dict[str, Any]:
        return {
            "total_rules": len(self._rules),
            "categories": len(self.categories),
            "severity_breakdown": self.severity_breakdown(),
            "category_breakdown": dict(
                Counter(rule.category or "uncategorized" for rule in self._rules)
            ),
            "high_priority_rules": len(self.high_priority_rules()),
        }

    def add_rule(self, rule: Rule | Mapping[str, Any]) -> Rule:
        """Validate and append a rule."""
        candidate = rule if isinstance(rule, Rule) else Rule.from_mapping(rule)
        errors, _ = validate_rule(candidate, len(self._rules))
        if errors:
            raise RuleSetError(f"Invalid rule: {', '.join(errors)}")
        if any(existing.id == candidate.id for existing in self._rules):
            raise RuleSetError(f"Rule with ID '{candidate.id}' already exists")
        self._rules.append(candidate)
        return candidate

    def remove_rule(self, rule_id: str) -> None:
        index = self._index_of(rule_id)
        del self._rules[index]

    def update_rule(self, rule_id: str, updates: Mapping[str, Any]) -> Rule:
        """Merge ``updates`` into an existing rule after validating the result."""
        index = self._index_of(rule_id)
        merged = {**self._rules[index].to_dict(), **dict(updates)}
        candidate = Rule.from_mapping(merged)
        errors, _ = validate_rule(candidate, index)
        if errors:
            raise RuleSetError(f"Invalid rule update: {', '.join(errors)}")
        if any(
            other.id == candidate.id
            for position, other in enumerate(self._rules)
            if position != index
        ):
            raise RuleSetError(f"Rule with ID '{candidate.id}' already exists")
        self._rules[index] = candidate
        return candidate

    def _index_of(self, rule_id: str) -> int:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return index
        raise RuleSetError(f"Rule with ID '{rule_id}' not found")


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)
