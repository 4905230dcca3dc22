"""Tests for rule validation, glob selection, and rule mutation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from quality_audit.ruleset import Category, Rule, RuleSet, RuleSetError, compile_glob
from tests.helpers_project import rule


def test_valid_ruleset_has_no_errors_and_reports_stats() -> None:
    ruleset = RuleSet.from_mapping(
        {
            "categories": {"security": {"priority": "HIGH", "description": "Security checks"}},
            "rules": [rule("no-eval", r"eval\("), rule("no-exec", r"exec\(", severity="WARNING")],
        }
    )

    result = ruleset.validate()

    assert result.valid is True
    assert result.errors == []
    assert result.warnings == []
    assert result.stats == {
        "total_rules": 2,
        "categories": 1,
        "severity_breakdown": {"ERROR": 1, "WARNING": 1},
    }


def test_each_bad_regex_produces_exactly_one_error() -> None:
    ruleset = RuleSet.from_mapping(
        {"rules": [rule("open-paren", "foo("), rule("ok", "bar"), rule("bad-class", "[a-")]}
    )

    result = ruleset.validate()

    regex_errors = [item for item in result.errors if "Invalid regex pattern" in item]
    assert result.valid is False
    assert len(regex_errors) == 2
    assert regex_errors[0].startswith("Rule open-paren: Invalid regex pattern")
    assert regex_errors[1].startswith("Rule bad-class: Invalid regex pattern")


def test_missing_fields_and_invalid_severity_are_errors() -> None:
    ruleset = RuleSet.from_mapping(
        {"rules": [{"id": "partial", "pattern": "x", "severity": "FATAL"}]}
    )

    result = ruleset.validate()

    assert "Rule 0: Missing required field 'category'" in result.errors
    assert "Rule 0: Missing required field 'description'" in result.errors
    assert "Rule 0: Missing required field 'suggestion'" in result.errors
    assert any("Invalid severity 'FATAL'" in item for item in result.errors)


def test_duplicate_rule_id_is_an_error() -> None:
    ruleset = RuleSet.from_mapping({"rules": [rule("dup", "a"), rule("dup", "b")]})

    result = ruleset.validate()

    assert result.valid is False
    assert result.errors == ["Duplicate rule ID: dup"]


def test_missing_example_and_weak_category_only_warn() -> None:
    payload = rule("no-example", "x")
    del payload["example"]
    ruleset = RuleSet.from_mapping(
        {
            "categories": {"style": {"priority": "URGENT"}},
            "rules": [payload, rule("half-example", "y", example={"bad": "y"})],
        }
    )

    result = ruleset.validate()

    assert result.valid is True
    assert result.warnings == [
        "Rule no-example: Consider adding an example for better documentation",
        "Rule half-example: Example should have both 'bad' and 'good' properties",
        "Category style: Invalid or missing priority. Should be one of: HIGH, MEDIUM, LOW",
        "Category style: Missing description",
    ]


def test_rules_for_file_honours_globs() -> None:
    ruleset = RuleSet.from_mapping(
        {
            "rules": [
                rule("everywhere", "x"),
                rule("python-only", "x", files=["**/*.py"]),
                rule("api-only", "x", files=["src/api/*.py"]),
            ]
        }
    )

    assert [item.id for item in ruleset.rules_for_file("app.py")] == ["everywhere", "python-only"]
    assert [item.id for item in ruleset.rules_for_file("src/api/routes.py")] == [
        "everywhere",
        "python-only",
        "api-only",
    ]
    assert [item.id for item in ruleset.rules_for_file("src/api/v1/routes.py")] == [
        "everywhere",
        "python-only",
    ]
    assert [item.id for item in ruleset.rules_for_file("README.md")] == ["everywhere"]


def test_rules_for_file_is_stable_across_calls_and_orders() -> None:
    ruleset = RuleSet.from_mapping(
        {
            "rules": [
                rule("everywhere", "x"),
                rule("python-only", "x", files=["**/*.py"]),
                rule("api-only", "x", files=["src/api/*.py"]),
            ]
        }
    )
    paths = ["src/api/routes.py", "README.md", "app.py", "src/api/v1/routes.py"]

    first = {path: ruleset.rules_for_file(path) for path in paths}
    repeated = {path: ruleset.rules_for_file(path) for path in paths}
    reversed_order = {path: ruleset.rules_for_file(path) for path in reversed(paths)}
    interleaved = {path: ruleset.rules_for_file(path) for path in paths[1::2] + paths[::2]}

    assert first == repeated == reversed_order == interleaved


def test_compile_glob_keeps_single_star_and_question_mark_within_a_segment() -> None:
    assert compile_glob("src/*.py").fullmatch("src/a.py")
    assert not compile_glob("src/*.py").fullmatch("src/pkg/a.py")
    assert compile_glob("a?.py").fullmatch("ab.py")
    assert not compile_glob("a?.py").fullmatch("a/.py")
    assert compile_glob("docs/**").fullmatch("docs/guide/intro.md")


def test_files_that_is_not_a_list_is_an_error() -> None:
    ruleset = RuleSet.from_mapping({"rules": [rule("odd", "x", files="*.py")]})

    result = ruleset.validate()

    assert result.errors == ["Rule odd: 'files' must be a list of glob patterns"]


def test_files_entries_must_be_strings() -> None:
    ruleset = RuleSet.from_mapping({"rules": [rule("mixed", "x", files=["*.py", 7])]})

    result = ruleset.validate()

    assert result.valid is False
    assert result.errors == ["Rule mixed: 'files' entries must be glob strings"]


def test_queries_group_rules() -> None:
    ruleset = RuleSet.from_mapping(
        {
            "rules": [
                rule("a", "a", severity="CRITICAL"),
                rule("b", "b", severity="INFO", category="style"),
                rule("c", "c"),
            ]
        }
    )

    assert [item.id for item in ruleset.rules_by_category("style")] == ["b"]
    assert [item.id for item in ruleset.rules_by_severity("ERROR")] == ["c"]
    assert [item.id for item in ruleset.high_priority_rules()] == ["a", "c"]
    assert ruleset.summary() == {
        "total_rules": 3,
        "categories": 0,
        "severity_breakdown": {"CRITICAL": 1, "INFO": 1, "ERROR": 1},
        "category_breakdown": {"security": 2, "style": 1},
        "high_priority_rules": 2,
    }


def test_add_rule_rejects_duplicates_and_invalid_rules() -> None:
    ruleset = RuleSet([Rule.from_mapping(rule("first", "x"))])

    added = ruleset.add_rule(rule("second", "y"))

    assert added.id == "second"
    assert len(ruleset) == 2
    with pytest.raises(RuleSetError, match="Rule with ID 'first' already exists"):
        ruleset.add_rule(rule("first", "z"))
    with pytest.raises(RuleSetError, match="Invalid rule"):
        ruleset.add_rule(rule("broken", "("))
    assert len(ruleset) == 2


def test_update_and_remove_rule() -> None:
    ruleset = RuleSet([Rule.from_mapping(rule("a", "x")), Rule.from_mapping(rule("b", "y"))])

    updated = ruleset.update_rule("a", {"severity": "WARNING"})

    assert updated.severity == "WARNING"
    assert updated.pattern == "x"
    with pytest.raises(RuleSetError, match="already exists"):
        ruleset.update_rule("a", {"id": "b"})
    with pytest.raises(RuleSetError, match="Invalid rule update"):
        ruleset.update_rule("a", {"pattern": "["})

    ruleset.remove_rule("a")

    assert [item.id for item in ruleset.rules] == ["b"]
    with pytest.raises(RuleSetError, match="Rule with ID 'a' not found"):
        ruleset.remove_rule("a")


def test_save_and_load_preserve_rules(tmp_path: Path) -> None:
    ruleset = RuleSet(
        [Rule.from_mapping(rule("a", r"eval\(", files=["**/*.py"]))],
        {"security": Category(name="security", priority="HIGH", description="Sec")},
        custom_prompts={"review": "Look for eval"},
    )
    target = tmp_path / "rules.json"

    ruleset.save(target)
    loaded = RuleSet.load(target)

    payload = json.loads(target.read_text(encoding="utf-8"))
    assert payload["rules"][0]["files"] == ["**/*.py"]
    assert loaded.rules == ruleset.rules
    assert loaded.categories["security"].priority == "HIGH"
    assert loaded.custom_prompts == {"review": "Look for eval"}


def test_load_reports_unreadable_files(tmp_path: Path) -> None:
    target = tmp_path / "rules.json"
    target.write_text("{not json", encoding="utf-8")

    with pytest.raises(RuleSetError, match="Failed to load rules"):
        RuleSet.load(target)

    with pytest.raises(RuleSetError, match="Failed to load rules"):
        RuleSet.load(tmp_path / "missing.toml")
