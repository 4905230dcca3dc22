"""Tests for analyzers that read source files directly."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from quality_audit.analyzers import AnalyzerError, testcases
from quality_audit.analyzers.architecture import ArchitectureAnalyzer
from quality_audit.analyzers.bug_detection import BugDetectionAnalyzer, scan_lines
from quality_audit.analyzers.complexity import ComplexityAnalyzer, function_spans
from quality_audit.analyzers.custom_rules import CustomRulesAnalyzer, compile_patterns, scan_content
from quality_audit.analyzers.dependencies import (
    DependencyAnalyzer,
    build_import_graph,
    find_cycles,
    module_name,
)
from quality_audit.analyzers.performance import check_module
from quality_audit.ruleset import Rule, RuleSet
from quality_audit.sources import is_test_path, iter_source_files
from tests.helpers_project import echo_command, make_context, rule, write_file


def test_iter_source_files_skips_ignored_trees(tmp_path: Path) -> None:
    write_file(tmp_path, "src/app.py", "")
    write_file(tmp_path, "src/legacy/old.py", "")
    write_file(tmp_path, "src/generated_models.py", "")
    write_file(tmp_path, ".venv/lib/site.py", "")
    write_file(tmp_path, "pkg/__pycache__/mod.py", "")
    write_file(tmp_path, "demo.egg-info/setup.py", "")
    write_file(tmp_path, "README.md", "")

    assert iter_source_files(tmp_path) == [
        "src/app.py",
        "src/generated_models.py",
        "src/legacy/old.py",
    ]
    assert iter_source_files(
        tmp_path, ignore=[".venv/", "__pycache__/", "*.egg-info/", "generated_*.py", "src/legacy/"]
    ) == ["src/app.py"]


def test_is_test_path() -> None:
    assert is_test_path("tests/test_app.py")
    assert is_test_path("pkg/tests/helpers.py")
    assert is_test_path("pkg/app_test.py")
    assert is_test_path("conftest.py")
    assert not is_test_path("pkg/testing_utils.py")


def test_custom_rule_line_numbers_are_one_based() -> None:
    item = Rule.from_mapping(rule("no-eval", r"eval\("))
    content = "x = 1\nresult = eval(data)\n\nprint(eval(y))\n"

    violations = scan_content("app.py", content, [(item, item.compile())])

    assert [(found.line, found.matched_text) for found in violations] == [
        (2, "eval("),
        (4, "eval("),
    ]
    assert violations[0].message == "no-eval description"
    assert violations[0].suggestion == "fix no-eval"


def test_custom_rule_multiline_match_reports_its_first_line() -> None:
    item = Rule.from_mapping(rule("open-call", r"open\(\s*\n\s*path"))
    content = "import os\nhandle = open(\n    path,\n)\n"

    violations = scan_content("io.py", content, [(item, item.compile())])

    assert [found.line for found in violations] == [2]


def test_empty_matches_are_not_violations() -> None:
    item = Rule.from_mapping(rule("a-run", "a*"))

    violations = scan_content("x.py", "baaab", [(item, item.compile())])

    assert [found.matched_text for found in violations] == ["aaa"]


def test_compile_patterns_applies_min_severity() -> None:
    rules = (
        Rule.from_mapping(rule("loud", "x", severity="CRITICAL")),
        Rule.from_mapping(rule("quiet", "y", severity="WARNING")),
    )

    assert list(compile_patterns(rules, min_severity="ERROR")) == ["loud"]
    assert list(compile_patterns(rules)) == ["loud", "quiet"]


def test_custom_rules_analyzer_respects_file_globs(tmp_path: Path) -> None:
    write_file(tmp_path, "src/app.py", "value = eval(raw)\n")
    write_file(tmp_path, "tests/test_app.py", "assert eval('1') == 1\n")
    ruleset = RuleSet.from_mapping({"rules": [rule("no-eval", r"eval\(", files=["src/**"])]})

    finding = CustomRulesAnalyzer().evaluate(make_context(tmp_path, ruleset))

    assert [(item.file, item.line) for item in finding.violations] == [("src/app.py", 1)]
    assert finding.score() == 90
    assert finding.to_dict()["rules_summary"]["total_rules"] == 1


def test_custom_rules_analyzer_reports_skipped_patterns(tmp_path: Path) -> None:
    write_file(tmp_path, "app.py", "value = eval(raw)\n")
    ruleset = RuleSet.from_mapping(
        {"rules": [rule("broken", "(unclosed"), rule("no-eval", r"eval\(")]}
    )

    finding = CustomRulesAnalyzer().evaluate(make_context(tmp_path, ruleset))

    assert [item.rule_id for item in finding.violations] == ["no-eval"]
    assert len(finding.warnings) == 1
    assert finding.warnings[0].startswith("Rule broken skipped: invalid pattern")
    assert finding.summary() == "1 rule violations, 1 rules skipped"
    assert finding.to_dict()["warnings"] == finding.warnings


def test_custom_rules_analyzer_needs_rules(tmp_path: Path) -> None:
    with pytest.raises(AnalyzerError, match="No custom rules defined"):
        CustomRulesAnalyzer().evaluate(make_context(tmp_path))


def test_function_spans_measure_blocks() -> None:
    content = (
        "def short():\n    return 1\n\n\ndef long():\n"
        + "    x = 1\n" * 60
        + "\nclass A:\n    def method(self):\n        pass\n"
    )

    spans = function_spans(content)

    assert [(span.name, span.line, span.length) for span in spans] == [
        ("short", 1, 2),
        ("long", 5, 61),
        ("method", 68, 2),
    ]


def test_function_spans_continue_through_multiline_signature() -> None:
    content = "def f(\n    a,\n    b,\n):\n    return a\n\nx = 1\n"

    assert function_spans(content)[0].length == 5


def test_complexity_analyzer_scores_share_of_long_functions(tmp_path: Path) -> None:
    write_file(
        tmp_path,
        "pkg/mod.py",
        "def a():\n    pass\n\ndef b():\n    pass\n\ndef c():\n" + "    y = 2\n" * 55,
    )
    write_file(tmp_path, "tests/test_mod.py", "def test_x():\n" + "    assert 1\n" * 60)

    finding = ComplexityAnalyzer().evaluate(make_context(tmp_path))

    assert finding.total_functions == 3
    assert finding.complex_functions == 1
    assert finding.score() == 67
    assert finding.items[0].line == 7


def test_complexity_without_functions_scores_full(tmp_path: Path) -> None:
    write_file(tmp_path, "settings.py", "DEBUG = True\n")

    finding = ComplexityAnalyzer().evaluate(make_context(tmp_path))

    assert finding.total_functions == 0
    assert finding.score() == 100


def test_module_names() -> None:
    assert module_name("src/pkg/__init__.py") == "pkg"
    assert module_name("pkg/mod.py") == "pkg.mod"
    assert module_name("top.py") == "top"


def test_import_graph_and_cycles() -> None:
    contents = {
        "pkg/__init__.py": "",
        "pkg/a.py": "import os\nimport pkg.b\n",
        "pkg/b.py": "from .a import thing\n",
        "pkg/c.py": "def lazy():\n    import pkg.a\n",
    }

    graph = build_import_graph(contents)

    assert graph["pkg.a"] == {"pkg.b"}
    assert graph["pkg.b"] == {"pkg.a"}
    assert graph["pkg.c"] == set()
    assert find_cycles(graph) == [("pkg.a", "pkg.b")]


def test_find_cycles_reports_each_cycle_once() -> None:
    graph = {"c": {"a"}, "a": {"b"}, "b": {"c"}, "x": {"y"}, "y": set()}

    assert find_cycles(graph) == [("a", "b", "c")]


def test_dependency_analyzer_reads_outdated_packages(tmp_path: Path) -> None:
    write_file(tmp_path, "pkg/a.py", "from pkg.b import x\n")
    write_file(tmp_path, "pkg/b.py", "from pkg.a import y\n")
    outdated = write_file(
        tmp_path,
        "fixtures/outdated.json",
        json.dumps([{"name": "click", "version": "8.0.0", "latest_version": "8.1.7"}]),
    )
    context = make_context(tmp_path, commands={"outdated": echo_command(outdated)})

    finding = DependencyAnalyzer().evaluate(context)

    assert finding.cycles == [("pkg.a", "pkg.b")]
    assert [item.to_dict() for item in finding.outdated] == [
        {"name": "click", "current": "8.0.0", "latest": "8.1.7"}
    ]
    assert finding.score() == 50


def test_dependency_analyzer_survives_missing_pip(tmp_path: Path) -> None:
    write_file(tmp_path, "app.py", "import json\n")
    context = make_context(tmp_path, commands={"outdated": ("quality-audit-no-such-tool",)})

    finding = DependencyAnalyzer().evaluate(context)

    assert finding.outdated_checked is False
    assert finding.score() == 100


def test_performance_checks_async_and_print() -> None:
    content = "import time\n\nasync def handler():\n    time.sleep(1)\n    print('x')\n"

    issues = check_module("svc.py", content)

    assert [(item.rule, item.line) for item in issues] == [("blocking-sleep", 4), ("print-call", 5)]
    guarded = "def main():\n    print('x')\n\nif __name__ == '__main__':\n    main()\n"
    assert check_module("cli.py", guarded) == []


def test_performance_flags_large_modules() -> None:
    issues = check_module("big.py", "x = 1\n" * 1200)

    assert [item.rule for item in issues] == ["large-module"]
    assert issues[0].severity == "INFO"


def test_architecture_anti_patterns(tmp_path: Path) -> None:
    write_file(tmp_path, "api.py", "async def fetch():\n    await call()\n\ndata = request.json\n")
    write_file(tmp_path, "views.py", "from helpers import *\nimport logging\nprint('ok')\n")
    write_file(
        tmp_path,
        "safe.py",
        "from schema import UserSchema\n\nasync def f():\n    try:\n        await g()\n"
        "    except OSError:\n        raise\n\nbody = UserSchema().load(request.json)\n",
    )

    finding = ArchitectureAnalyzer().evaluate(make_context(tmp_path))

    assert [(item.file, item.rule) for item in finding.items] == [
        ("api.py", "async-without-error-handling"),
        ("api.py", "unvalidated-input"),
        ("views.py", "wildcard-import"),
    ]
    assert finding.score() == 55


def test_bug_patterns_by_kind() -> None:
    content = "\n".join(
        [
            "def f(items=[]):",
            "    if x is 1:",
            "        value = eval(s)",
            "    # eval(commented_out)",
            "    try:",
            "        pass",
            "    except:",
            "    for i in range(len(items)):",
        ]
    )

    hits = scan_lines("app.py", content)

    assert [(kind, issue.line) for kind, issue in hits] == [
        ("bugs", 1),
        ("bugs", 2),
        ("security_risks", 3),
        ("potential_issues", 7),
        ("performance_issues", 8),
    ]
    assert hits[2][1].message == "Dynamic eval usage: `value = eval(s)`"
    assert hits[2][1].severity == "CRITICAL"


def test_bug_detection_skips_test_files(tmp_path: Path) -> None:
    write_file(tmp_path, "app.py", "import subprocess\nsubprocess.run(cmd, shell=True)\n")
    write_file(tmp_path, "tests/test_app.py", "password = 'hunter2'\n")

    finding = BugDetectionAnalyzer().evaluate(make_context(tmp_path))

    assert [item.file for item in finding.security_risks] == ["app.py"]
    assert finding.score() == 70
    assert finding.passed is False


def test_test_cases_find_missing_and_weak_tests(tmp_path: Path) -> None:
    write_file(tmp_path, "src/pkg/__init__.py", "def exported():\n    pass\n")
    write_file(
        tmp_path, "src/pkg/service.py", "def create():\n    pass\n\nclass Store:\n    pass\n"
    )
    write_file(tmp_path, "src/pkg/util.py", "def helper():\n    pass\n")
    write_file(tmp_path, "src/pkg/config.py", "def load():\n    pass\n")
    write_file(tmp_path, "src/pkg/internal.py", "def _hidden():\n    pass\n")
    write_file(tmp_path, "tests/test_util.py", "def test_helper():\n    assert helper() is None\n")
    write_file(tmp_path, "tests/test_smoke.py", "def test_runs():\n    create()\n")
    write_file(tmp_path, "coverage.json", json.dumps({"totals": {"percent_covered": 62.0}}))

    finding = testcases.TestCasesAnalyzer().evaluate(make_context(tmp_path))

    assert [item.to_dict() for item in finding.missing_tests] == [
        {
            "file": "src/pkg/service.py",
            "reason": "2 public definitions",
            "functions": ["create", "Store"],
            "suggested_test_file": "tests/test_service.py",
        }
    ]
    assert [(item.file, item.line, item.rule) for item in finding.poor_tests] == [
        ("tests/test_smoke.py", 1, "weak-test")
    ]
    assert finding.coverage == 62.0
    assert finding.score() == 62
