"""Dependency analyzer: local import cycles and outdated installed packages."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from pathlib import PurePosixPath

from quality_audit.analyzers.base import AnalysisContext, read_files
from quality_audit.findings import DependencyFinding, OutdatedPackage
from quality_audit.runner import ToolError

logger = logging.getLogger(__name__)

OUTDATED_COMMAND_KEY = "outdated"
DEFAULT_OUTDATED_COMMAND = (
    "pip",
    "list",
    "--outdated",
    "--format",
    "json",
    "--disable-pip-version-check",
)

# Only module-level imports count; indented imports are lazy or TYPE_CHECKING-guarded.
IMPORT_PATTERN = re.compile(r"^import[ \t]+([\w.]+(?:[ \t]*,[ \t]*[\w.]+)*)", re.MULTILINE)
FROM_PATTERN = re.compile(r"^from[ \t]+(\.*[\w.]*)[ \t]+import\b", re.MULTILINE)


class DependencyAnalyzer:
    """Builds the local import graph and asks pip for outdated packages."""

    analyzer_id = "dependencies"

    def evaluate(self, context: AnalysisContext) -> DependencyFinding:
        contents = read_files(context, context.production_files())
        graph = build_import_graph(contents)
        cycles = find_cycles(graph)

        outdated: list[OutdatedPackage] = []
        checked = True
        try:
            result = context.run_tool(OUTDATED_COMMAND_KEY, DEFAULT_OUTDATED_COMMAND)
            outdated = parse_outdated_json(result.stdout)
        except (ToolError, ValueError) as exc:
            logger.warning("outdated package check skipped: %s", exc)
            checked = False

        return DependencyFinding(cycles=cycles, outdated=outdated, outdated_checked=checked)


def module_name(path: str) -> str:
    """Map ``src/pkg/mod.py`` or ``pkg/__init__.py`` to a dotted module name."""
    parts = list(PurePosixPath(path).with_suffix("").parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts)


def build_import_graph(contents: Mapping[str, str]) -> dict[str, set[str]]:
    """Return module -> set of local modules it imports at module level."""
    modules = {module_name(path): path for path in contents}
    modules.pop("", None)
    graph: dict[str, set[str]] = {name: set() for name in modules}

    for name, path in modules.items():
        is_package = PurePosixPath(path).name == "__init__.py"
        for target in _imported_names(contents[path], name, is_package):
            local = _resolve_local(target, modules)
            if local is not None and local != name:
                graph[name].add(local)
    return graph


def find_cycles(graph: Mapping[str, set[str]]) -> list[tuple[str, ...]]:
    """Return each distinct import cycle once, rotated to start at its smallest module."""
    cycles: set[tuple[str, ...]] = set()
    state: dict[str, int] = {}
    stack: list[str] = []

    def visit(node: str) -> None:
        state[node] = 1
        stack.append(node)
        for neighbour in sorted(graph.get(node, ())):
            if state.get(neighbour) == 1:
                cycle = stack[stack.index(neighbour) :]
                start = cycle.index(min(cycle))
                cycles.add(tuple(cycle[start:] + cycle[:start]))
            elif neighbour not in state:
                visit(neighbour)
        stack.pop()
        state[node] = 2

    for node in sorted(graph):
        if node not in state:
            visit(node)
    return sorted(cycles)


def parse_outdated_json(text: str) -> list[OutdatedPackage]:
    if not text.strip():
        return []
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise ValueError("unexpected outdated package output")
    return [
        OutdatedPackage(
            name=str(item.get("name") or ""),
            current=str(item.get("version") or ""),
            latest=str(item.get("latest_version") or ""),
        )
        for item in payload
        if isinstance(item, dict) and item.get("name")
    ]


def _imported_names(content: str, module: str, is_package: bool) -> list[str]:
    names: list[str] = []
    for match in IMPORT_PATTERN.finditer(content):
        names.extend(part.strip() for part in match.group(1).split(","))
    for match in FROM_PATTERN.finditer(content):
        target = match.group(1)
        if target.startswith("."):
            target = _absolute(target, module, is_package)
        if target:
            names.append(target)
    return names


def _absolute(relative: str, module: str, is_package: bool) -> str:
    level = len(relative) - len(relative.lstrip("."))
    package = module.split(".") if is_package else module.split(".")[:-1]
    if level > 1:
        package = package[: len(package) - (level - 1)]
    remainder = relative[level:]
    return ".".join([*package, remainder] if remainder else package)


def _resolve_local(target: str, modules: Mapping[str, str]) -> str | None:
    parts = target.split(".")
    for size in range(len(parts), 0, -1):
        candidate = ".".join(parts[:size])
        if candidate in modules:
            return candidate
    return None
