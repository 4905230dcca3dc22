"""Function-length complexity heuristic."""

from __future__ import annotations

import re
from dataclasses import dataclass

from quality_audit.analyzers.base import AnalysisContext, read_files
from quality_audit.findings import CodeIssue, ComplexityFinding

MAX_FUNCTION_LINES = 50

DEF_PATTERN = re.compile(r"^(?P<indent>[ \t]*)(?:async[ \t]+)?def[ \t]+(?P<name>\w+)")


@dataclass(frozen=True, slots=True)
class FunctionSpan:
    name: str
    line: int
    length: int


class ComplexityAnalyzer:
    """Flags functions whose bodies run past the length limit."""

    analyzer_id = "complexity"

    def evaluate(self, context: AnalysisContext) -> ComplexityFinding:
        total = 0
        items: list[CodeIssue] = []
        for path, content in read_files(context, context.production_files()).items():
            for span in function_spans(content):
                total += 1
                if span.length > MAX_FUNCTION_LINES:
                    items.append(
                        CodeIssue(
                            file=path,
                            line=span.line,
                            message=f"Function '{span.name}' is {span.length} lines long",
                            severity="WARNING",
                            suggestion="Split the function into smaller helpers",
                            rule="long-function",
                        )
                    )

        score = None if total == 0 else 100 - len(items) / total * 100
        return ComplexityFinding(
            complexity_score=score,
            total_functions=total,
            complex_functions=len(items),
            items=items,
        )


def function_spans(content: str) -> list[FunctionSpan]:
    """Return every ``def`` with the number of lines up to the end of its block."""
    lines = content.splitlines()
    spans: list[FunctionSpan] = []
    for index, line in enumerate(lines):
        match = DEF_PATTERN.match(line)
        if match is None:
            continue
        indent = len(match.group("indent").expandtabs())
        end = index + 1
        for offset in range(index + 1, len(lines)):
            candidate = lines[offset].expandtabs()
            if not candidate.strip():
                continue
            if len(candidate) - len(candidate.lstrip()) <= indent and not _continues(candidate):
                break
            end = offset + 1
        spans.append(FunctionSpan(name=match.group("name"), line=index + 1, length=end - index))
    return spans


def _continues(line: str) -> bool:
    # Closing brackets of a multi-line signature sit at the def's indent.
    return line.lstrip().startswith((")", "]", "}"))
