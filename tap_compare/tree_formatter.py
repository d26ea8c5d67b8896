"""
TAP Compare Tree Formatter - Union Tree Traversal and Text Rendering

This module walks the union dependency graph of a comparison report
depth-first from each root, one step per union edge, and renders the
walk as an indented text tree with per-edge agreement markers.

The union of several tree-shaped annotations can contain cycles. The
walk keeps the set of ancestors on the current path and emits a cycle
step instead of descending into a dependent that is already on it.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Iterator, Set, Tuple

from tap_core.models import Document, EdgeStatusKind
from tap_compare.comparator import ComparisonReport, EdgeStatus, compare, edge_status

logger = logging.getLogger(__name__)


STATUS_SYMBOLS = {
    EdgeStatusKind.SAME: "✅",
    EdgeStatusKind.LABEL_DIFF: "⚠️",
    EdgeStatusKind.PARTIAL: "➖",
}

ROOT_SYMBOL = "🌱"
CYCLE_MARKER = "🔁 (cycle)"
SENTENCE_SYMBOL = "📝"
TEXT_DIFF_MARKER = "✍️(text diff)"
UNKNOWN_FORM = "❓"
ABSENT = "∅"


@dataclass(frozen=True)
class TraversalStep:
    """One visited union edge"""
    root: int
    head: int
    dep: int
    depth: int
    last: bool
    prefix: str
    cycle: bool = False


@dataclass
class _Frame:
    head: int
    deps: Tuple[int, ...]
    prefix: str
    index: int = 0


@dataclass
class RenderedTree:
    """Text rendering of one sentence comparison"""
    text: str

    meta: str

    lines: List[str] = field(default_factory=list)

    report: Optional[ComparisonReport] = None

    @property
    def txt_export(self) -> str:
        return self.text + "\n"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "text": self.text,
            "meta": self.meta,
            "lines": self.lines,
            "report": self.report.to_dict() if self.report else None
        }


def iter_union_tree(report: ComparisonReport, root: int) -> Iterator[TraversalStep]:
    """Depth-first walk of the union graph below one root"""
    path: Set[int] = {root}
    stack: List[_Frame] = [_Frame(head=root, deps=report.children.get(root, ()), prefix="")]

    while stack:
        frame = stack[-1]

        if frame.index >= len(frame.deps):
            stack.pop()
            path.discard(frame.head)
            continue

        dep = frame.deps[frame.index]
        frame.index += 1
        last = frame.index == len(frame.deps)
        cycle = dep in path

        yield TraversalStep(
            root=root,
            head=frame.head,
            dep=dep,
            depth=len(stack) - 1,
            last=last,
            prefix=frame.prefix,
            cycle=cycle
        )

        if cycle:
            continue

        path.add(dep)
        stack.append(_Frame(
            head=dep,
            deps=report.children.get(dep, ()),
            prefix=frame.prefix + ("  " if last else "│ ")
        ))


def iter_traversal(report: ComparisonReport) -> Iterator[TraversalStep]:
    """Walk every root of a comparison report in ascending order"""
    for root in report.roots:
        yield from iter_union_tree(report, root)


def token_display(document: Document, sentence_index: int, token_id: int, show_pos: bool = False) -> str:
    """Token label, per-author forms when they disagree"""
    tokens = [a.sentence_at(sentence_index).get_token(token_id) for a in document.authors]
    present_forms = [t.form for t in tokens if t is not None]

    if not present_forms:
        return f"{token_id}:{UNKNOWN_FORM}"

    def pos_suffix(i: int) -> str:
        if not show_pos:
            return ""
        token = tokens[i]
        upos = token.upos if token is not None else ABSENT
        xpos = token.xpos if token is not None else ABSENT
        return f"[{{{upos}|{xpos}}}]"

    distinct_forms = set(present_forms)
    if len(distinct_forms) == 1 and len(present_forms) == len(document.authors):
        return f"{token_id}:{present_forms[0]}{pos_suffix(0)}"

    parts = []
    for i, author in enumerate(document.authors):
        token = tokens[i]
        shown = ABSENT if token is None else f"{token.form}{pos_suffix(i)}"
        parts.append(f"{author.name}={shown}")
    return f"{token_id}:" + " | ".join(parts)


def format_meta(document: Document, report: ComparisonReport) -> str:
    """Summary line with union size and disagreement counters"""
    return (
        f"Authors: {len(document.authors)} · Edge union: {len(report.union_edges)} · "
        f"missing: {report.missing_edges} · label-diff: {report.label_diff_edges}"
    )


def render_tree(
    document: Document,
    sentence_index: int,
    only_diff_edges: bool = False,
    show_pos: bool = False
) -> RenderedTree:
    """Render the union tree of one sentence as text"""
    report = compare(document, sentence_index)

    lines: List[str] = []
    header = f"{SENTENCE_SYMBOL} S{sentence_index + 1}: {report.base_text}"
    if report.any_text_diff:
        header += f"  {TEXT_DIFF_MARKER}"
    lines.append(header)

    if report.any_text_diff:
        for author, text in zip(document.authors, report.texts):
            lines.append(f"   · {author.name}: {text}")
    lines.append("")

    for r, root in enumerate(report.roots):
        lines.append(f"{ROOT_SYMBOL} {token_display(document, sentence_index, root, show_pos)}")

        for step in iter_union_tree(report, root):
            status: EdgeStatus = edge_status(document, sentence_index, step.dep, step.head)
            if not (only_diff_edges and status.kind is EdgeStatusKind.SAME):
                connector = "└─" if step.last else "├─"
                lines.append(
                    f"{step.prefix}{connector} {STATUS_SYMBOLS[status.kind]} {status.label_text} → "
                    f"{token_display(document, sentence_index, step.dep, show_pos)}"
                )
            if step.cycle:
                next_prefix = step.prefix + ("  " if step.last else "│ ")
                lines.append(f"{next_prefix}{CYCLE_MARKER}")

        if r != len(report.roots) - 1:
            lines.append("")

    text = "\n".join(lines).rstrip()
    return RenderedTree(
        text=text,
        meta=format_meta(document, report),
        lines=lines,
        report=report
    )
