"""
TAP Compare Comparator - Multi-Annotator Sentence Comparison

This module computes, for one sentence index of a document, the union of
the dependency edges of all annotators, the child adjacency and root set
of the union graph, the reconstructed per-annotator texts and the
disagreement counters.

Union edges are keyed by (dependent, head): annotators who agree on the
structure but not on the label share one union edge, which is then
counted as a label disagreement.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any, Tuple

from tap_core.models import (
    Document, Sentence, EdgeStatusKind, ROOT_HEAD
)

logger = logging.getLogger(__name__)


EMPTY_TEXT_LABEL = "(empty)"


@dataclass(frozen=True)
class UnionEdge:
    """A (dependent, head) pair present in at least one annotation"""
    dep: int
    head: int


@dataclass(frozen=True)
class ComparisonReport:
    """Comparison of all annotators for one sentence index"""
    sentence_index: int

    per_author: Tuple[Sentence, ...]

    union_edges: Tuple[UnionEdge, ...]

    children: Dict[int, Tuple[int, ...]]

    roots: Tuple[int, ...]

    texts: Tuple[str, ...]

    any_text_diff: bool = False

    missing_edges: int = 0

    label_diff_edges: int = 0

    @property
    def agreed_edges(self) -> int:
        return len(self.union_edges) - self.missing_edges - self.label_diff_edges

    @property
    def has_diff(self) -> bool:
        return self.any_text_diff or self.missing_edges > 0 or self.label_diff_edges > 0

    @property
    def base_text(self) -> str:
        """First non-empty reconstructed text"""
        return next((t for t in self.texts if t), "")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "sentence_index": self.sentence_index,
            "texts": list(self.texts),
            "union_edges": [{"dep": e.dep, "head": e.head} for e in self.union_edges],
            "roots": list(self.roots),
            "any_text_diff": self.any_text_diff,
            "missing_edges": self.missing_edges,
            "label_diff_edges": self.label_diff_edges,
            "agreed_edges": self.agreed_edges
        }


@dataclass(frozen=True)
class EdgeStatus:
    """Agreement status of one union edge"""
    kind: EdgeStatusKind

    label_text: str

    present: int

    total: int

    labels_by_author: Tuple[Tuple[str, Optional[str]], ...] = ()


@dataclass
class SentenceSummary:
    """Entry of the sentence index of a document"""
    idx: int
    text: str
    any_text_diff: bool
    missing_edges: int
    label_diff_edges: int

    @property
    def sent_id_human(self) -> int:
        return self.idx + 1

    @property
    def has_diff(self) -> bool:
        return self.any_text_diff or self.missing_edges > 0 or self.label_diff_edges > 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "idx": self.idx,
            "sent_id": self.sent_id_human,
            "text": self.text,
            "any_text_diff": self.any_text_diff,
            "missing_edges": self.missing_edges,
            "label_diff_edges": self.label_diff_edges,
            "has_diff": self.has_diff
        }


def sentences_at(document: Document, sentence_index: int) -> Tuple[Sentence, ...]:
    """Each annotator's sentence at an index, empty when out of range"""
    return tuple(a.sentence_at(sentence_index) for a in document.authors)


def compare(document: Document, sentence_index: int) -> ComparisonReport:
    """Compare all annotators of a document at one sentence index"""
    per_author = sentences_at(document, sentence_index)

    seen = set()
    union_edges: List[UnionEdge] = []
    for sentence in per_author:
        for dep, edge in sentence.edges.items():
            key = (dep, edge.head)
            if key not in seen:
                seen.add(key)
                union_edges.append(UnionEdge(dep=dep, head=edge.head))

    children_lists: Dict[int, List[int]] = {}
    for edge in union_edges:
        children_lists.setdefault(edge.head, []).append(edge.dep)
    children = {head: tuple(sorted(deps)) for head, deps in children_lists.items()}

    nodes = set()
    incoming = set()
    for edge in union_edges:
        nodes.add(edge.dep)
        if edge.head != ROOT_HEAD:
            nodes.add(edge.head)
            incoming.add(edge.dep)

    roots = sorted(n for n in nodes if n not in incoming)
    if not roots and nodes:
        roots = [min(nodes)]

    texts = tuple(sentence.text for sentence in per_author)
    any_text_diff = len({t for t in texts if t}) > 1

    missing_edges = 0
    label_diff_edges = 0
    for edge in union_edges:
        labels = set()
        present = 0
        for sentence in per_author:
            own = sentence.get_edge(edge.dep)
            if own is not None and own.head == edge.head:
                present += 1
                labels.add(own.deprel)
        if present != len(per_author):
            missing_edges += 1
        elif len(labels) > 1:
            label_diff_edges += 1

    return ComparisonReport(
        sentence_index=sentence_index,
        per_author=per_author,
        union_edges=tuple(union_edges),
        children=children,
        roots=tuple(roots),
        texts=texts,
        any_text_diff=any_text_diff,
        missing_edges=missing_edges,
        label_diff_edges=label_diff_edges
    )


def edge_status(document: Document, sentence_index: int, dep: int, head: int) -> EdgeStatus:
    """Classify a union edge as same, labelDiff or partial"""
    labels_by_author: List[Tuple[str, Optional[str]]] = []
    present = 0

    for author in document.authors:
        edge = author.sentence_at(sentence_index).get_edge(dep)
        if edge is not None and edge.head == head:
            present += 1
            labels_by_author.append((author.name, edge.deprel))
        else:
            labels_by_author.append((author.name, None))

    total = len(document.authors)

    if present == total:
        distinct = []
        for _, label in labels_by_author:
            if label not in distinct:
                distinct.append(label)
        if len(distinct) == 1:
            return EdgeStatus(EdgeStatusKind.SAME, distinct[0], present, total, tuple(labels_by_author))
        label_text = " | ".join(f"{name}:{label if label is not None else '∅'}" for name, label in labels_by_author)
        return EdgeStatus(EdgeStatusKind.LABEL_DIFF, label_text, present, total, tuple(labels_by_author))

    present_names = [f"{name}:{label}" for name, label in labels_by_author if label is not None]
    missing_names = [name for name, label in labels_by_author if label is None]

    detail = f"{present}/{total}  "
    if present_names:
        detail += "+ " + ", ".join(present_names)
    if missing_names:
        detail += "  − " + ", ".join(missing_names)

    return EdgeStatus(EdgeStatusKind.PARTIAL, detail.strip(), present, total, tuple(labels_by_author))


def build_sentence_index(document: Document) -> List[SentenceSummary]:
    """Summaries of every sentence index of a document"""
    items: List[SentenceSummary] = []

    for idx in range(document.sent_count):
        report = compare(document, idx)
        items.append(SentenceSummary(
            idx=idx,
            text=report.base_text or EMPTY_TEXT_LABEL,
            any_text_diff=report.any_text_diff,
            missing_edges=report.missing_edges,
            label_diff_edges=report.label_diff_edges
        ))

    logger.debug(f"Indexed {len(items)} sentences of document {document.key}")
    return items


def filter_sentence_index(
    items: List[SentenceSummary],
    only_diff: bool = False,
    query: Optional[str] = None
) -> List[SentenceSummary]:
    """Apply the difference filter and a case-insensitive text search"""
    q = (query or "").strip().lower()

    result = []
    for item in items:
        if only_diff and not item.has_diff:
            continue
        if q and q not in item.text.lower():
            continue
        result.append(item)
    return result
