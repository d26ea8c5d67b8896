"""
TAP Compare - Multi-Annotator Comparison Package

This package compares the annotators of a document sentence by sentence
and renders the union dependency tree with agreement markers.

Modules:
    comparator: Union graph, disagreement counters, sentence index
    tree_formatter: Cycle-safe traversal and text rendering

University of Athens - Nikolaos Lavidas
"""

from tap_compare.comparator import (
    UnionEdge,
    ComparisonReport,
    EdgeStatus,
    SentenceSummary,
    compare,
    edge_status,
    build_sentence_index,
    filter_sentence_index,
)

from tap_compare.tree_formatter import (
    TraversalStep,
    RenderedTree,
    iter_union_tree,
    iter_traversal,
    token_display,
    render_tree,
)

__version__ = "1.0.0"
__author__ = "Nikolaos Lavidas"

__all__ = [
    "UnionEdge",
    "ComparisonReport",
    "EdgeStatus",
    "SentenceSummary",
    "compare",
    "edge_status",
    "build_sentence_index",
    "filter_sentence_index",
    "TraversalStep",
    "RenderedTree",
    "iter_union_tree",
    "iter_traversal",
    "token_display",
    "render_tree",
]
