"""
TAP Gold - Gold Annotation Generation Package

This package merges two annotators of a document into one adjudicated
annotation under configurable conflict-resolution policies.

Modules:
    merge_engine: Edge and token resolution, conflict bookkeeping

University of Athens - Nikolaos Lavidas
"""

from tap_gold.merge_engine import (
    InvalidSelectionError,
    ResolvedEdge,
    ARTIFICIAL_ROOT,
    EDGE_RESOLVERS,
    resolve_edge,
    resolve_token,
    resolve_authors,
    merge_sentence,
    generate_gold_records,
    generate_gold,
)

__version__ = "1.0.0"
__author__ = "Nikolaos Lavidas"

__all__ = [
    "InvalidSelectionError",
    "ResolvedEdge",
    "ARTIFICIAL_ROOT",
    "EDGE_RESOLVERS",
    "resolve_edge",
    "resolve_token",
    "resolve_authors",
    "merge_sentence",
    "generate_gold_records",
    "generate_gold",
]
