"""
TAP Core - Treebank Adjudication Platform Core Module

This package provides the foundational data models, configuration and
logging infrastructure shared by the parser, the comparator and the
gold merge engine.

Modules:
    models: Core domain objects (Token, Edge, Sentence, Annotator, Document)
    config_runtime: Runtime configuration and path resolution
    logging_monitoring: Console and structured logging

University of Athens - Nikolaos Lavidas
"""

from tap_core.models import (
    Token,
    Edge,
    Sentence,
    Annotator,
    Document,
    MergeMode,
    Preference,
    SentCountMode,
    GoldTag,
    EdgeStatusKind,
    EMPTY_SENTENCE,
)

from tap_core.config_runtime import (
    RuntimeConfig,
    PathResolver,
    ConfigurationError,
    get_runtime_config,
    get_setting,
    get_gold_options,
)

from tap_core.logging_monitoring import (
    LogLevel,
    PlatformLogger,
    setup_logging,
    get_logger,
)

__version__ = "1.0.0"
__author__ = "Nikolaos Lavidas"
__institution__ = "University of Athens"

__all__ = [
    "Token",
    "Edge",
    "Sentence",
    "Annotator",
    "Document",
    "MergeMode",
    "Preference",
    "SentCountMode",
    "GoldTag",
    "EdgeStatusKind",
    "EMPTY_SENTENCE",
    "RuntimeConfig",
    "PathResolver",
    "get_runtime_config",
    "get_setting",
    "ConfigurationError",
    "get_gold_options",
    "LogLevel",
    "PlatformLogger",
    "setup_logging",
    "get_logger",
]
