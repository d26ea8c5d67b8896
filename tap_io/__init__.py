"""
TAP IO - Input/Output Module for Annotation Files

This package reads annotator submissions in CoNLL-U format, groups them
into documents and writes adjudicated gold annotations.

Modules:
    conllu_io: Permissive CoNLL-U reader and gold writer
    corpus_loader: Document grouping and the in-memory document store

University of Athens - Nikolaos Lavidas
"""

from tap_io.conllu_io import (
    CoNLLUReader,
    CoNLLUWriter,
    parse_conllu_file,
    parse_conllu_string,
    write_gold_file,
    write_gold_string,
)

from tap_io.corpus_loader import (
    DocumentStore,
    load_texts,
    load_files_as_single_document,
    load_directory,
)

__version__ = "1.0.0"
__author__ = "Nikolaos Lavidas"

__all__ = [
    "CoNLLUReader",
    "CoNLLUWriter",
    "parse_conllu_file",
    "parse_conllu_string",
    "write_gold_file",
    "write_gold_string",
    "DocumentStore",
    "load_texts",
    "load_files_as_single_document",
    "load_directory",
]
