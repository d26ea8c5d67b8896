"""
TAP IO Corpus Loader - Grouping Annotator Files into Documents

This module turns annotator files into documents: either every file is an
annotator of one single document, or files are grouped by the directory
they live in (one directory per document, one file per annotator).

It also holds the in-memory document store. The store is replaced as a
whole on each load, so readers always see one consistent collection.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import re
import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Iterable, Tuple, Union

from tap_core.models import Annotator, Document
from tap_core.logging_monitoring import get_logger
from tap_io.conllu_io import parse_conllu_file, parse_conllu_string

logger = logging.getLogger(__name__)
platform_logger = get_logger(__name__)


SINGLE_DOCUMENT_KEY = "single"
SINGLE_DOCUMENT_LABEL = "Single document"
DEFAULT_EXTENSIONS = r"\.conll(u)?$|\.txt$"


def basename_no_ext(name: str) -> str:
    """File name without directories and without its last extension"""
    base = re.split(r"[\\/]", name)[-1]
    return re.sub(r"\.[^.]+$", "", base)


def dir_of_relative_path(rel: str) -> str:
    """Parent directory of a relative path, '.' at top level"""
    parts = rel.replace("\\", "/").split("/")
    if len(parts) <= 1:
        return "."
    return "/".join(parts[:-1]) or "."


def matches_extensions(name: str, pattern: str = DEFAULT_EXTENSIONS) -> bool:
    """Check a file name against the annotation file pattern"""
    return re.search(pattern, name, re.IGNORECASE) is not None


def load_texts(
    named_texts: Iterable[Tuple[str, str]],
    group_by_directory: bool = False,
    pattern: str = DEFAULT_EXTENSIONS
) -> Dict[str, Document]:
    """Build documents from (relative name, CoNLL-U text) pairs

    When grouping by directory, names not matching ``pattern`` are skipped
    as in load_directory().
    """
    documents: Dict[str, Document] = {}

    for name, text in named_texts:
        if group_by_directory and not matches_extensions(name, pattern):
            logger.debug(f"Skipping non-annotation file {name}")
            continue

        if group_by_directory:
            key = dir_of_relative_path(name)
            label = key
        else:
            key = SINGLE_DOCUMENT_KEY
            label = SINGLE_DOCUMENT_LABEL

        document = documents.get(key)
        if document is None:
            document = Document(key=key, label=label)
            documents[key] = document

        document.authors.append(Annotator(
            name=basename_no_ext(name),
            source_id=name,
            sentences=tuple(parse_conllu_string(text))
        ))

    if group_by_directory:
        for document in documents.values():
            document.authors.sort(key=lambda a: a.source_id)

    return documents


def load_files_as_single_document(
    paths: Iterable[Union[str, Path]],
    encoding: str = "utf-8"
) -> Document:
    """Load every file as one annotator of a single document"""
    document = Document(key=SINGLE_DOCUMENT_KEY, label=SINGLE_DOCUMENT_LABEL)

    with platform_logger.timed("load files as single document"):
        for path in paths:
            path = Path(path)
            document.authors.append(Annotator(
                name=basename_no_ext(path.name),
                source_id=str(path),
                sentences=tuple(parse_conllu_file(path, encoding=encoding))
            ))

    logger.info(f"Loaded {len(document.authors)} annotators, {document.sent_count} sentences")
    return document


def load_directory(
    root: Union[str, Path],
    pattern: str = DEFAULT_EXTENSIONS,
    encoding: str = "utf-8"
) -> Dict[str, Document]:
    """Load annotator files below a directory, one document per parent directory"""
    root = Path(root)

    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    documents: Dict[str, Document] = {}

    with platform_logger.timed(f"load directory {root}"):
        for path in sorted(p for p in root.rglob("*") if p.is_file()):
            if not matches_extensions(path.name, pattern):
                continue

            rel = str(PurePosixPath(*path.relative_to(root).parts))
            key = dir_of_relative_path(rel)

            document = documents.get(key)
            if document is None:
                document = Document(key=key, label=key)
                documents[key] = document

            document.authors.append(Annotator(
                name=basename_no_ext(path.name),
                source_id=rel,
                sentences=tuple(parse_conllu_file(path, encoding=encoding))
            ))

    for document in documents.values():
        document.authors.sort(key=lambda a: a.source_id)

    logger.info(f"Loaded {len(documents)} documents from {root}")
    return documents


class DocumentStore:
    """In-memory document collection, replaced as a whole on each load"""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._active_key: Optional[str] = None
        self._lock = threading.Lock()

    def replace(self, documents: Dict[str, Document]):
        """Swap in a new collection and activate its first document"""
        new_documents = dict(documents)
        keys = sorted(new_documents)
        with self._lock:
            self._documents = new_documents
            self._active_key = keys[0] if keys else None
        logger.info(f"Document store replaced: {len(new_documents)} documents")

    def clear(self):
        """Remove all documents"""
        self.replace({})

    def keys(self) -> List[str]:
        """Document keys in sorted order"""
        return sorted(self._documents)

    def get(self, key: Optional[str]) -> Optional[Document]:
        """Get a document by key, the active one when key is empty"""
        documents = self._documents
        if not key:
            key = self._active_key
        return documents.get(key) if key else None

    @property
    def active_key(self) -> Optional[str]:
        return self._active_key

    @active_key.setter
    def active_key(self, key: Optional[str]):
        if key is not None and key not in self._documents:
            raise KeyError(f"Unknown document: {key}")
        self._active_key = key

    def rename_author(self, key: Optional[str], author_id: str, name: str) -> Optional[Annotator]:
        """Rename an annotator; blank names keep the current one"""
        document = self.get(key)
        if document is None:
            return None

        for author in document.authors:
            if author.id == author_id:
                author.name = name.strip() or author.name
                return author
        return None

    def __len__(self) -> int:
        return len(self._documents)
