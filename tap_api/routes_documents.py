"""
TAP API Routes Documents - Document Loading and Comparison Endpoints

This module provides REST API endpoints for loading annotator files,
listing documents, browsing the sentence index and rendering the union
tree of one sentence.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Any

from fastapi import APIRouter, HTTPException, Query, Path, Request
from pydantic import BaseModel, Field

from tap_core.config_runtime import get_setting
from tap_core.models import Document
from tap_io.corpus_loader import DocumentStore, load_texts, DEFAULT_EXTENSIONS
from tap_compare.comparator import build_sentence_index, filter_sentence_index
from tap_compare.tree_formatter import render_tree

logger = logging.getLogger(__name__)

router = APIRouter()


class NamedText(BaseModel):
    """Schema for one uploaded annotator file"""
    name: str = Field(..., description="File name or relative path")
    content: str = Field(..., description="CoNLL-U text")


class LoadRequest(BaseModel):
    """Schema for a load request"""
    files: List[NamedText] = Field(..., description="Annotator files")
    group_by_directory: bool = Field(False, description="One document per parent directory")


class AuthorInfo(BaseModel):
    """Schema for an annotator"""
    id: str
    name: str
    source_id: str
    sentence_count: int


class DocumentInfo(BaseModel):
    """Schema for a document"""
    key: str
    label: str
    sent_count: int
    authors: List[AuthorInfo]


class DocumentListResponse(BaseModel):
    """Schema for the document list"""
    active: Optional[str]
    documents: List[DocumentInfo]


class SentenceItem(BaseModel):
    """Schema for a sentence index entry"""
    idx: int
    sent_id: int
    text: str
    any_text_diff: bool
    missing_edges: int
    label_diff_edges: int
    has_diff: bool


class TreeResponse(BaseModel):
    """Schema for a rendered sentence tree"""
    doc: str
    index: int
    text: str
    meta: str
    report: Dict[str, Any]


class RenameRequest(BaseModel):
    """Schema for renaming an annotator"""
    name: str = Field(..., description="New display name")


def get_store(request: Request) -> DocumentStore:
    """Get the document store of the running application"""
    return request.app.state.store


def require_document(store: DocumentStore, doc: Optional[str]) -> Document:
    """Get a document or fail with 404"""
    document = store.get(doc)
    if document is None:
        raise HTTPException(status_code=404, detail=f"Document not found: {doc or '(active)'}")
    return document


def _document_list(store: DocumentStore) -> DocumentListResponse:
    return DocumentListResponse(
        active=store.active_key,
        documents=[DocumentInfo(**store.get(k).to_dict()) for k in store.keys()]
    )


@router.post("", response_model=DocumentListResponse)
async def load_documents(request: Request, body: LoadRequest):
    """Load annotator files, replacing all documents"""
    if not body.files:
        raise HTTPException(status_code=400, detail="No files given")

    documents = load_texts(
        ((f.name, f.content) for f in body.files),
        group_by_directory=body.group_by_directory,
        pattern=get_setting("loader", "extensions", DEFAULT_EXTENSIONS)
    )
    if not documents:
        raise HTTPException(status_code=400, detail="No annotation files among the given files")

    store = get_store(request)
    store.replace(documents)

    return _document_list(store)


@router.get("", response_model=DocumentListResponse)
async def list_documents(request: Request):
    """List loaded documents"""
    return _document_list(get_store(request))


@router.delete("", response_model=DocumentListResponse)
async def clear_documents(request: Request):
    """Remove all documents"""
    store = get_store(request)
    store.clear()
    return _document_list(store)


@router.get("/sentences", response_model=List[SentenceItem])
async def list_sentences(
    request: Request,
    doc: Optional[str] = Query(None, description="Document key (active document when empty)"),
    only_diff: Optional[bool] = Query(None, description="Only sentences with differences"),
    search: Optional[str] = Query(None, description="Case-insensitive text search")
):
    """Sentence index of a document"""
    document = require_document(get_store(request), doc)

    if only_diff is None:
        only_diff = bool(get_setting("viewer", "only_diff_sentences", False))

    items = filter_sentence_index(build_sentence_index(document), only_diff=only_diff, query=search)
    return [SentenceItem(**item.to_dict()) for item in items]


@router.get("/tree", response_model=TreeResponse)
async def sentence_tree(
    request: Request,
    doc: Optional[str] = Query(None, description="Document key (active document when empty)"),
    index: int = Query(..., ge=0, description="Sentence index (0-based)"),
    only_diff_edges: Optional[bool] = Query(None, description="Hide edges all annotators agree on"),
    show_pos: Optional[bool] = Query(None, description="Show UPOS/XPOS tags")
):
    """Render the union tree of one sentence"""
    document = require_document(get_store(request), doc)

    if only_diff_edges is None:
        only_diff_edges = bool(get_setting("viewer", "only_diff_edges", False))
    if show_pos is None:
        show_pos = bool(get_setting("viewer", "show_pos", False))

    rendered = render_tree(document, index, only_diff_edges=only_diff_edges, show_pos=show_pos)

    return TreeResponse(
        doc=document.key,
        index=index,
        text=rendered.text,
        meta=rendered.meta,
        report=rendered.report.to_dict()
    )


@router.patch("/authors/{author_id}", response_model=AuthorInfo)
async def rename_author(
    request: Request,
    body: RenameRequest,
    author_id: str = Path(..., description="Annotator ID"),
    doc: Optional[str] = Query(None, description="Document key (active document when empty)")
):
    """Rename an annotator"""
    store = get_store(request)
    require_document(store, doc)

    author = store.rename_author(doc, author_id, body.name)
    if author is None:
        raise HTTPException(status_code=404, detail=f"Author not found: {author_id}")

    return AuthorInfo(**author.to_dict())
