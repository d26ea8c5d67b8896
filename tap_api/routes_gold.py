"""
TAP API Routes Gold - Gold Generation Endpoints

This module provides REST API endpoints that merge two annotators of a
document into a gold CoNLL-U annotation.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from typing import Dict, Optional, Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from tap_core.config_runtime import get_runtime_config, get_gold_options
from tap_core.models import GoldOptions, MergeMode, Preference, SentCountMode
from tap_io.conllu_io import write_gold_string
from tap_gold.merge_engine import generate_gold_records
from tap_api.routes_documents import get_store, require_document

logger = logging.getLogger(__name__)

router = APIRouter()


class GoldRequest(BaseModel):
    """Schema for a gold generation request"""
    author_a: Optional[str] = Field(None, description="Annotator A (id or name)")
    author_b: Optional[str] = Field(None, description="Annotator B (id or name)")
    mode: Optional[MergeMode] = Field(None, description="Edge resolution policy")
    label_mode: Optional[Preference] = Field(None, description="Label tie-break")
    token_mode: Optional[Preference] = Field(None, description="Token attribute source")
    sent_count_mode: Optional[SentCountMode] = Field(None, description="Sentence count of the output")
    include_comments: Optional[bool] = Field(None, description="Write comment lines")
    mark_misc: Optional[bool] = Field(None, description="Write Gold=* tags to MISC")
    fix_orphan_heads: Optional[bool] = Field(None, description="Reattach orphan heads to root")
    filename: Optional[str] = Field(None, description="Download file name")


class GoldReportResponse(BaseModel):
    """Schema for a gold generation summary"""
    author_a: str
    author_b: str
    options: Dict[str, Any]
    sentence_count: int
    conflict_count: int
    tag_counts: Dict[str, int]


def build_options(body: GoldRequest) -> GoldOptions:
    """Merge request values over the configured gold defaults"""
    return get_gold_options(body.model_dump(exclude_none=True))


def _generate(request: Request, doc: Optional[str], body: GoldRequest):
    # InvalidSelectionError is turned into a 400 by the app error handlers
    document = require_document(get_store(request), doc)
    return generate_gold_records(document, body.author_a, body.author_b, build_options(body))


@router.post("", response_class=PlainTextResponse)
async def generate_gold_text(
    request: Request,
    body: GoldRequest,
    doc: Optional[str] = Query(None, description="Document key (active document when empty)")
):
    """Generate gold CoNLL-U text"""
    output = _generate(request, doc, body)

    filename = (body.filename or "").strip() or get_runtime_config().get_setting("gold", "filename", "gold.conllu")

    return PlainTextResponse(
        write_gold_string(output),
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/report", response_model=GoldReportResponse)
async def generate_gold_report(
    request: Request,
    body: GoldRequest,
    doc: Optional[str] = Query(None, description="Document key (active document when empty)")
):
    """Generate gold annotation and return its conflict summary"""
    output = _generate(request, doc, body)

    return GoldReportResponse(
        author_a=output.author_a,
        author_b=output.author_b,
        options=output.options.to_dict(),
        sentence_count=len(output.sentences),
        conflict_count=output.conflict_count,
        tag_counts=output.tag_counts()
    )
