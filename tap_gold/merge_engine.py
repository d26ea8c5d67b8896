"""
TAP Gold Merge Engine - Policy-Based Adjudication of Two Annotators

This module merges the annotations of two annotators of a document into
one gold annotation. Tokens are taken from the preferred annotator; each
dependency edge is resolved by the selected merge mode:

- preferA / preferB: the named annotator's edge, else the other one
- unionPreferA / unionPreferB: agreeing heads are kept (label by the
  label tie-break), conflicting heads follow the named annotator
- intersection: only edges whose heads agree
- strictAgree: only edges whose head and label agree

Anything a policy cannot resolve is attached to the artificial root
(head 0, relation ``dep``) and recorded as a conflict note. Every
decision that deviates from plain agreement is tagged on the token.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from tap_core.models import (
    Annotator, Document, Edge, Sentence, Token,
    GoldOptions, GoldOutput, GoldSentence, GoldToken, GoldTag,
    MergeMode, Preference, SentCountMode,
    ROOT_HEAD, PLACEHOLDER_DEPREL
)
from tap_core.logging_monitoring import get_logger
from tap_io.conllu_io import write_gold_string

logger = logging.getLogger(__name__)
platform_logger = get_logger(__name__)


class InvalidSelectionError(ValueError):
    """Raised when the two annotators selected for gold generation are unusable"""


@dataclass(frozen=True)
class ResolvedEdge:
    """Head and relation chosen for one dependent"""
    head: int
    deprel: str


ARTIFICIAL_ROOT = ResolvedEdge(head=ROOT_HEAD, deprel=PLACEHOLDER_DEPREL)


class TokenLog:
    """Collects the tags of one token and appends to the sentence notes"""

    def __init__(self, token_id: int, notes: List[str]):
        self.token_id = token_id
        self.tags: Set[GoldTag] = set()
        self._notes = notes

    def mark(self, tag: GoldTag):
        self.tags.add(tag)

    def note(self, kind: str, text: str):
        self._notes.append(f"{kind}={self.token_id}: {text}")

    def conflict(self, why: str) -> ResolvedEdge:
        """Record an unresolved edge and fall back to the artificial root"""
        self.mark(GoldTag.CONFLICT)
        self.note("dep", why)
        return ARTIFICIAL_ROOT

    def choose_label(self, label_a: str, label_b: str, label_mode: Preference) -> str:
        """Tie-break between two labels of an agreed head"""
        if label_a == label_b:
            return label_a
        self.note("dep", f"label-diff ({label_mode.side} chosen) A={label_a} B={label_b}")
        self.mark(GoldTag.LABEL_DIFF)
        return label_a if label_mode is Preference.PREFER_A else label_b


def _pick(edge: Optional[Edge]) -> Optional[ResolvedEdge]:
    if edge is None:
        return None
    return ResolvedEdge(head=edge.head, deprel=edge.deprel)


def _resolve_preferred(first: Optional[Edge], second: Optional[Edge], log: TokenLog) -> ResolvedEdge:
    return _pick(first) or _pick(second) or log.conflict("missing in both")


def _resolve_prefer_a(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    return _resolve_preferred(ea, eb, log)


def _resolve_prefer_b(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    return _resolve_preferred(eb, ea, log)


def _resolve_union(ea, eb, options: GoldOptions, log: TokenLog, prefer_a: bool) -> ResolvedEdge:
    first, second = (ea, eb) if prefer_a else (eb, ea)

    if first is not None and second is not None:
        if first.head == second.head:
            deprel = log.choose_label(ea.deprel, eb.deprel, options.label_mode)
            return ResolvedEdge(head=first.head, deprel=deprel)

        log.mark(GoldTag.HEAD_CONFLICT)
        log.note("dep", f"head-conflict ({'A' if prefer_a else 'B'} chosen) A={ea.head} B={eb.head}")
        return ResolvedEdge(head=first.head, deprel=first.deprel)

    return _resolve_preferred(first, second, log)


def _resolve_union_prefer_a(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    return _resolve_union(ea, eb, options, log, prefer_a=True)


def _resolve_union_prefer_b(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    return _resolve_union(ea, eb, options, log, prefer_a=False)


def _resolve_intersection(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    if ea is not None and eb is not None and ea.head == eb.head:
        deprel = log.choose_label(ea.deprel, eb.deprel, options.label_mode)
        return ResolvedEdge(head=ea.head, deprel=deprel)

    if ea is not None and eb is None:
        return log.conflict("only in A (intersection)")
    if ea is None and eb is not None:
        return log.conflict("only in B (intersection)")
    if ea is not None and eb is not None:
        return log.conflict(f"head-conflict (intersection) A={ea.head} B={eb.head}")
    return log.conflict("missing in both")


def _resolve_strict_agree(ea, eb, options: GoldOptions, log: TokenLog) -> ResolvedEdge:
    if ea is not None and eb is not None and ea.head == eb.head and ea.deprel == eb.deprel:
        return ResolvedEdge(head=ea.head, deprel=ea.deprel)

    if ea is not None and eb is None:
        return log.conflict("only in A (strict)")
    if ea is None and eb is not None:
        return log.conflict("only in B (strict)")
    if ea is not None and eb is not None:
        if ea.head != eb.head:
            return log.conflict(f"head-conflict (strict) A={ea.head} B={eb.head}")
        return log.conflict(f"label-conflict (strict) A={ea.deprel} B={eb.deprel}")
    return log.conflict("missing in both")


EdgeResolver = Callable[[Optional[Edge], Optional[Edge], GoldOptions, TokenLog], ResolvedEdge]

EDGE_RESOLVERS: Dict[MergeMode, EdgeResolver] = {
    MergeMode.PREFER_A: _resolve_prefer_a,
    MergeMode.PREFER_B: _resolve_prefer_b,
    MergeMode.UNION_PREFER_A: _resolve_union_prefer_a,
    MergeMode.UNION_PREFER_B: _resolve_union_prefer_b,
    MergeMode.INTERSECTION: _resolve_intersection,
    MergeMode.STRICT_AGREE: _resolve_strict_agree,
}

_missing_modes = set(MergeMode) - set(EDGE_RESOLVERS)
if _missing_modes:
    raise RuntimeError(f"No edge resolver for merge modes: {sorted(m.value for m in _missing_modes)}")


def resolve_edge(
    ea: Optional[Edge],
    eb: Optional[Edge],
    options: GoldOptions,
    log: TokenLog
) -> ResolvedEdge:
    """Resolve the edge of one dependent under the configured merge mode"""
    return EDGE_RESOLVERS[options.mode](ea, eb, options, log)


def resolve_token(
    token_id: int,
    sa: Sentence,
    sb: Sentence,
    options: GoldOptions,
    log: TokenLog
) -> Token:
    """Pick the token attributes of the preferred annotator"""
    ta = sa.get_token(token_id)
    tb = sb.get_token(token_id)

    if options.token_mode is Preference.PREFER_A:
        chosen = ta or tb
    else:
        chosen = tb or ta

    if chosen is None:
        log.mark(GoldTag.TOKEN_MISSING)
        log.note("tok", "missing in both")
        return Token(id=token_id)

    if ta is not None and tb is not None and ta.attributes() != tb.attributes():
        log.mark(GoldTag.TOKEN_MISMATCH)
        log.note(
            "tok",
            f"mismatch A=({ta.form},{ta.upos},{ta.xpos}) B=({tb.form},{tb.upos},{tb.xpos})"
        )

    return chosen


def merge_sentence(
    index: int,
    sa: Sentence,
    sb: Sentence,
    options: GoldOptions
) -> Optional[GoldSentence]:
    """Merge one sentence pair; None when neither side has tokens"""
    ids = sorted(set(sa.tokens) | set(sb.tokens))
    if not ids:
        return None

    id_set = set(ids)
    notes: List[str] = []
    tokens: List[GoldToken] = []

    for token_id in ids:
        log = TokenLog(token_id, notes)
        token = resolve_token(token_id, sa, sb, options, log)
        resolved = resolve_edge(sa.get_edge(token_id), sb.get_edge(token_id), options, log)

        head, deprel = resolved.head, resolved.deprel
        if options.fix_orphan_heads and head != ROOT_HEAD and head not in id_set:
            log.note("tok", f"orphan head={head} (→ 0)")
            log.mark(GoldTag.ORPHAN_HEAD)
            head, deprel = ARTIFICIAL_ROOT.head, ARTIFICIAL_ROOT.deprel

        tokens.append(GoldToken(token=token, head=head, deprel=deprel, tags=frozenset(log.tags)))

    if options.token_mode is Preference.PREFER_A:
        text = sa.text or sb.text
    else:
        text = sb.text or sa.text

    return GoldSentence(index=index, text=text, tokens=tuple(tokens), notes=tuple(notes))


def resolve_authors(
    document: Document,
    author_a: Union[str, Annotator, None],
    author_b: Union[str, Annotator, None]
) -> Tuple[Annotator, Annotator]:
    """Resolve the two selected annotators or raise InvalidSelectionError"""
    selected = []
    for side, ref in (("A", author_a), ("B", author_b)):
        if ref is None or ref == "":
            raise InvalidSelectionError(f"Author {side} is not specified")
        if isinstance(ref, Annotator):
            author = ref if any(ref is x for x in document.authors) else None
        else:
            author = document.get_author(ref)
            named = document.authors_named(ref) if author is None else []
            if len(named) > 1:
                sources = ", ".join(x.source_id for x in named)
                raise InvalidSelectionError(
                    f"Author {side} ({ref!r}) is ambiguous in document {document.key!r}; "
                    f"select one by file: {sources}"
                )
        if author is None:
            raise InvalidSelectionError(f"Author {side} ({ref!r}) is not part of document {document.key!r}")
        selected.append(author)

    a, b = selected
    if a is b:
        raise InvalidSelectionError("Author A and author B must be two different annotators")
    return a, b


def generate_gold_records(
    document: Document,
    author_a: Union[str, Annotator, None],
    author_b: Union[str, Annotator, None],
    options: Optional[GoldOptions] = None
) -> GoldOutput:
    """Merge two annotators of a document into gold sentence records"""
    options = options or GoldOptions()
    a, b = resolve_authors(document, author_a, author_b)

    if options.sent_count_mode is SentCountMode.MIN:
        sent_count = min(len(a.sentences), len(b.sentences))
    else:
        sent_count = max(len(a.sentences), len(b.sentences))

    sentences: List[GoldSentence] = []
    run_logger = platform_logger.bind(doc=document.key, author_a=a.name, author_b=b.name)
    with run_logger.timed(f"gold generation ({options.mode.value})"):
        for index in range(sent_count):
            merged = merge_sentence(index, a.sentence_at(index), b.sentence_at(index), options)
            if merged is not None:
                sentences.append(merged)

    output = GoldOutput(
        author_a=a.name,
        author_b=b.name,
        options=options,
        sentences=tuple(sentences)
    )
    logger.info(f"Gold: {len(output.sentences)} sentences, {output.conflict_count} conflict notes")
    return output


def generate_gold(
    document: Document,
    author_a: Union[str, Annotator, None],
    author_b: Union[str, Annotator, None],
    options: Optional[GoldOptions] = None
) -> str:
    """Merge two annotators of a document into gold CoNLL-U text"""
    return write_gold_string(generate_gold_records(document, author_a, author_b, options))
