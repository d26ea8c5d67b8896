"""
TAP Core Models - Domain Objects for Annotation Adjudication

This module defines the core data structures shared by the parser, the
sentence comparator and the gold merge engine.

The models support:
- Immutable token and dependency edge records
- Sentences as read-only id-keyed mappings
- Annotators and documents aligned by sentence index
- Closed enumerations for merge policies and diagnostic tags

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Optional, Any, Mapping, Tuple, Iterable
from enum import Enum


PLACEHOLDER = "_"
ROOT_HEAD = 0
PLACEHOLDER_DEPREL = "dep"


class MergeMode(Enum):
    """Edge resolution policies for gold generation"""
    PREFER_A = "preferA"
    PREFER_B = "preferB"
    UNION_PREFER_A = "unionPreferA"
    UNION_PREFER_B = "unionPreferB"
    INTERSECTION = "intersection"
    STRICT_AGREE = "strictAgree"


class Preference(Enum):
    """Tie-break between the two selected annotators"""
    PREFER_A = "preferA"
    PREFER_B = "preferB"

    @property
    def side(self) -> str:
        return "A" if self is Preference.PREFER_A else "B"


class SentCountMode(Enum):
    """How many sentences the merged output contains"""
    MIN = "min"
    MAX = "max"


class GoldTag(Enum):
    """Diagnostic markers attached to gold tokens (MISC column)"""
    TOKEN_MISSING = "Gold=tokmissing"
    TOKEN_MISMATCH = "Gold=tokmismatch"
    LABEL_DIFF = "Gold=labeldiff"
    HEAD_CONFLICT = "Gold=headconflict"
    CONFLICT = "Gold=conflict"
    ORPHAN_HEAD = "Gold=orphanhead"

    @classmethod
    def serialize(cls, tags: Iterable[GoldTag]) -> str:
        """Join tags in canonical order, '_' when empty"""
        present = set(tags)
        ordered = [tag.value for tag in cls if tag in present]
        return "|".join(ordered) if ordered else PLACEHOLDER


class EdgeStatusKind(Enum):
    """Agreement class of a union edge across annotators"""
    SAME = "same"
    LABEL_DIFF = "labelDiff"
    PARTIAL = "partial"


@dataclass(frozen=True)
class Token:
    """Token attributes as written by one annotator"""
    id: int
    form: str = PLACEHOLDER
    upos: str = PLACEHOLDER
    xpos: str = PLACEHOLDER

    def attributes(self) -> Tuple[str, str, str]:
        return (self.form, self.upos, self.xpos)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "form": self.form,
            "upos": self.upos,
            "xpos": self.xpos
        }


@dataclass(frozen=True)
class Edge:
    """Dependency edge keyed by its dependent"""
    dep: int
    head: int
    deprel: str = PLACEHOLDER

    @property
    def is_root(self) -> bool:
        return self.head == ROOT_HEAD

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "dep": self.dep,
            "head": self.head,
            "deprel": self.deprel
        }


@dataclass(frozen=True)
class Sentence:
    """One annotator's version of a sentence"""
    tokens: Mapping[int, Token] = field(default_factory=lambda: MappingProxyType({}))

    edges: Mapping[int, Edge] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        if not isinstance(self.tokens, MappingProxyType):
            object.__setattr__(self, "tokens", MappingProxyType(dict(self.tokens)))
        if not isinstance(self.edges, MappingProxyType):
            object.__setattr__(self, "edges", MappingProxyType(dict(self.edges)))

    @classmethod
    def build(cls, tokens: Iterable[Token], edges: Iterable[Edge] = ()) -> Sentence:
        """Build a sentence from token and edge records"""
        return cls(
            tokens={t.id: t for t in tokens},
            edges={e.dep: e for e in edges}
        )

    @property
    def is_empty(self) -> bool:
        return not self.tokens and not self.edges

    def token_ids(self) -> List[int]:
        """Token ids in ascending numeric order"""
        return sorted(self.tokens)

    def get_token(self, token_id: int) -> Optional[Token]:
        return self.tokens.get(token_id)

    def get_edge(self, dep: int) -> Optional[Edge]:
        return self.edges.get(dep)

    @property
    def text(self) -> str:
        """Surface text reconstructed from token forms"""
        return " ".join(self.tokens[i].form for i in self.token_ids()).strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "text": self.text,
            "tokens": [self.tokens[i].to_dict() for i in self.token_ids()],
            "edges": [self.edges[d].to_dict() for d in sorted(self.edges)]
        }


EMPTY_SENTENCE = Sentence()


@dataclass
class Annotator:
    """One annotator's submission for a document"""
    name: str

    source_id: str

    sentences: Tuple[Sentence, ...] = ()

    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def sentence_at(self, index: int) -> Sentence:
        """Sentence at a position, empty when out of range"""
        if 0 <= index < len(self.sentences):
            return self.sentences[index]
        return EMPTY_SENTENCE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "name": self.name,
            "source_id": self.source_id,
            "sentence_count": len(self.sentences)
        }


@dataclass
class Document:
    """Annotators sharing the same positionally aligned sentences"""
    key: str

    label: str

    authors: List[Annotator] = field(default_factory=list)

    @property
    def sent_count(self) -> int:
        return max((len(a.sentences) for a in self.authors), default=0)

    def get_author(self, ref: Optional[str]) -> Optional[Annotator]:
        """Find an annotator by id, then by source file, then by display name

        A display name shared by several annotators selects none of them.
        """
        if not ref:
            return None
        for author in self.authors:
            if author.id == ref:
                return author
        for author in self.authors:
            if author.source_id == ref:
                return author
        named = self.authors_named(ref)
        return named[0] if len(named) == 1 else None

    def authors_named(self, name: str) -> List[Annotator]:
        return [author for author in self.authors if author.name == name]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "key": self.key,
            "label": self.label,
            "sent_count": self.sent_count,
            "authors": [a.to_dict() for a in self.authors]
        }


def _coerce_enum(enum_cls, value: Any, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Invalid {name} {value!r} (expected one of: {choices})") from None


_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def _coerce_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid {name} {value!r} (expected true or false)")


@dataclass(frozen=True)
class GoldOptions:
    """Policy configuration for gold generation"""
    mode: MergeMode = MergeMode.UNION_PREFER_A

    label_mode: Preference = Preference.PREFER_A

    token_mode: Preference = Preference.PREFER_A

    sent_count_mode: SentCountMode = SentCountMode.MAX

    include_comments: bool = True

    mark_misc: bool = True

    fix_orphan_heads: bool = True

    def __post_init__(self):
        object.__setattr__(self, "mode", _coerce_enum(MergeMode, self.mode, "mode"))
        object.__setattr__(self, "label_mode", _coerce_enum(Preference, self.label_mode, "label_mode"))
        object.__setattr__(self, "token_mode", _coerce_enum(Preference, self.token_mode, "token_mode"))
        object.__setattr__(
            self, "sent_count_mode",
            _coerce_enum(SentCountMode, self.sent_count_mode, "sent_count_mode")
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GoldOptions:
        """Build options from settings, CLI or API values; unknown keys are ignored"""
        known = ("mode", "label_mode", "token_mode", "sent_count_mode",
                 "include_comments", "mark_misc", "fix_orphan_heads")
        kwargs = {k: data[k] for k in known if k in data and data[k] is not None}
        for flag in ("include_comments", "mark_misc", "fix_orphan_heads"):
            if flag in kwargs:
                kwargs[flag] = _coerce_bool(kwargs[flag], flag)
        return cls(**kwargs)

    def describe(self) -> str:
        """One-line summary used in the gold_mode comment"""
        return (
            f"{self.mode.value}; label={self.label_mode.value}; "
            f"tokens={self.token_mode.value}; sentCount={self.sent_count_mode.value}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "mode": self.mode.value,
            "label_mode": self.label_mode.value,
            "token_mode": self.token_mode.value,
            "sent_count_mode": self.sent_count_mode.value,
            "include_comments": self.include_comments,
            "mark_misc": self.mark_misc,
            "fix_orphan_heads": self.fix_orphan_heads
        }


@dataclass(frozen=True)
class GoldToken:
    """Resolved token line of the gold annotation"""
    token: Token

    head: int

    deprel: str

    tags: frozenset = frozenset()

    @property
    def id(self) -> int:
        return self.token.id

    @property
    def misc(self) -> str:
        return GoldTag.serialize(self.tags)


@dataclass(frozen=True)
class GoldSentence:
    """Resolved sentence with its conflict notes"""
    index: int

    text: str

    tokens: Tuple[GoldToken, ...] = ()

    notes: Tuple[str, ...] = ()

    @property
    def sent_id(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class GoldOutput:
    """Complete result of one gold generation run"""
    author_a: str

    author_b: str

    options: GoldOptions

    sentences: Tuple[GoldSentence, ...] = ()

    @property
    def conflict_count(self) -> int:
        return sum(len(s.notes) for s in self.sentences)

    def tag_counts(self) -> Dict[str, int]:
        """Number of tokens carrying each diagnostic tag"""
        counts = {tag.value: 0 for tag in GoldTag}
        for sentence in self.sentences:
            for token in sentence.tokens:
                for tag in token.tags:
                    counts[tag.value] += 1
        return counts
