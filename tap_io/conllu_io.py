"""
TAP IO CoNLL-U - Permissive CoNLL-U Reading and Gold Writing

This module reads CoNLL-U annotations into immutable sentence records and
writes adjudicated (gold) annotations back in the same column layout.

The reader is permissive: comment lines, multi-word token ranges, empty
nodes and lines with too few columns are dropped and counted.

University of Athens - Nikolaos Lavidas
"""

from __future__ import annotations
import re
import logging
from pathlib import Path
from typing import Dict, List, Union, Iterator

from tap_core.models import (
    Token, Edge, Sentence, GoldOutput, GoldSentence, GoldToken,
    PLACEHOLDER
)

logger = logging.getLogger(__name__)


CONLLU_FIELD_COUNT = 10
CONLLU_MIN_FIELD_COUNT = 8
CONLLU_FIELDS = ["ID", "FORM", "LEMMA", "UPOS", "XPOS", "FEATS", "HEAD", "DEPREL", "DEPS", "MISC"]

COMMENT_MARKER = "#"
MAX_NOTES_PER_SENTENCE = 30

_LINE_SPLIT = re.compile(r"\r?\n")
_PLAIN_INT = re.compile(r"[0-9]+")


def _is_plain_int(value: str) -> bool:
    return _PLAIN_INT.fullmatch(value) is not None


class CoNLLUReader:
    """Reader for CoNLL-U format"""

    def __init__(self):
        self._line_number = 0
        self.skipped_lines = 0

    def read_file(self, file_path: Union[str, Path], encoding: str = "utf-8") -> List[Sentence]:
        """Read CoNLL-U file and return its sentences"""
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        with open(file_path, "r", encoding=encoding, errors="replace") as f:
            content = f.read()

        return self.read_string(content)

    def read_string(self, conllu_string: str) -> List[Sentence]:
        """Read CoNLL-U string and return its sentences"""
        self._line_number = 0
        self.skipped_lines = 0

        sentences = list(self._iter_sentences(conllu_string))

        if self.skipped_lines:
            logger.debug(f"Skipped {self.skipped_lines} unusable lines")

        return sentences

    def _iter_sentences(self, conllu_string: str) -> Iterator[Sentence]:
        """Iterate over sentences in CoNLL-U string"""
        tokens: Dict[int, Token] = {}
        edges: Dict[int, Edge] = {}

        for line in _LINE_SPLIT.split(conllu_string):
            self._line_number += 1
            line = line.rstrip("\r")

            if line.strip() == "":
                if tokens or edges:
                    yield Sentence(tokens=tokens, edges=edges)
                    tokens, edges = {}, {}
                continue

            if line.startswith(COMMENT_MARKER):
                continue

            self._parse_token_line(line, tokens, edges)

        if tokens or edges:
            yield Sentence(tokens=tokens, edges=edges)

    def _parse_token_line(self, line: str, tokens: Dict[int, Token], edges: Dict[int, Edge]):
        """Parse a single token line into the pending sentence"""
        fields = line.split("\t")

        if len(fields) < CONLLU_MIN_FIELD_COUNT:
            self._skip(f"expected at least {CONLLU_MIN_FIELD_COUNT} columns, got {len(fields)}")
            return

        token_id_str = fields[0]
        if "-" in token_id_str or "." in token_id_str:
            self._skip(f"multi-word token or empty node '{token_id_str}'")
            return
        if not _is_plain_int(token_id_str):
            self._skip(f"invalid token ID '{token_id_str}'")
            return

        while len(fields) < CONLLU_FIELD_COUNT:
            fields.append(PLACEHOLDER)

        token_id = int(token_id_str)
        tokens[token_id] = Token(
            id=token_id,
            form=fields[1],
            upos=fields[3],
            xpos=fields[4]
        )

        head_str = fields[6]
        if _is_plain_int(head_str):
            edges[token_id] = Edge(dep=token_id, head=int(head_str), deprel=fields[7])

    def _skip(self, reason: str):
        self.skipped_lines += 1
        logger.debug(f"Line {self._line_number}: skipped ({reason})")


class CoNLLUWriter:
    """Writer for gold CoNLL-U output"""

    def __init__(
        self,
        include_comments: bool = True,
        mark_misc: bool = True,
        max_notes: int = MAX_NOTES_PER_SENTENCE
    ):
        self.include_comments = include_comments
        self.mark_misc = mark_misc
        self.max_notes = max_notes

    def write_file(self, output: GoldOutput, file_path: Union[str, Path]):
        """Write gold output to CoNLL-U file"""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(self.write_string(output))

    def write_string(self, output: GoldOutput) -> str:
        """Write gold output to CoNLL-U string"""
        lines: List[str] = []

        for sentence in output.sentences:
            lines.extend(self._write_sentence(sentence, output))
            lines.append("")

        return "\n".join(lines)

    def _write_sentence(self, sentence: GoldSentence, output: GoldOutput) -> List[str]:
        """Write sentence to list of lines"""
        lines: List[str] = []

        if self.include_comments:
            lines.append(f"# sent_id = {sentence.sent_id}")
            lines.append(f"# text = {sentence.text}")
            lines.append(f"# gold_from = {output.author_a} | {output.author_b}")
            lines.append(f"# gold_mode = {output.options.describe()}")

        for token in sentence.tokens:
            lines.append(self._write_token_line(token))

        if self.include_comments and sentence.notes:
            notes = sentence.notes
            lines.append(f"# gold_conflicts = {len(notes)}")
            for note in notes[:self.max_notes]:
                lines.append(f"# gold_note = {note}")
            if len(notes) > self.max_notes:
                lines.append(f"# gold_note = ... ({len(notes) - self.max_notes} more)")

        return lines

    def _write_token_line(self, gold_token: GoldToken) -> str:
        """Write single token line"""
        token = gold_token.token
        misc = gold_token.misc if self.mark_misc else PLACEHOLDER

        fields = [
            str(token.id),
            token.form or PLACEHOLDER,
            PLACEHOLDER,
            token.upos or PLACEHOLDER,
            token.xpos or PLACEHOLDER,
            PLACEHOLDER,
            str(gold_token.head),
            gold_token.deprel or PLACEHOLDER,
            PLACEHOLDER,
            misc
        ]
        return "\t".join(fields)


def parse_conllu_file(file_path: Union[str, Path], encoding: str = "utf-8") -> List[Sentence]:
    """Parse CoNLL-U file and return its sentences"""
    reader = CoNLLUReader()
    return reader.read_file(file_path, encoding=encoding)


def parse_conllu_string(conllu_string: str) -> List[Sentence]:
    """Parse CoNLL-U string and return its sentences"""
    reader = CoNLLUReader()
    return reader.read_string(conllu_string)


def write_gold_string(output: GoldOutput) -> str:
    """Write gold output to CoNLL-U string using its own diagnostic options"""
    writer = CoNLLUWriter(
        include_comments=output.options.include_comments,
        mark_misc=output.options.mark_misc
    )
    return writer.write_string(output)


def write_gold_file(output: GoldOutput, file_path: Union[str, Path]):
    """Write gold output to CoNLL-U file using its own diagnostic options"""
    writer = CoNLLUWriter(
        include_comments=output.options.include_comments,
        mark_misc=output.options.mark_misc
    )
    writer.write_file(output, file_path)
