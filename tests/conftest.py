import logging
import sys
from pathlib import Path

import pytest

# Make the flat-layout packages importable without installation
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from tap_core.config_runtime import RuntimeConfig  # noqa: E402
from tap_core.logging_monitoring import ConsoleFormatter, StructuredFormatter  # noqa: E402
from tap_io.corpus_loader import load_texts  # noqa: E402


ANNA_SENTENCES = [
    [(1, "The", "DET", 2, "det"), (2, "cat", "NOUN", 3, "nsubj"), (3, "sleeps", "VERB", 0, "root")],
    [(1, "Big", "ADJ", 2, "amod"), (2, "dogs", "NOUN", 3, "nsubj"), (3, "bark", "VERB", 0, "root")],
    [(1, "She", "PRON", 2, "nsubj"), (2, "runs", "VERB", 0, "root"), (3, "fast", "ADV", 2, "advmod")],
]

BEN_SENTENCES = [
    [(1, "The", "DET", 2, "det"), (2, "cat", "NOUN", 3, "nsubj"), (3, "sleeps", "VERB", 0, "root")],
    [(1, "Big", "ADJ", 2, "nmod"), (2, "dogs", "NOUN", 3, "nsubj"), (3, "bark", "VERB", 0, "root")],
    [(1, "She", "PRON", 2, "nsubj"), (2, "runs", "VERB", 0, "root"), (3, "fast", "ADV", 1, "advmod")],
]


def to_conllu(sentences):
    """Render rows of (id, form, upos, head, deprel) as CoNLL-U; head None becomes '_'"""
    blocks = []
    for n, rows in enumerate(sentences, start=1):
        lines = [f"# sent_id = {n}"]
        for token_id, form, upos, head, deprel in rows:
            head_field = "_" if head is None else str(head)
            lines.append("\t".join([
                str(token_id), form, form.lower(), upos, "_", "_", head_field, deprel, "_", "_"
            ]))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


@pytest.fixture(autouse=True)
def isolated_runtime(tmp_path, monkeypatch):
    """Fresh settings under a temporary base directory, root logger restored afterwards"""
    monkeypatch.setenv("TAP_BASE_DIR", str(tmp_path))
    monkeypatch.delenv("TAP_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TAP_SERVER_HOST", raising=False)
    monkeypatch.delenv("TAP_SERVER_PORT", raising=False)
    RuntimeConfig.reset()

    root = logging.getLogger()
    saved_level = root.level

    yield

    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler) or isinstance(
            handler.formatter, (ConsoleFormatter, StructuredFormatter)
        ):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(saved_level)
    RuntimeConfig.reset()


@pytest.fixture
def make_conllu():
    """Factory rendering sentence rows as CoNLL-U text"""
    return to_conllu


@pytest.fixture
def anna_sentences():
    return [list(rows) for rows in ANNA_SENTENCES]


@pytest.fixture
def ben_sentences():
    return [list(rows) for rows in BEN_SENTENCES]


@pytest.fixture
def anna_text():
    return to_conllu(ANNA_SENTENCES)


@pytest.fixture
def ben_text():
    return to_conllu(BEN_SENTENCES)


@pytest.fixture
def make_document():
    """Factory building a single document from name=rows keyword arguments"""
    def _make(**annotators):
        named = [(f"{name}.conllu", to_conllu(rows)) for name, rows in annotators.items()]
        return load_texts(named)["single"]
    return _make


@pytest.fixture
def document(make_document):
    """Two annotators: agreement, a label difference and a head conflict"""
    return make_document(anna=ANNA_SENTENCES, ben=BEN_SENTENCES)


@pytest.fixture
def annotator_files(tmp_path, anna_text, ben_text):
    """The two sample annotations written to disk"""
    anna = tmp_path / "anna.conllu"
    ben = tmp_path / "ben.conllu"
    anna.write_text(anna_text, encoding="utf-8")
    ben.write_text(ben_text, encoding="utf-8")
    return anna, ben
