"""Tests for union tree traversal and rendering"""

from tap_core.models import Annotator, Document, Edge, Sentence, Token
from tap_compare.comparator import compare
from tap_compare.tree_formatter import (
    CYCLE_MARKER, iter_traversal, render_tree, token_display
)


def cyclic_document():
    """Union graph 1 -> 2 -> 1 with an extra attachment of 1 to the root"""
    tokens = [Token(1, "a", "X", "_"), Token(2, "b", "X", "_")]
    first = Sentence.build(tokens, [Edge(1, 0, "root"), Edge(2, 1, "dep")])
    second = Sentence.build(tokens, [Edge(1, 2, "dep"), Edge(2, 1, "dep")])
    return Document(key="k", label="k", authors=[
        Annotator(name="a", source_id="a", sentences=(first,)),
        Annotator(name="b", source_id="b", sentences=(second,)),
    ])


def test_render_agreeing_sentence(document):
    rendered = render_tree(document, 0)

    assert rendered.text == "\n".join([
        "📝 S1: The cat sleeps",
        "",
        "🌱 3:sleeps",
        "└─ ✅ nsubj → 2:cat",
        "  └─ ✅ det → 1:The",
    ])
    assert rendered.meta == "Authors: 2 · Edge union: 3 · missing: 0 · label-diff: 0"
    assert rendered.txt_export.endswith("\n")


def test_render_partial_edges(document):
    rendered = render_tree(document, 2)

    assert "├─ ✅ nsubj → 1:She" in rendered.lines
    assert "│ └─ ➖ 1/2  + ben:advmod  − anna → 3:fast" in rendered.lines
    assert "└─ ➖ 1/2  + anna:advmod  − ben → 3:fast" in rendered.lines
    assert CYCLE_MARKER not in rendered.text


def test_only_diff_edges_hides_agreement(document):
    assert render_tree(document, 0, only_diff_edges=True).text == "📝 S1: The cat sleeps\n\n🌱 3:sleeps"

    rendered = render_tree(document, 1, only_diff_edges=True)
    assert "  └─ ⚠️ anna:amod | ben:nmod → 1:Big" in rendered.lines
    assert "✅" not in rendered.text


def test_text_difference_header(make_document, anna_sentences):
    variant = [list(rows) for rows in anna_sentences]
    variant[0][0] = (1, "A", "DET", 2, "det")
    doc = make_document(anna=anna_sentences, ben=variant)

    lines = render_tree(doc, 0).lines
    assert lines[0] == "📝 S1: The cat sleeps  ✍️(text diff)"
    assert lines[1] == "   · anna: The cat sleeps"
    assert lines[2] == "   · ben: A cat sleeps"
    assert "  └─ ✅ det → 1:anna=The | ben=A" in lines


def test_cycle_terminates_with_single_marker():
    doc = cyclic_document()
    report = compare(doc, 0)

    steps = list(iter_traversal(report))
    assert [(s.head, s.dep, s.cycle) for s in steps] == [(1, 2, False), (2, 1, True)]

    rendered = render_tree(doc, 0)
    assert rendered.text.count(CYCLE_MARKER) == 1


def test_three_node_cycle_without_root():
    tokens = [Token(i, f"t{i}") for i in (1, 2, 3)]
    sentence = Sentence.build(tokens, [Edge(1, 3, "dep"), Edge(2, 1, "dep"), Edge(3, 2, "dep")])
    doc = Document(key="k", label="k", authors=[Annotator(name="a", source_id="a", sentences=(sentence,))])

    report = compare(doc, 0)
    assert report.roots == (1,)

    steps = list(iter_traversal(report))
    assert len(steps) == 3
    assert [s.cycle for s in steps] == [False, False, True]
    assert render_tree(doc, 0).text.count(CYCLE_MARKER) == 1


def test_cycle_marker_kept_when_edge_is_filtered():
    tokens = [Token(1, "a"), Token(2, "b")]
    sentence = Sentence.build(tokens, [Edge(1, 2, "dep"), Edge(2, 1, "dep")])
    doc = Document(key="k", label="k", authors=[Annotator(name="a", source_id="a", sentences=(sentence,))])

    rendered = render_tree(doc, 0, only_diff_edges=True)
    assert rendered.text.count(CYCLE_MARKER) == 1
    assert "✅" not in rendered.text


def test_token_display(make_document, anna_sentences, document):
    assert token_display(document, 0, 1) == "1:The"
    assert token_display(document, 0, 1, show_pos=True) == "1:The[{DET|_}]"
    assert token_display(document, 0, 9) == "9:❓"

    doc = make_document(anna=anna_sentences, short=anna_sentences[:1])
    assert token_display(doc, 1, 1) == "1:anna=Big | short=∅"
