"""Tests for multi-annotator sentence comparison"""

from tap_core.models import Annotator, Document, Edge, EdgeStatusKind, Sentence, Token
from tap_compare.comparator import (
    UnionEdge, build_sentence_index, compare, edge_status, filter_sentence_index
)


def single_author_document(*sentences):
    return Document(key="k", label="k", authors=[
        Annotator(name="solo", source_id="solo.conllu", sentences=tuple(sentences))
    ])


def test_full_agreement(document):
    report = compare(document, 0)

    assert len(report.union_edges) == 3
    assert report.missing_edges == 0
    assert report.label_diff_edges == 0
    assert report.agreed_edges == 3
    assert not report.any_text_diff
    assert not report.has_diff
    assert report.roots == (3,)
    assert report.children[3] == (2,)
    assert report.base_text == "The cat sleeps"


def test_label_difference_counts_once(document):
    report = compare(document, 1)

    assert report.label_diff_edges == 1
    assert report.missing_edges == 0
    assert report.has_diff


def test_head_conflict_yields_two_partial_edges(document):
    report = compare(document, 2)

    assert len(report.union_edges) == 4
    assert report.missing_edges == 2
    assert report.label_diff_edges == 0
    assert report.roots == (2,)
    assert report.children[2] == (1, 3)
    assert report.children[1] == (3,)


def test_union_contains_every_annotator_edge(document):
    for idx in range(document.sent_count):
        report = compare(document, idx)
        for sentence in report.per_author:
            for dep, edge in sentence.edges.items():
                assert UnionEdge(dep=dep, head=edge.head) in report.union_edges


def test_union_keeps_first_seen_order(document):
    report = compare(document, 2)

    assert report.union_edges[-1] == UnionEdge(dep=3, head=1)


def assert_union_is_partitioned(document):
    for idx in range(document.sent_count):
        report = compare(document, idx)
        kinds = [edge_status(document, idx, e.dep, e.head).kind for e in report.union_edges]

        assert kinds.count(EdgeStatusKind.PARTIAL) == report.missing_edges
        assert kinds.count(EdgeStatusKind.LABEL_DIFF) == report.label_diff_edges
        assert (
            kinds.count(EdgeStatusKind.SAME) + report.missing_edges + report.label_diff_edges
            == len(report.union_edges)
        )


def test_union_partition_two_annotators(document):
    assert_union_is_partitioned(document)


def test_union_partition_three_annotators(make_document, anna_sentences, ben_sentences):
    variant = [list(rows) for rows in ben_sentences]
    variant[0][1] = (2, "cat", "NOUN", 3, "obj")
    variant[2][0] = (1, "She", "PRON", None, "_")

    assert_union_is_partitioned(
        make_document(anna=anna_sentences, ben=ben_sentences, carl=variant)
    )


def test_union_partition_with_shorter_annotator(make_document, anna_sentences, ben_sentences):
    assert_union_is_partitioned(
        make_document(anna=anna_sentences, ben=ben_sentences, short=anna_sentences[:1])
    )


def test_label_difference_with_three_annotators(make_document, anna_sentences, ben_sentences):
    doc = make_document(anna=anna_sentences, ben=ben_sentences, carl=anna_sentences)

    report = compare(doc, 1)
    assert report.label_diff_edges == 1
    assert report.missing_edges == 0


def test_text_difference(make_document, anna_sentences):
    variant = [list(rows) for rows in anna_sentences]
    variant[0][0] = (1, "A", "DET", 2, "det")
    doc = make_document(anna=anna_sentences, ben=variant)

    report = compare(doc, 0)
    assert report.any_text_diff
    assert report.texts == ("The cat sleeps", "A cat sleeps")
    assert report.missing_edges == 0


def test_shorter_annotator_counts_as_missing(make_document, anna_sentences):
    doc = make_document(anna=anna_sentences, short=anna_sentences[:1])

    report = compare(doc, 1)
    assert report.missing_edges == 3
    assert report.texts == ("Big dogs bark", "")
    assert not report.any_text_diff


def test_out_of_range_index_is_empty(document):
    report = compare(document, 10)

    assert report.union_edges == ()
    assert report.roots == ()
    assert report.texts == ("", "")
    assert not report.has_diff


def test_root_fallback_for_cyclic_union():
    sentence = Sentence.build(
        [Token(1, "a"), Token(2, "b")],
        [Edge(1, 2, "dep"), Edge(2, 1, "dep")]
    )
    report = compare(single_author_document(sentence), 0)

    assert report.roots == (1,)


def test_edge_status_kinds(document):
    same = edge_status(document, 1, dep=2, head=3)
    assert same.kind is EdgeStatusKind.SAME
    assert same.label_text == "nsubj"

    label_diff = edge_status(document, 1, dep=1, head=2)
    assert label_diff.kind is EdgeStatusKind.LABEL_DIFF
    assert label_diff.label_text == "anna:amod | ben:nmod"

    partial = edge_status(document, 2, dep=3, head=2)
    assert partial.kind is EdgeStatusKind.PARTIAL
    assert (partial.present, partial.total) == (1, 2)
    assert partial.label_text == "1/2  + anna:advmod  − ben"


def test_sentence_index(document):
    items = build_sentence_index(document)

    assert [i.sent_id_human for i in items] == [1, 2, 3]
    assert [i.text for i in items] == ["The cat sleeps", "Big dogs bark", "She runs fast"]
    assert [i.has_diff for i in items] == [False, True, True]


def test_sentence_index_filters(document):
    items = build_sentence_index(document)

    assert [i.idx for i in filter_sentence_index(items, only_diff=True)] == [1, 2]
    assert [i.idx for i in filter_sentence_index(items, query="  DOGS ")] == [1]
    assert [i.idx for i in filter_sentence_index(items, only_diff=True, query="cat")] == []
    assert len(filter_sentence_index(items, query="")) == 3


def test_sentence_index_labels_empty_sentences():
    items = build_sentence_index(single_author_document(Sentence()))

    assert items[0].text == "(empty)"
    assert not items[0].has_diff
