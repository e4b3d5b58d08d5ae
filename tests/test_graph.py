"""Tests for co-occurrence graph construction."""

import itertools
import random

from tagweave.graph import TagLink, build_tag_graph, link_key, strongest_links, to_networkx
from tagweave.notes import Note, Tag


def _note(note_id, *tags):
    return Note(id=note_id, tags=[Tag(id=t.lower(), name=t) for t in tags])


def _links(graph):
    return {link.key: link.strength for link in graph.links}


def test_example_end_to_end(abc_notes):
    graph = build_tag_graph(abc_notes)
    counts = {n.name: n.note_count for n in graph.nodes}
    assert counts == {"A": 3, "B": 2, "C": 1}
    assert _links(graph) == {("a", "b"): 2, ("a", "c"): 1}
    assert link_key("b", "c") not in _links(graph)


def test_empty_input():
    graph = build_tag_graph([])
    assert graph.nodes == []
    assert graph.links == []
    assert graph.is_empty


def test_notes_without_tags_produce_no_nodes():
    graph = build_tag_graph([_note("1"), _note("2")])
    assert graph.is_empty


def test_single_tag_note_has_node_but_no_link():
    graph = build_tag_graph([_note("1", "solo")])
    assert [n.id for n in graph.nodes] == ["solo"]
    assert graph.links == []


def test_topology_matches_distinct_tags_and_pairs():
    rng = random.Random(3)
    names = list("ABCDEFG")
    notes = [_note(str(i), *rng.sample(names, rng.randint(0, 4))) for i in range(40)]

    graph = build_tag_graph(notes)

    expected_ids = {t.id for n in notes for t in n.tags}
    expected_pairs = {
        link_key(a.id, b.id)
        for n in notes
        for a, b in itertools.combinations(n.tags, 2)
    }
    assert {n.id for n in graph.nodes} == expected_ids
    assert set(_links(graph)) == expected_pairs
    assert len(graph.links) == len(expected_pairs)


def test_strength_equals_shared_note_count():
    notes = [_note(str(i), "x", "y", "z") for i in range(5)] + [_note("6", "x", "y")]
    links = _links(build_tag_graph(notes))
    assert links[("x", "y")] == 6
    assert links[("x", "z")] == 5
    assert links[("y", "z")] == 5


def test_note_count_per_tag():
    notes = [_note("1", "a", "b"), _note("2", "a"), _note("3", "a", "c"), _note("4", "c")]
    counts = {n.id: n.note_count for n in build_tag_graph(notes).nodes}
    assert counts == {"a": 3, "b": 1, "c": 2}


def test_links_use_sorted_ids():
    graph = build_tag_graph([_note("1", "zeta", "alpha")])
    assert graph.links == [TagLink(source="alpha", target="zeta", strength=1)]


def test_name_collisions_are_distinct_nodes():
    notes = [
        Note(id="1", tags=[Tag("t1", "work"), Tag("t2", "work")]),
        Note(id="2", tags=[Tag("t1", "work")]),
    ]
    graph = build_tag_graph(notes)
    assert {n.id: n.note_count for n in graph.nodes} == {"t1": 2, "t2": 1}
    assert _links(graph) == {("t1", "t2"): 1}


def test_malformed_tags_are_skipped():
    notes = [Note(id="1", tags=[Tag("", "no id"), Tag("t1", ""), Tag("t2", "ok")])]
    graph = build_tag_graph(notes)
    assert [n.id for n in graph.nodes] == ["t2"]


def test_duplicate_tag_on_one_note_counts_once():
    notes = [Note(id="1", tags=[Tag("a", "A"), Tag("a", "A"), Tag("b", "B")])]
    graph = build_tag_graph(notes)
    assert graph.node("a").note_count == 1
    assert _links(graph) == {("a", "b"): 1}


def test_to_networkx(abc_notes):
    G = to_networkx(build_tag_graph(abc_notes))
    assert set(G.nodes) == {"a", "b", "c"}
    assert G.nodes["a"]["note_count"] == 3
    assert G["a"]["b"]["weight"] == 2
    assert not G.has_edge("b", "c")


def test_strongest_links(abc_notes):
    top = strongest_links(build_tag_graph(abc_notes), top_k=1)
    assert [(l.source, l.target) for l in top] == [("a", "b")]
