"""Build the tag co-occurrence graph from notes and their tags."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

import networkx as nx

from tagweave.notes import Note, Tag

logger = logging.getLogger(__name__)


@dataclass
class TagNode:
    """One tag in the graph, with the number of notes carrying it."""

    id: str
    name: str
    note_count: int = 0


@dataclass(frozen=True)
class TagLink:
    """An undirected co-occurrence edge; source/target are the sorted ids."""

    source: str
    target: str
    strength: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


@dataclass
class TagGraph:
    nodes: list[TagNode] = field(default_factory=list)
    links: list[TagLink] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, tag_id: str) -> TagNode | None:
        for node in self.nodes:
            if node.id == tag_id:
                return node
        return None


def link_key(a: str, b: str) -> tuple[str, str]:
    """Canonical key for the unordered pair (a, b)."""
    return (a, b) if a <= b else (b, a)


def _valid_tags(note: Note) -> list[Tag]:
    tags: list[Tag] = []
    seen: set[str] = set()
    for tag in note.tags or []:
        if tag is None or not tag.id or not tag.name:
            continue
        if tag.id in seen:
            continue
        seen.add(tag.id)
        tags.append(tag)
    return tags


def build_tag_graph(notes: Iterable[Note]) -> TagGraph:
    """Build the co-occurrence graph of the tags on ``notes``.

    Nodes are tag ids; ``note_count`` is the number of notes carrying the tag.
    An edge joins two tags that share at least one note, and its strength
    is the number of notes they share. Each unordered pair is counted once
    per note, so the strength never double counts the two directions.
    Everything is keyed by tag id: two tags with the same name but
    different ids are different nodes.
    """
    nodes: dict[str, TagNode] = {}
    pair_counts: dict[tuple[str, str], int] = {}

    for note in notes:
        tags = _valid_tags(note)
        for tag in tags:
            node = nodes.get(tag.id)
            if node is None:
                node = nodes[tag.id] = TagNode(id=tag.id, name=tag.name)
            node.note_count += 1

        for i in range(len(tags)):
            for j in range(i + 1, len(tags)):
                key = link_key(tags[i].id, tags[j].id)
                pair_counts[key] = pair_counts.get(key, 0) + 1

    links = [
        TagLink(source=a, target=b, strength=count)
        for (a, b), count in pair_counts.items()
    ]
    logger.debug("Built tag graph: %d nodes, %d links", len(nodes), len(links))
    return TagGraph(nodes=list(nodes.values()), links=links)


def to_networkx(graph: TagGraph) -> nx.Graph:
    """Convert a TagGraph to a weighted networkx graph."""
    G = nx.Graph()
    for node in graph.nodes:
        G.add_node(node.id, name=node.name, note_count=node.note_count)
    for link in graph.links:
        G.add_edge(link.source, link.target, weight=link.strength)
    return G


def strongest_links(graph: TagGraph, top_k: int = 10) -> list[TagLink]:
    """Links sorted by strength, strongest first."""
    return sorted(graph.links, key=lambda link: link.strength, reverse=True)[:top_k]
