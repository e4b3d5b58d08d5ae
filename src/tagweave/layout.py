"""Force-directed layout of the tag graph.

Each tag is a node with a position and a velocity. Every frame:

1. all node pairs repel with magnitude ``repulsion / d``;
2. linked nodes attract with magnitude ``attraction * strength * d / attraction_scale``,
   a spring whose pull grows with distance;
3. velocities are damped;
4. nodes inside the boundary margin are nudged back toward the canvas;
5. positions advance by one Euler step.

Forces from steps 1 and 2 are accumulated for every node before any node is
damped or moved. Distances are floored at 1 so coincident nodes never
divide by zero.

Node state lives in a registry keyed by tag id that survives rebuilds, so
the animation continues smoothly as notes and tags change.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

import numpy as np

from tagweave.config import GraphConfig
from tagweave.graph import TagGraph, TagLink, build_tag_graph
from tagweave.notes import Note
from tagweave.surface import Surface

logger = logging.getLogger(__name__)

NodeClickHandler = Callable[[str], None]


@dataclass
class GraphNode:
    """Simulated state of one tag."""

    id: str
    name: str
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    note_count: int = 0

    def label(self, length: int = 6) -> str:
        return self.name[:length]


class LayoutSimulator:
    """Owns the node registry and runs the physics, rendering and hit tests."""

    def __init__(
        self,
        config: Optional[GraphConfig] = None,
        on_node_click: Optional[NodeClickHandler] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or GraphConfig()
        self.on_node_click = on_node_click
        self.rng = rng or random.Random(self.config.seed)
        self.nodes: dict[str, GraphNode] = {}
        self.links: list[TagLink] = []
        self.hovered: Optional[str] = None
        self.width = self.config.width
        self.height = self.config.height

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def _spawn(self, tag_id: str, name: str, note_count: int) -> GraphNode:
        cfg = self.config
        return GraphNode(
            id=tag_id,
            name=name,
            x=self.rng.uniform(cfg.spawn_x_min, cfg.spawn_x_max),
            y=self.rng.uniform(cfg.spawn_y_min, cfg.spawn_y_max),
            note_count=note_count,
        )

    def rebuild(self, data: Union[TagGraph, Iterable[Note]]) -> TagGraph:
        """Reconcile the registry with a freshly built graph.

        Nodes whose id survives keep position and velocity, new ids spawn at
        a random point with zero velocity, and vanished ids are dropped.
        Links are replaced wholesale.
        """
        graph = data if isinstance(data, TagGraph) else build_tag_graph(data)

        previous = self.nodes
        nodes: dict[str, GraphNode] = {}
        for tag in graph.nodes:
            node = previous.get(tag.id)
            if node is None:
                node = self._spawn(tag.id, tag.name, tag.note_count)
            else:
                node.name = tag.name
                node.note_count = tag.note_count
            nodes[tag.id] = node

        self.nodes = nodes
        self.links = [link for link in graph.links if link.source in nodes and link.target in nodes]
        if self.hovered not in nodes:
            self.hovered = None

        logger.info(
            "Rebuilt layout: %d nodes (%d new, %d dropped), %d links",
            len(nodes),
            sum(1 for k in nodes if k not in previous),
            sum(1 for k in previous if k not in nodes),
            len(self.links),
        )
        return graph

    def step(self) -> None:
        """Advance the simulation by one frame."""
        if not self.nodes:
            return
        cfg = self.config
        nodes = list(self.nodes.values())
        index = {node.id: i for i, node in enumerate(nodes)}

        pos = np.array([(n.x, n.y) for n in nodes], dtype=float)
        vel = np.array([(n.vx, n.vy) for n in nodes], dtype=float)

        # Repulsion: delta[i, j] points from i to j; i is pushed away from j.
        delta = pos[np.newaxis, :, :] - pos[:, np.newaxis, :]
        dist = np.maximum(np.hypot(delta[..., 0], delta[..., 1]), 1.0)
        magnitude = cfg.repulsion / dist
        np.fill_diagonal(magnitude, 0.0)
        vel -= ((magnitude / dist)[..., np.newaxis] * delta).sum(axis=1)

        # Attraction along links, applied to both endpoints.
        if self.links:
            src = np.array([index[link.source] for link in self.links])
            dst = np.array([index[link.target] for link in self.links])
            strength = np.array([link.strength for link in self.links], dtype=float)
            d = pos[dst] - pos[src]
            link_dist = np.maximum(np.hypot(d[:, 0], d[:, 1]), 1.0)
            pull = cfg.attraction * strength * link_dist / cfg.attraction_scale
            force = (pull / link_dist)[:, np.newaxis] * d
            np.add.at(vel, src, force)
            np.add.at(vel, dst, -force)

        vel *= cfg.damping

        margin, push = cfg.boundary_margin, cfg.boundary_push
        vel[pos[:, 0] < margin, 0] += push
        vel[pos[:, 0] > self.width - margin, 0] -= push
        vel[pos[:, 1] < margin, 1] += push
        vel[pos[:, 1] > self.height - margin, 1] -= push

        pos += vel

        for i, node in enumerate(nodes):
            node.x, node.y = float(pos[i, 0]), float(pos[i, 1])
            node.vx, node.vy = float(vel[i, 0]), float(vel[i, 1])

    def render(self, surface: Surface) -> None:
        """Draw the current frame: background, links, then labelled nodes."""
        if surface is None or not surface.available:
            return
        cfg = self.config
        surface.clear(cfg.background_color)

        for link in self.links:
            a = self.nodes[link.source]
            b = self.nodes[link.target]
            surface.line(a.x, a.y, b.x, b.y, cfg.link_color, cfg.link_width)

        for node in self.nodes.values():
            fill = cfg.hover_color if node.id == self.hovered else cfg.node_color
            surface.circle(node.x, node.y, cfg.node_radius, fill)
            surface.text(
                node.x, node.y, node.label(cfg.label_length), cfg.label_color, cfg.label_size
            )

    def hit_test(self, x: float, y: float) -> Optional[GraphNode]:
        """Return the first node whose centre is within the node radius of (x, y)."""
        radius = self.config.node_radius
        for node in self.nodes.values():
            if math.hypot(node.x - x, node.y - y) < radius:
                return node
        return None

    def click(self, x: float, y: float) -> Optional[GraphNode]:
        """Hit-test a click and report the full tag name to the click handler."""
        node = self.hit_test(x, y)
        if node is None:
            return None
        logger.debug("Clicked tag %r", node.name)
        if self.on_node_click is not None:
            self.on_node_click(node.name)
        return node

    def hover(self, x: float, y: float) -> str:
        """Update the hovered node; returns the cursor to show."""
        node = self.hit_test(x, y)
        self.hovered = node.id if node else None
        return "pointer" if node else "default"
