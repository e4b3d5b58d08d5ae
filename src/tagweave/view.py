"""The tag graph component: simulator, surface and animation loop wired together."""

from __future__ import annotations

import logging
import random
from typing import Iterable, Optional

from tagweave.animation import AnimationLoop
from tagweave.config import GraphConfig
from tagweave.graph import TagGraph
from tagweave.layout import LayoutSimulator, NodeClickHandler
from tagweave.notes import Note
from tagweave.surface import Surface

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "No tags to visualize yet"


class TagGraphView:
    """Mountable tag graph.

    While mounted and holding at least one tag, an animation loop steps and
    renders the simulator every frame. With no tags the view draws a
    placeholder message and runs no loop. Every data change cancels the
    current loop before a new one starts.
    """

    def __init__(
        self,
        surface: Surface,
        on_node_click: Optional[NodeClickHandler] = None,
        config: Optional[GraphConfig] = None,
        rng: Optional[random.Random] = None,
        max_frames: Optional[int] = None,
    ):
        self.config = config or GraphConfig()
        self.surface = surface
        self.simulator = LayoutSimulator(self.config, on_node_click=on_node_click, rng=rng)
        self.simulator.width = surface.width
        self.simulator.height = surface.height
        self.loop = AnimationLoop(self.frame, self.config.frame_interval, max_frames=max_frames)
        self.graph = TagGraph()
        self.mounted = False

    @property
    def showing_placeholder(self) -> bool:
        return self.graph.is_empty

    def mount(self) -> None:
        """Start animating; must be called from inside a running event loop."""
        self.mounted = True
        self._restart()

    def unmount(self) -> None:
        self.loop.stop()
        self.mounted = False

    def set_notes(self, notes: Iterable[Note]) -> TagGraph:
        """Rebuild the graph from ``notes`` and restart the loop if mounted."""
        self.loop.stop()
        self.graph = self.simulator.rebuild(list(notes))
        if self.mounted:
            self._restart()
        return self.graph

    def _restart(self) -> None:
        self.loop.stop()
        if self.graph.is_empty:
            self.draw_placeholder()
            return
        self.loop.start()

    def draw_placeholder(self) -> None:
        surface = self.surface
        if not surface.available:
            return
        surface.clear(self.config.background_color)
        surface.text(
            surface.width / 2,
            surface.height / 2,
            PLACEHOLDER_TEXT,
            self.config.hover_color,
            self.config.label_size * 1.4,
        )
        surface.present()

    def frame(self) -> None:
        """One animation frame: physics step, render, present."""
        if not self.surface.available:
            self.loop.stop()
            return
        self.simulator.step()
        self.simulator.render(self.surface)
        self.surface.present()

    def on_click(self, x: float, y: float) -> None:
        self.simulator.click(x, y)

    def on_move(self, x: float, y: float) -> None:
        self.surface.set_cursor(self.simulator.hover(x, y))

    async def run(self) -> None:
        """Mount and keep animating until the loop ends or the surface closes."""
        self.mount()
        try:
            await self.loop.wait()
        finally:
            self.unmount()
