"""Tests for the animation loop and the mountable tag graph view."""

import asyncio
import random

import pytest

from tagweave.animation import AnimationLoop
from tagweave.config import GraphConfig
from tagweave.notes import Note, Tag
from tagweave.view import PLACEHOLDER_TEXT, TagGraphView


def _view(surface, **kwargs):
    return TagGraphView(
        surface,
        config=GraphConfig(fps=1000),
        rng=random.Random(1),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_loop_runs_until_max_frames():
    calls = []
    loop = AnimationLoop(lambda: calls.append(1), interval=0, max_frames=5)
    loop.start()
    await loop.wait()
    assert len(calls) == 5
    assert not loop.running


@pytest.mark.asyncio
async def test_loop_stop_cancels_pending_frame():
    calls = []
    loop = AnimationLoop(lambda: calls.append(1), interval=0)
    loop.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    loop.stop()
    seen = len(calls)
    await asyncio.sleep(0.01)
    assert len(calls) == seen
    assert not loop.running


@pytest.mark.asyncio
async def test_restart_replaces_task():
    loop = AnimationLoop(lambda: None, interval=0)
    first = loop.start()
    second = loop.start()
    await asyncio.sleep(0)
    assert first.cancelled()
    assert not second.done()
    loop.stop()


@pytest.mark.asyncio
async def test_wait_follows_restart():
    calls = []
    loop = AnimationLoop(lambda: calls.append(1), interval=0, max_frames=3)
    loop.start()
    waiter = asyncio.ensure_future(loop.wait())
    await asyncio.sleep(0)
    loop.start()
    await waiter
    assert loop.frames == 3


def test_start_requires_running_event_loop():
    with pytest.raises(RuntimeError):
        AnimationLoop(lambda: None).start()


@pytest.mark.asyncio
async def test_empty_view_shows_placeholder_and_no_loop(surface):
    view = _view(surface)
    view.set_notes([])
    view.mount()
    assert view.showing_placeholder
    assert not view.loop.running
    assert [c[3] for c in surface.of_kind("text")] == [PLACEHOLDER_TEXT]
    view.unmount()


@pytest.mark.asyncio
async def test_mounted_view_animates(surface, abc_notes):
    view = _view(surface)
    view.set_notes(abc_notes)
    view.mount()
    assert view.loop.running
    before = {k: (n.x, n.y) for k, n in view.simulator.nodes.items()}

    await asyncio.sleep(0.02)

    assert surface.presented > 0
    assert surface.of_kind("circle")
    after = {k: (n.x, n.y) for k, n in view.simulator.nodes.items()}
    assert after != before
    view.unmount()
    assert not view.loop.running


@pytest.mark.asyncio
async def test_set_notes_restarts_single_loop(surface, abc_notes):
    view = _view(surface)
    view.set_notes(abc_notes)
    view.mount()
    first = view.loop._task

    view.set_notes(abc_notes + [Note(id="4", tags=[Tag("d", "D")])])
    await asyncio.sleep(0)

    assert first.cancelled()
    assert view.loop.running
    assert "d" in view.simulator.nodes
    view.unmount()


@pytest.mark.asyncio
async def test_set_notes_to_empty_stops_loop(surface, abc_notes):
    view = _view(surface)
    view.set_notes(abc_notes)
    view.mount()
    view.set_notes([])
    assert not view.loop.running
    assert view.showing_placeholder


@pytest.mark.asyncio
async def test_unmounted_view_does_not_start_loop(surface, abc_notes):
    view = _view(surface)
    view.set_notes(abc_notes)
    assert not view.loop.running


@pytest.mark.asyncio
async def test_run_ends_when_surface_closes(surface, abc_notes):
    view = _view(surface)
    view.set_notes(abc_notes)

    async def close_soon():
        await asyncio.sleep(0.01)
        surface.open = False

    await asyncio.gather(view.run(), close_soon())
    assert not view.mounted
    assert not view.loop.running


@pytest.mark.asyncio
async def test_run_with_frame_budget(surface, abc_notes):
    view = _view(surface, max_frames=4)
    view.set_notes(abc_notes)
    await view.run()
    assert surface.presented == 4


def test_pointer_events(surface):
    clicked = []
    view = _view(surface, on_node_click=clicked.append)
    view.set_notes([Note(id="1", tags=[Tag("t", "travel")])])
    node = view.simulator.nodes["t"]

    view.on_move(node.x + 5, node.y)
    assert surface.cursor == "pointer"
    assert view.simulator.hovered == "t"

    view.on_click(node.x, node.y)
    assert clicked == ["travel"]

    view.on_move(node.x + 100, node.y + 100)
    assert surface.cursor == "default"
    assert view.simulator.hovered is None
