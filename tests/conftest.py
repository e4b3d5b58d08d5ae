"""Shared fixtures."""

import matplotlib

matplotlib.use("Agg")

import pytest

from tagweave.notes import Note, Tag
from tagweave.surface import Surface


class RecordingSurface(Surface):
    """Surface that records draw calls instead of drawing."""

    def __init__(self, width=800, height=600, pixel_ratio=1.0):
        self.width = width
        self.height = height
        self.pixel_ratio = pixel_ratio
        self.calls = []
        self.cursor = "default"
        self.presented = 0
        self.open = True

    @property
    def available(self):
        return self.open

    def clear(self, color):
        self.calls = [("clear", color)]

    def line(self, x0, y0, x1, y1, color, width):
        self.calls.append(("line", x0, y0, x1, y1, color, width))

    def circle(self, x, y, radius, color):
        self.calls.append(("circle", x, y, radius, color))

    def text(self, x, y, label, color, size):
        self.calls.append(("text", x, y, label, color, size))

    def set_cursor(self, kind):
        self.cursor = kind

    def present(self):
        self.presented += 1

    def of_kind(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def surface():
    return RecordingSurface()


def _note(note_id, *tag_names, **kwargs):
    """Note whose tags have id == lower-cased name."""
    return Note(
        id=note_id,
        title=kwargs.pop("title", f"Note {note_id}"),
        tags=[Tag(id=name.lower(), name=name) for name in tag_names],
        **kwargs,
    )


@pytest.fixture
def abc_notes():
    """Two notes tagged A+B and one tagged A+C."""
    return [
        _note("1", "A", "B"),
        _note("2", "A", "B"),
        _note("3", "A", "C"),
    ]
