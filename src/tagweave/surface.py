"""2D drawing surfaces the tag graph renders to."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

import matplotlib.colors as mcolors
from matplotlib.backend_bases import Event
from matplotlib.backend_tools import Cursors
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.lines import Line2D
from matplotlib.patches import Circle

logger = logging.getLogger(__name__)

# Logical pixels per inch; the figure dpi is this times the pixel ratio.
BASE_DPI = 100.0

_CSS_RGB_RE = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)$"
)

PointerHandler = Callable[[float, float], None]

_MPL_EVENTS = {
    "click": "button_press_event",
    "move": "motion_notify_event",
}


def parse_color(color: str) -> tuple[float, float, float, float]:
    """Convert a CSS-style colour string to an RGBA tuple in [0, 1].

    Accepts ``rgb(r, g, b)``, ``rgba(r, g, b, a)`` and anything matplotlib
    understands (``#rrggbb``, named colours).
    """
    match = _CSS_RGB_RE.match(color.strip())
    if match:
        r, g, b, a = match.groups()
        alpha = 1.0 if a is None else float(a)
        return (float(r) / 255.0, float(g) / 255.0, float(b) / 255.0, alpha)
    return mcolors.to_rgba(color)


class Surface(ABC):
    """A fixed-size drawing surface in logical (CSS) pixel coordinates.

    The origin is the top-left corner and y grows downward.
    """

    width: float
    height: float
    pixel_ratio: float = 1.0

    @property
    def available(self) -> bool:
        """False once the surface can no longer be drawn to."""
        return True

    @abstractmethod
    def clear(self, color: str) -> None:
        """Fill the whole surface with ``color``."""

    @abstractmethod
    def line(self, x0: float, y0: float, x1: float, y1: float, color: str, width: float) -> None:
        ...

    @abstractmethod
    def circle(self, x: float, y: float, radius: float, color: str) -> None:
        """Draw a filled circle."""

    @abstractmethod
    def text(self, x: float, y: float, label: str, color: str, size: float) -> None:
        """Draw bold ``label`` centred on (x, y); ``size`` is in logical pixels."""

    def set_cursor(self, kind: str) -> None:
        """Show the ``"pointer"`` or ``"default"`` cursor. No-op by default."""

    def present(self) -> None:
        """Flush the finished frame to the display. No-op by default."""


class CanvasSurface(Surface):
    """Surface backed by a matplotlib figure.

    The figure's logical size is ``width x height``; its dpi is scaled by
    ``pixel_ratio`` so the backing store holds ``width * pixel_ratio`` by
    ``height * pixel_ratio`` pixels while drawing coordinates stay logical.
    With ``interactive=True`` the figure is created through pyplot and can
    receive pointer events; otherwise an Agg canvas is used.
    """

    def __init__(
        self,
        width: float = 800,
        height: float = 600,
        pixel_ratio: float = 1.0,
        interactive: bool = False,
        title: str | None = None,
    ):
        self.width = float(width)
        self.height = float(height)
        self.pixel_ratio = float(pixel_ratio) or 1.0
        self.interactive = interactive
        self.cursor = "default"
        self._closed = False

        figsize = (self.width / BASE_DPI, self.height / BASE_DPI)
        dpi = BASE_DPI * self.pixel_ratio
        if interactive:
            import matplotlib.pyplot as plt

            self.figure = plt.figure(figsize=figsize, dpi=dpi)
            if title and self.figure.canvas.manager is not None:
                self.figure.canvas.manager.set_window_title(title)
            self.figure.canvas.mpl_connect("close_event", self._on_close)
        else:
            self.figure = Figure(figsize=figsize, dpi=dpi)
            FigureCanvasAgg(self.figure)

        self.axes = self.figure.add_axes((0.0, 0.0, 1.0, 1.0))
        self._reset_axes()

    @property
    def backing_size(self) -> tuple[int, int]:
        """Size of the backing store in device pixels."""
        w_in, h_in = self.figure.get_size_inches()
        dpi = self.figure.dpi
        return (int(round(w_in * dpi)), int(round(h_in * dpi)))

    @property
    def available(self) -> bool:
        return not self._closed

    def _on_close(self, event: Event) -> None:
        logger.debug("Canvas window closed")
        self._closed = True

    def _reset_axes(self) -> None:
        ax = self.axes
        ax.set_xlim(0, self.width)
        ax.set_ylim(self.height, 0)
        ax.set_axis_off()
        ax.set_autoscale_on(False)

    def clear(self, color: str) -> None:
        rgba = parse_color(color)
        self.axes.cla()
        self._reset_axes()
        self.figure.set_facecolor(rgba)

    def line(self, x0, y0, x1, y1, color, width):
        self.axes.add_line(
            Line2D([x0, x1], [y0, y1], color=parse_color(color), linewidth=width)
        )

    def circle(self, x, y, radius, color):
        self.axes.add_patch(
            Circle((x, y), radius, facecolor=parse_color(color), edgecolor="none")
        )

    def text(self, x, y, label, color, size):
        self.axes.text(
            x,
            y,
            label,
            color=parse_color(color),
            fontsize=size * 72.0 / BASE_DPI,
            fontweight="bold",
            ha="center",
            va="center",
            family="sans-serif",
        )

    def set_cursor(self, kind: str) -> None:
        self.cursor = kind
        if self.interactive:
            cursor = Cursors.HAND if kind == "pointer" else Cursors.POINTER
            self.figure.canvas.set_cursor(cursor)

    def present(self) -> None:
        if self.interactive and not self._closed:
            canvas = self.figure.canvas
            canvas.draw_idle()
            canvas.flush_events()

    def save(self, path: str | Path) -> Path:
        """Write the current frame as an image (format from the suffix)."""
        path = Path(path)
        self.figure.savefig(path, dpi=self.figure.dpi, facecolor=self.figure.get_facecolor())
        return path

    def connect(self, event: str, handler: PointerHandler) -> int:
        """Forward ``"click"`` or ``"move"`` pointer events as surface coordinates.

        Events outside the drawing area are dropped. Returns the matplotlib
        connection id.
        """
        if event not in _MPL_EVENTS:
            raise ValueError(f"Unknown pointer event: {event!r}")

        def _forward(mpl_event):
            if mpl_event.inaxes is not self.axes:
                return
            if mpl_event.xdata is None or mpl_event.ydata is None:
                return
            handler(float(mpl_event.xdata), float(mpl_event.ydata))

        return self.figure.canvas.mpl_connect(_MPL_EVENTS[event], _forward)

    def close(self) -> None:
        if self.interactive and not self._closed:
            import matplotlib.pyplot as plt

            plt.close(self.figure)
        self._closed = True
