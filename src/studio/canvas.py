"""On-screen strokes and the drawing surface they live on.

Screen strokes are scaled by the current zoom factor. They never reach the
store: ``to_canonical`` and ``to_screen`` are the only crossings between
the two coordinate spaces.
"""
from dataclasses import dataclass
from typing import Callable, Optional

from studio.models import Point, Stroke


@dataclass(frozen=True)
class ScreenPoint:
    x: float
    y: float


@dataclass(frozen=True)
class ScreenStroke:
    points: tuple[ScreenPoint, ...]
    stroke_width: float = 4
    stroke_color: str = "#111111"
    draw_mode: bool = True


# canonical values keep 6 decimals so scale-then-unscale is stable
CANONICAL_PRECISION = 6


def _unscale(value: float, zoom: float) -> float:
    canonical = round(value / zoom, CANONICAL_PRECISION)
    return int(canonical) if float(canonical).is_integer() else canonical


def to_screen(strokes: list[Stroke], zoom: float) -> list[ScreenStroke]:
    """Scale canonical strokes up by ``zoom`` for display."""
    return [
        ScreenStroke(
            points=tuple(ScreenPoint(p.x * zoom, p.y * zoom) for p in stroke.points),
            stroke_width=stroke.stroke_width,
            stroke_color=stroke.stroke_color,
            draw_mode=stroke.draw_mode,
        )
        for stroke in strokes
    ]


def to_canonical(strokes: list[ScreenStroke], zoom: float) -> list[Stroke]:
    """Scale on-screen strokes by ``1 / zoom`` back into canonical space."""
    return [
        Stroke(
            points=[Point(_unscale(p.x, zoom), _unscale(p.y, zoom)) for p in stroke.points],
            stroke_width=stroke.stroke_width,
            stroke_color=stroke.stroke_color,
            draw_mode=stroke.draw_mode,
        )
        for stroke in strokes
    ]


class DrawingSurface:
    """In-memory drawing canvas with undo/redo and change notification.

    While ``hydrating`` is set, programmatic loads do not fire ``on_change``.
    """

    def __init__(self, on_change: Optional[Callable[[list[ScreenStroke]], None]] = None):
        self._strokes: list[ScreenStroke] = []
        self._redo: list[ScreenStroke] = []
        self.on_change = on_change
        self.hydrating = False

    def _notify(self) -> None:
        if self.hydrating or self.on_change is None:
            return
        self.on_change(self.export_paths())

    def export_paths(self) -> list[ScreenStroke]:
        return list(self._strokes)

    def load_paths(self, strokes: list[ScreenStroke]) -> None:
        self._strokes.extend(strokes)
        self._notify()

    def reset(self) -> None:
        self._strokes = []
        self._redo = []
        self._notify()

    def draw(self, stroke: ScreenStroke) -> None:
        self._strokes.append(stroke)
        self._redo = []
        self._notify()

    def undo(self) -> None:
        if self._strokes:
            self._redo.append(self._strokes.pop())
            self._notify()

    def redo(self) -> None:
        if self._redo:
            self._strokes.append(self._redo.pop())
            self._notify()

    def clear(self) -> None:
        self._strokes = []
        self._notify()
