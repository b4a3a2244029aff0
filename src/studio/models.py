"""Data classes for the whiteboard and quiz domain models."""
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_TITLE = "Untitled Whiteboard"
DEFAULT_AUTHOR = "Member"


@dataclass
class Point:
    x: float
    y: float

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}


@dataclass
class Stroke:
    """One freehand gesture in canonical (1x zoom) coordinates."""
    points: list[Point]
    stroke_width: float = 4
    stroke_color: str = "#111111"
    draw_mode: bool = True

    @property
    def eraser(self) -> bool:
        return not self.draw_mode

    def to_dict(self) -> dict:
        return {
            "paths": [p.to_dict() for p in self.points],
            "strokeWidth": self.stroke_width,
            "strokeColor": self.stroke_color,
            "drawMode": self.draw_mode,
        }


@dataclass
class Whiteboard:
    id: str
    title: str = DEFAULT_TITLE
    author: str = DEFAULT_AUTHOR
    page_drawings: dict[str, list[Stroke]] = field(default_factory=dict)
    page_order: list[str] = field(default_factory=list)
    page_labels: dict[str, str] = field(default_factory=dict)
    active_page_key: str = ""
    preview_image: str = ""
    created_at: str = ""
    updated_at: str = ""

    @property
    def paths(self) -> list[Stroke]:
        return self.page_drawings.get(self.active_page_key, [])

    @property
    def path_count(self) -> int:
        return sum(len(strokes) for strokes in self.page_drawings.values())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "paths": [s.to_dict() for s in self.paths],
            "pageDrawings": {
                key: [s.to_dict() for s in strokes]
                for key, strokes in self.page_drawings.items()
            },
            "pageOrder": list(self.page_order),
            "pageLabels": dict(self.page_labels),
            "activePageKey": self.active_page_key,
            "previewImage": self.preview_image,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "pathCount": self.path_count,
            "pageCount": len(self.page_order) or 1,
            "activePageKey": self.active_page_key,
            "previewImage": self.preview_image,
        }


@dataclass
class Question:
    id: str
    prompt: str
    type: str = "mcq"
    testament: str = "Both"
    category: str = ""
    difficulty: int = 2
    tags: list[str] = field(default_factory=list)
    choices: list[str] = field(default_factory=list)
    answer: Optional[str] = None
    answers: list[str] = field(default_factory=list)
    reference: str = ""
    explanation: str = ""

    @property
    def is_cross_reference(self) -> bool:
        return self.category == "Cross-Reference" or "cross-reference" in self.tags

    @property
    def is_motif(self) -> bool:
        return self.category == "Motif" or "motif" in self.tags or "theme" in self.tags

    @property
    def is_theme_heavy(self) -> bool:
        return self.is_cross_reference or self.is_motif or "theme" in self.tags

    def correct_answer_text(self) -> str:
        if self.type == "mcq":
            return self.answer or ""
        if self.type == "text":
            return " / ".join(self.answers)
        return "; ".join(self.answers)


@dataclass
class MasteryProfile:
    attempts: int = 0
    correct: int = 0
    strength: int = 0
    streak: int = 0
    last_result: Optional[str] = None
    last_seen: Optional[str] = None
    due_at: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "attempts": self.attempts,
            "correct": self.correct,
            "strength": self.strength,
            "streak": self.streak,
            "lastResult": self.last_result,
            "lastSeen": self.last_seen,
            "dueAt": self.due_at,
        }


@dataclass
class ThemeChain:
    """Follow-up link question shown after an answer."""
    id: str
    themes: list[str]
    prompt: str
    options: list[str]
    answer: str
    explanation: str = ""
    testament: str = "Both"
