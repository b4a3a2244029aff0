"""Multi-page whiteboard editing over a single drawing surface.

``BoardEditor`` owns the in-memory document (canonical coordinates) and one
``DrawingSurface`` showing the active page at the current zoom. Every
transition follows the same order: commit the surface into the active page
slot, change state, then hydrate the surface from the new page slot.
A commit is skipped only when the surface has not changed since it was
hydrated, so pages that are merely viewed keep their stored coordinates
exactly.
"""
import json
import logging
import time
from pathlib import Path
from typing import Optional

from studio.canvas import DrawingSurface, ScreenStroke, to_canonical, to_screen
from studio.errors import PdfImportError, ValidationError
from studio.models import Whiteboard
from studio.pdf_pages import render_pdf_pages
from studio.render import png_bytes, preview_data_url, render_strokes
from studio.sanitize import sanitize_string
from studio.schema import parse_whiteboard
from studio.store import utc_now
from studio.whiteboards import create_whiteboard, save_whiteboard

logger = logging.getLogger(__name__)

ZOOM_LADDER = (0.75, 1.0, 1.25, 1.5, 2.0, 2.5)
DEFAULT_ZOOM = 1.0


class BoardEditor:
    def __init__(self, document=None, surface: Optional[DrawingSurface] = None):
        self.surface = surface or DrawingSurface()
        self.surface.on_change = self._on_surface_change
        self.zoom = DEFAULT_ZOOM
        self.export_with_background = False
        # PDF page rasters, keyed by page; never persisted
        self.backgrounds: dict[str, bytes] = {}
        self.status_message = ""
        self.dirty = False
        self._surface_changed = False
        # screen stroke id -> (screen stroke, stored stroke) for the hydrated page
        self._hydrated: dict = {}
        self.document: Whiteboard = parse_whiteboard(document or {})
        self._hydrate()

    # -- surface plumbing -------------------------------------------------

    def _on_surface_change(self, strokes: list[ScreenStroke]) -> None:
        self._surface_changed = True
        self.dirty = True

    def _hydrate(self) -> None:
        page = self.document.page_drawings.get(self.document.active_page_key, [])
        screen = to_screen(page, self.zoom)
        self._hydrated = {id(shown): (shown, stored) for shown, stored in zip(screen, page)}
        self.surface.hydrating = True
        try:
            self.surface.reset()
            self.surface.load_paths(screen)
        finally:
            self.surface.hydrating = False
        self._surface_changed = False

    def commit(self) -> None:
        """Store the surface's strokes, in canonical coordinates, in the active page."""
        if not self._surface_changed:
            return
        shown_strokes = self.surface.export_paths()
        strokes = []
        for shown in shown_strokes:
            # strokes loaded from the page keep their stored values
            known = self._hydrated.get(id(shown))
            if known is not None and known[0] is shown:
                strokes.append(known[1])
            else:
                strokes.extend(to_canonical([shown], self.zoom))
        self.document.page_drawings[self.document.active_page_key] = strokes
        self._hydrated.update({id(shown): (shown, stored) for shown, stored in zip(shown_strokes, strokes)})
        self._surface_changed = False

    # -- document ---------------------------------------------------------

    def load_document(self, document) -> None:
        self.document = parse_whiteboard(document)
        self.backgrounds = {}
        self.dirty = False
        self._hydrate()

    @property
    def active_page_key(self) -> str:
        return self.document.active_page_key

    @property
    def page_order(self) -> list[str]:
        return list(self.document.page_order)

    def page_strokes(self, key: Optional[str] = None):
        self.commit()
        return list(self.document.page_drawings.get(key or self.active_page_key, []))

    def switch_page(self, key: str) -> None:
        if key not in self.document.page_order:
            raise ValidationError(f"Unknown page: {key}")
        if key == self.document.active_page_key:
            return
        self.commit()
        self.document.active_page_key = key
        self.dirty = True
        self._hydrate()

    def _unique_key(self, base: str) -> str:
        key, n = base, 2
        while key in self.document.page_drawings:
            key = f"{base}-{n}"
            n += 1
        return key

    def add_page(self, label: Optional[str] = None) -> str:
        self.commit()
        position = len(self.document.page_order) + 1
        key = self._unique_key(f"page-{position}")
        self.document.page_drawings[key] = []
        self.document.page_order.append(key)
        self.document.page_labels[key] = sanitize_string(label, 120) or f"Page {position}"
        self.document.active_page_key = key
        self.dirty = True
        self._hydrate()
        return key

    # -- zoom -------------------------------------------------------------

    def set_zoom(self, zoom: float) -> None:
        if zoom not in ZOOM_LADDER:
            raise ValidationError(f"Unsupported zoom level: {zoom}")
        if zoom == self.zoom:
            return
        self.commit()
        self.zoom = zoom
        self._hydrate()

    def step_zoom(self, direction: int) -> float:
        idx = ZOOM_LADDER.index(self.zoom)
        step = 1 if direction > 0 else -1
        idx = min(len(ZOOM_LADDER) - 1, max(0, idx + step))
        self.set_zoom(ZOOM_LADDER[idx])
        return self.zoom

    def fit_zoom(self) -> float:
        self.set_zoom(DEFAULT_ZOOM)
        return self.zoom

    # -- PDF pages --------------------------------------------------------

    def import_pdf(self, pdf_bytes: bytes, filename: str = "document.pdf") -> list[str]:
        """Append one page per PDF page; all pages are added or none are."""
        try:
            images = render_pdf_pages(pdf_bytes)
        except PdfImportError as exc:
            logger.warning("PDF import of %s failed: %s", filename, exc)
            self.status_message = f"Could not import {filename}. {exc}"
            return []

        self.commit()
        stem = Path(filename).stem.strip() or "PDF"
        stamp = format(int(time.time() * 1000), "x")
        keys = []
        for number, image in enumerate(images, 1):
            key = self._unique_key(f"pdf-{stamp}-{number}")
            self.document.page_drawings[key] = []
            self.document.page_order.append(key)
            self.document.page_labels[key] = sanitize_string(f"{stem} p{number}", 120)
            self.backgrounds[key] = image
            keys.append(key)

        self.document.active_page_key = keys[0]
        self.dirty = True
        self._hydrate()
        self.status_message = f"Imported {len(keys)} pages from {filename}."
        return keys

    # -- export / save ----------------------------------------------------

    def render_active_page(self, with_background: Optional[bool] = None):
        if with_background is None:
            with_background = self.export_with_background
        background = self.backgrounds.get(self.active_page_key) if with_background else None
        return render_strokes(self.page_strokes(), background)

    def export_png(self, with_background: Optional[bool] = None) -> bytes:
        return png_bytes(self.render_active_page(with_background))

    def export_json(self) -> str:
        """Full multi-page backup in canonical coordinates, preview included."""
        self.commit()
        payload = self.document.to_dict()
        payload["exportedAt"] = utc_now()
        return json.dumps(payload, indent=2)

    def to_payload(self, include_preview: bool = True) -> dict:
        self.commit()
        payload = self.document.to_dict()
        if include_preview:
            payload["previewImage"] = preview_data_url(self.render_active_page(False))
        return payload

    def save(self, db_path: str) -> dict:
        """Create or update the document in the store."""
        payload = self.to_payload()
        fields = {
            "title": payload["title"],
            "author": payload["author"],
            "page_drawings": payload["pageDrawings"],
            "page_order": payload["pageOrder"],
            "page_labels": payload["pageLabels"],
            "active_page_key": payload["activePageKey"],
            "preview_image": payload["previewImage"],
        }
        if self.document.id:
            result = save_whiteboard(db_path, self.document.id, **fields)
        else:
            result = create_whiteboard(db_path, **fields)
        stored = result["whiteboard"]
        self.document.id = stored.id
        self.document.created_at = stored.created_at
        self.document.updated_at = stored.updated_at
        self.document.preview_image = stored.preview_image
        self.dirty = False
        self.status_message = "Whiteboard saved to database."
        return result
