"""Scripture passage lookup against public Bible APIs."""
import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import requests

from studio.bank import BOOK_NUMBERS, resolve_book_name
from studio.config import DEFAULT_SCRIPTURE_TIMEOUT
from studio.errors import ScriptureLookupError

logger = logging.getLogger(__name__)

GETBIBLE_URL = "https://api.getbible.net/v2/{translation}/{book}/{chapter}.json"
BIBLE_API_URL = "https://bible-api.com/{reference}"

TRANSLATION_LABELS = {
    "web": "World English Bible",
    "kjv": "King James Version",
    "asv": "American Standard Version",
    "ylt": "Young's Literal Translation",
}
# bible-api.com only serves these
FALLBACK_TRANSLATIONS = ("web", "kjv")

_QUERY = re.compile(r"^(.+?)\s+(\d+)(?::(\d+)(?:\s*-\s*(\d+))?)?$")


@dataclass
class ScriptureQuery:
    original: str
    book: str
    book_number: int
    chapter: int
    verse_start: Optional[int] = None
    verse_end: Optional[int] = None

    @property
    def label(self) -> str:
        if self.verse_start is None:
            return f"{self.book} {self.chapter}"
        if self.verse_start == self.verse_end:
            return f"{self.book} {self.chapter}:{self.verse_start}"
        return f"{self.book} {self.chapter}:{self.verse_start}-{self.verse_end}"


@dataclass
class Verse:
    chapter: int
    verse: int
    text: str


@dataclass
class Passage:
    reference: str
    translation: str
    translation_code: str
    verses: list[Verse] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(v.text for v in self.verses)


def parse_scripture_query(query) -> ScriptureQuery:
    """Parse ``"John 3:16"``, ``"John 3:16-18"`` or ``"Psalm 23"``."""
    trimmed = str(query or "").strip()
    match = _QUERY.match(trimmed)
    if not match:
        raise ScriptureLookupError(
            "Use format like John 3:16 or John 3:16-18 (book, chapter, and optional verse range)."
        )
    book = resolve_book_name(match.group(1))
    if not book:
        raise ScriptureLookupError(f"Book not recognized: {match.group(1)}")

    chapter = int(match.group(2))
    if chapter < 1:
        raise ScriptureLookupError("Chapter must be a positive number.")
    verse_start = int(match.group(3)) if match.group(3) else None
    verse_end = int(match.group(4)) if match.group(4) else verse_start
    if verse_start is not None:
        if verse_start < 1:
            raise ScriptureLookupError("Verse start must be a positive number.")
        if verse_end is None or verse_end < verse_start:
            verse_end = verse_start

    return ScriptureQuery(trimmed, book, BOOK_NUMBERS[book], chapter, verse_start, verse_end)


def _chapter_payload(payload):
    if isinstance(payload, dict) and "verses" in payload:
        return payload
    if isinstance(payload, list):
        return next((entry for entry in payload if isinstance(entry, dict) and "verses" in entry), None)
    if isinstance(payload, dict):
        return next((v for v in payload.values() if isinstance(v, dict) and "verses" in v), None)
    return None


def _verse_rows(rows, fallback_chapter: int) -> list[Verse]:
    verses = []
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, dict):
            continue
        number = row.get("verse") or row.get("verse_nr") or row.get("number") or 0
        text = str(row.get("text") or row.get("content") or "").strip()
        try:
            verse = Verse(int(row.get("chapter") or fallback_chapter), int(number), text)
        except (TypeError, ValueError):
            continue
        if verse.verse > 0 and verse.text:
            verses.append(verse)
    return verses


def fetch_getbible(query: ScriptureQuery, translation: str, timeout: float) -> Passage:
    url = GETBIBLE_URL.format(translation=quote(translation), book=query.book_number, chapter=query.chapter)
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    chapter = _chapter_payload(resp.json())
    if chapter is None:
        raise ScriptureLookupError("Unexpected scripture response shape.")
    verses = _verse_rows(chapter["verses"], query.chapter)
    if query.verse_start is not None:
        verses = [v for v in verses if query.verse_start <= v.verse <= query.verse_end]
    return Passage(
        reference=query.label,
        translation=chapter.get("translation") or TRANSLATION_LABELS.get(translation, translation.upper()),
        translation_code=translation,
        verses=verses,
    )


def fetch_bible_api(query: ScriptureQuery, translation: str, timeout: float) -> Passage:
    url = BIBLE_API_URL.format(reference=quote(query.original))
    resp = requests.get(url, params={"translation": translation}, timeout=timeout)
    payload = resp.json()
    if not isinstance(payload, dict):
        raise ScriptureLookupError("Unexpected scripture response shape.")
    if not resp.ok or payload.get("error"):
        raise ScriptureLookupError(payload.get("error") or "Unable to fetch scripture from fallback API.")
    return Passage(
        reference=payload.get("reference") or query.label,
        translation=payload.get("translation_name") or TRANSLATION_LABELS.get(translation, translation.upper()),
        translation_code=translation,
        verses=_verse_rows(payload.get("verses"), query.chapter),
    )


def lookup_scripture(query, translation: str = "web", timeout: float = DEFAULT_SCRIPTURE_TIMEOUT) -> Passage:
    """Fetch a passage from getBible, falling back to bible-api.com.

    Raises ``ScriptureLookupError`` with a readable message when the
    reference is malformed or both sources fail. No retries.
    """
    parsed = query if isinstance(query, ScriptureQuery) else parse_scripture_query(query)
    try:
        return fetch_getbible(parsed, translation, timeout)
    except (requests.RequestException, ValueError, ScriptureLookupError) as primary:
        if translation not in FALLBACK_TRANSLATIONS:
            raise ScriptureLookupError(f"Lookup error: {primary}") from primary
        logger.warning("getBible lookup for %s failed (%s); trying bible-api.com", parsed.label, primary)
    try:
        return fetch_bible_api(parsed, translation, timeout)
    except (requests.RequestException, ValueError, ScriptureLookupError) as fallback:
        raise ScriptureLookupError(f"Lookup error: {fallback}") from fallback
