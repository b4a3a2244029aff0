"""Input sanitization primitives.

Every function here is total: bad input is replaced by a safe default,
nothing raises. Callers at the store boundary rely on that so a corrupt
document heals itself on the next read.
"""
import math
import re
from datetime import datetime
from urllib.parse import urlsplit

DEFAULT_STROKE_COLOR = "#111111"
MAX_PREVIEW_LENGTH = 650_000

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{3,8}$")
_RGB_COLOR = re.compile(r"^rgba?\([^)]{1,24}\)$")
_DATA_URL_IMAGE = re.compile(r"^data:image/(png|jpeg);base64,[A-Za-z0-9+/=]+$", re.IGNORECASE)
_PAGE_KEY_UNSAFE = re.compile(r"[^a-zA-Z0-9:_-]")


def sanitize_string(value, max_length: int = 600) -> str:
    if value is None or value is False:
        return ""
    text = str(value).strip()
    return text[:max_length]


def sanitize_date(value) -> str:
    """Return an ISO ``YYYY-MM-DD`` date or an empty string."""
    text = sanitize_string(value, 20)
    if not text:
        return ""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    return parsed.date().isoformat()


def sanitize_url(value) -> str:
    """Accept only absolute http(s) URLs."""
    text = sanitize_string(value, 500)
    if not text:
        return ""
    try:
        parsed = urlsplit(text)
        # out-of-range ports raise ValueError
        parsed.port
    except ValueError:
        return ""
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return ""
    if any(ch.isspace() for ch in text):
        return ""
    return parsed.geturl()


def sanitize_number(value, fallback: float, minimum: float, maximum: float) -> float:
    if value is None or isinstance(value, (list, dict)):
        return fallback
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(numeric):
        return fallback
    clamped = min(maximum, max(minimum, numeric))
    # keep integers as integers so stored JSON round-trips unchanged
    if isinstance(value, int) and not isinstance(value, bool) and float(clamped).is_integer():
        return int(clamped)
    return clamped


def sanitize_page_key(value) -> str:
    text = sanitize_string(value, 80)
    if not text:
        return ""
    return _PAGE_KEY_UNSAFE.sub("-", text)


def sanitize_stroke_color(value) -> str:
    color = sanitize_string(value, 24)
    if not color:
        return DEFAULT_STROKE_COLOR
    if _HEX_COLOR.match(color) or _RGB_COLOR.match(color):
        return color
    return DEFAULT_STROKE_COLOR


def sanitize_data_url_image(value) -> str:
    if not isinstance(value, str):
        return ""
    image = value.strip()
    if not image or len(image) > MAX_PREVIEW_LENGTH:
        return ""
    if not _DATA_URL_IMAGE.match(image):
        return ""
    return image
