# heuristics.py
"""
Field heuristics for free-form link text and URLs.

Every function here is pure and total: bad or empty input yields the
documented default instead of an exception. The keyword tables are plain
ordered tuples so a rule can be added without touching the matching code.
"""
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

from config import BASE_URL

SUBTITLE_TERM_SI = "උපසිරසි"  # Sinhala for "subtitles"

# Checked in order, first hit wins
QUALITY_TOKENS = (
    "4K", "2160p", "1080p", "720p", "480p", "360p", "HD", "CAM", "TS",
    "BluRay", "WEB-DL", "HDTV", "HDRip", "WEBRip",
)
DEFAULT_QUALITY = "Standard"

FORMAT_LABELS = (
    ("mkv", "MKV"),
    ("mp4", "MP4"),
    ("avi", "AVI"),
    ("mov", "MOV"),
    ("wmv", "WMV"),
    ("flv", "FLV"),
    ("webm", "WEBM"),
    ("srt", "SRT"),
    ("sub", "SUB"),
    ("ass", "ASS"),
    ("ssa", "SSA"),
)
DEFAULT_FORMAT = "MP4"

UNKNOWN_SIZE = "Size Unknown"

# (purpose, keywords) in priority order; anything else is a plain download
LINK_TYPE_RULES = (
    ("subtitle", ("subtitle", "srt", SUBTITLE_TERM_SI)),
    ("stream", ("stream", "watch", "player")),
    ("torrent", ("torrent", "magnet")),
)
DEFAULT_LINK_TYPE = "download"

SOCIAL_SHARE_PATTERN = re.compile(r'facebook|twitter|whatsapp|telegram|instagram|share', re.IGNORECASE)
SUBTITLE_TEXT_PATTERN = re.compile(rf'subtitle|{SUBTITLE_TERM_SI}|srt', re.IGNORECASE)

_SIZE_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*(KB|MB|GB|TB)', re.IGNORECASE)
_BYTES_PATTERN = re.compile(r'(\d+(?:\.\d+)?)\s*bytes', re.IGNORECASE)
_BYTE_UNITS = (
    (1024 ** 3, "GB"),
    (1024 ** 2, "MB"),
    (1024, "KB"),
)


def _token_pattern(token: str) -> re.Pattern:
    # Extension must not be glued to other letters or digits ("mov" inside "movie" does not count)
    return re.compile(rf'(?<![a-z0-9]){re.escape(token)}(?![a-z0-9])', re.IGNORECASE)


_QUALITY_NEEDLES = tuple((token, token.lower()) for token in QUALITY_TOKENS)
_FORMAT_PATTERNS = tuple((_token_pattern(ext), label) for ext, label in FORMAT_LABELS)


def _shadowed(lowered: str, position: int, needle: str) -> bool:
    # A longer known token starting at the same place wins ("HD" at the start of "HDRip")
    return any(
        len(other) > len(needle) and lowered.startswith(other, position)
        for _token, other in _QUALITY_NEEDLES
    )


def extract_quality(text: Optional[str]) -> str:
    """
    Return the first known quality token contained in ``text`` (list order), else "Standard".

    Matching is a case-insensitive substring search, so "Avatar1080p" and
    "x265HDRip" are recognised.
    """
    if not text:
        return DEFAULT_QUALITY
    lowered = text.lower()
    for token, needle in _QUALITY_NEEDLES:
        position = lowered.find(needle)
        while position != -1:
            if not _shadowed(lowered, position, needle):
                return token
            position = lowered.find(needle, position + 1)
    return DEFAULT_QUALITY


def extract_format(url: Optional[str], text: Optional[str] = "") -> str:
    """Return the container/subtitle label of the first known extension in url + text."""
    combined = f"{url or ''} {text or ''}".lower()
    for pattern, label in _FORMAT_PATTERNS:
        if pattern.search(combined):
            return label
    return DEFAULT_FORMAT


def _format_byte_count(count: float) -> str:
    for threshold, unit in _BYTE_UNITS:
        if count > threshold:
            return f"{count / threshold:.2f} {unit}"
    return f"{count:g} Bytes"


def extract_size(text: Optional[str], context: Optional[str] = "") -> str:
    """
    Find a human readable file size in the link text or its surrounding text.

    "1.4GB" and "700 mb" are kept as written with an uppercase unit;
    a raw "123456789 bytes" count is converted to the largest fitting unit.
    """
    combined = f"{text or ''} {context or ''}"
    size_match = _SIZE_PATTERN.search(combined)
    if size_match:
        return f"{size_match.group(1)} {size_match.group(2).upper()}"

    bytes_match = _BYTES_PATTERN.search(combined)
    if bytes_match:
        return _format_byte_count(float(bytes_match.group(1)))

    return UNKNOWN_SIZE


def absolute_url(url: Optional[str]) -> Optional[str]:
    """Resolve ``url`` against the site origin; scheme-qualified URLs are returned unchanged."""
    if not url:
        return None
    url = url.strip()
    if not url:
        return None
    if url.startswith('//'):
        return f"https:{url}"
    try:
        if urlsplit(url).scheme:
            return url
        return urljoin(BASE_URL + '/', url)
    except ValueError:
        # Unparseable (e.g. broken IPv6 host); keep it as found
        return url


def detect_link_type(url: Optional[str], text: Optional[str] = "") -> str:
    combined = f"{url or ''} {text or ''}".lower()
    for link_type, keywords in LINK_TYPE_RULES:
        if any(keyword in combined for keyword in keywords):
            return link_type
    return DEFAULT_LINK_TYPE


def is_subtitle_text(text: Optional[str]) -> bool:
    return bool(text) and bool(SUBTITLE_TEXT_PATTERN.search(text))


def is_social_url(href: Optional[str]) -> bool:
    return bool(href) and bool(SOCIAL_SHARE_PATTERN.search(href))


def is_rejected_href(href: Optional[str]) -> bool:
    """Empty, fragment-only, script pseudo-URLs and social share links are never link candidates."""
    if not href or not href.strip():
        return True
    href = href.strip()
    if href.startswith('#'):
        return True
    if href.lower().startswith('javascript:'):
        return True
    return is_social_url(href)
