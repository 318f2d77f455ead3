"""String helpers: normalization, artist/track splitting, video title cleanup."""

from __future__ import annotations

import re
from dataclasses import dataclass

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

# Applied in order; "midnight"/"midnite"/"mid night" all fold to "midnigh".
_FUZZY_SUBSTITUTIONS = (
    (re.compile(r"\bnite\b"), "night"),
    (re.compile(r"\bmidnight\b"), "midnigh"),
    (re.compile(r"\bmidnite\b"), "midnigh"),
    (re.compile(r"\bmid night\b"), "midnigh"),
    (re.compile(r"\btha\b"), "the"),
)

# Priority order, not position order.
SEPARATORS = (" | ", " - ", " – ", " — ", ": ")

_PLATFORM_SUFFIX = re.compile(r"\s*-\s*YouTube\s*$", re.IGNORECASE)
_BRACKETED_NOISE = re.compile(
    r"[(\[][^)\]]*?\b(?:official|music|lyric|audio|video|visuali[sz]er|animated"
    r"|remaster(?:ed)?|hd|hq|4k|1080p|720p|full\s*album)\b[^)\]]*[)\]]",
    re.IGNORECASE,
)
_HASHTAG = re.compile(r"#\S+")
_LOOSE_NOISE = re.compile(
    r"\b(?:official\s*(?:music\s*)?video|music\s*video|lyric\s*video|audio"
    r"|visuali[sz]er|full\s*album)\b",
    re.IGNORECASE,
)
_REPEATED_SPACE = re.compile(r"\s{2,}")


@dataclass(frozen=True)
class ParsedQuery:
    artist: str
    track: str


def normalize(s: str | None) -> str:
    """Lowercase, drop everything but ASCII letters/digits/whitespace, collapse spaces."""
    if not s:
        return ""
    stripped = _NON_ALNUM.sub("", s.lower())
    return _WHITESPACE.sub(" ", stripped).strip()


def fuzzy_norm(s: str | None) -> str:
    """normalize() plus whole-word spelling-variant folding ("nite" -> "night")."""
    out = normalize(s)
    for pattern, replacement in _FUZZY_SUBSTITUTIONS:
        out = pattern.sub(replacement, out)
    return _WHITESPACE.sub(" ", out).strip()


def parse_artist_track(query: str) -> ParsedQuery:
    """Split "Artist - Track" on the highest-priority separator found past index 0."""
    for sep in SEPARATORS:
        idx = query.find(sep)
        if idx > 0:
            return ParsedQuery(
                artist=query[:idx].strip(),
                track=query[idx + len(sep):].strip(),
            )
    return ParsedQuery(artist="", track=query)


def clean_title(raw: str | None) -> str:
    """Strip video-platform noise from a raw video title to get a search query.

    Bracketed spans are dropped only when their content carries a noise
    keyword, so "(feat. Someone)" or "(DJ Mix)" survive.
    """
    if not raw:
        return ""
    out = _PLATFORM_SUFFIX.sub("", raw)
    out = _BRACKETED_NOISE.sub("", out)
    out = _HASHTAG.sub("", out)
    out = _LOOSE_NOISE.sub("", out)
    out = _REPEATED_SPACE.sub(" ", out)
    return out.strip()
