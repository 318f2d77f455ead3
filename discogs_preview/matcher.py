from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from discogs_preview.text import fuzzy_norm, normalize

MIN_NEEDLE_LEN = 2
SHORT_NEEDLE_MAX = 3  # at or below this length only an exact title match counts


def words_contain(haystack: str, needle: str) -> bool:
    """True if every word of needle appears as a whole word in haystack."""
    hay_words = set(haystack.split(" "))
    return all(w in hay_words for w in needle.split(" "))


def _either_contains(a: str, b: str) -> bool:
    return words_contain(a, b) or words_contain(b, a)


def tracklist_contains(
    tracklist: Iterable[Mapping] | None, track_name: str | None
) -> bool:
    """Check whether a Discogs tracklist contains a track.

    Short names (2-3 chars, e.g. "Ok") must equal a title exactly; longer
    names match on whole-word containment either way, plain then fuzzy, so
    "Blue Monday" matches "Blue Monday Remix" but "Fire" never matches
    "Firestarter".
    """
    if not tracklist or not track_name:
        return False
    needle = normalize(track_name)
    if len(needle) < MIN_NEEDLE_LEN:
        return False
    is_short = len(needle) <= SHORT_NEEDLE_MAX
    needle_fuzzy = fuzzy_norm(track_name)

    for entry in tracklist:
        kind = entry.get("type_")
        if kind and kind != "track":
            continue
        title = normalize(entry.get("title"))
        if not title:
            continue
        if is_short:
            if title == needle:
                return True
            continue
        if _either_contains(title, needle):
            return True
        if _either_contains(fuzzy_norm(entry.get("title")), needle_fuzzy):
            return True
    return False


@dataclass(frozen=True)
class TrackFilter:
    """Release acceptance policy for a search.

    ``TrackFilter("Ok")`` requires the track on the tracklist;
    ``TrackFilter.accept_any()`` is the explicit no-track mode used when
    falling back to the top discovery result.
    """

    track: str | None

    @classmethod
    def accept_any(cls) -> TrackFilter:
        return cls(track=None)

    @property
    def accepts_everything(self) -> bool:
        return self.track is None

    def accepts(self, tracklist: Iterable[Mapping] | None) -> bool:
        if self.accepts_everything:
            return True
        return tracklist_contains(tracklist, self.track)
