"""Suggestion set — validation, offset recovery and lookup."""
import bisect
import logging
from typing import Iterable, Iterator, List, Optional

from outparse.models import Suggestion

logger = logging.getLogger(__name__)


def validate_suggestions(raw: Iterable[Suggestion], text: str) -> List[Suggestion]:
    """Check each suggestion against the text it claims to describe.

    Per suggestion, in the order received:
    1. keep it if text[index:index+len(original)] == original
    2. otherwise relocate it to the first occurrence of original in text
    3. otherwise drop it (the claimed substring is not in the text at all)
    """
    cleaned = []
    for s in raw:
        if not s.original:
            logger.debug("Dropping suggestion %s: empty original", s.id)
            continue
        if 0 <= s.index and text[s.index:s.end] == s.original:
            cleaned.append(s)
            continue
        found = text.find(s.original)
        if found >= 0:
            logger.debug("Recovered suggestion %s: index %d -> %d", s.id, s.index, found)
            cleaned.append(s.moved(found))
            continue
        logger.debug("Dropping suggestion %s: %r not found in text", s.id, s.original)
    return cleaned


class SuggestionSet:
    """Suggestions ordered by ascending index.

    Overlap is not rejected on insert. Rendering and lookup resolve it with
    visible(): the earliest index wins and later overlapping spans are hidden.
    """

    def __init__(self, suggestions: Iterable[Suggestion] = ()):
        self._items: List[Suggestion] = []
        self.replace(suggestions)

    @classmethod
    def validated(cls, raw: Iterable[Suggestion], text: str) -> 'SuggestionSet':
        return cls(validate_suggestions(raw, text))

    def replace(self, suggestions: Iterable[Suggestion]):
        # stable sort keeps engine order for equal indices
        self._items = sorted(suggestions, key=lambda s: s.index)

    def clear(self):
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Suggestion]:
        return iter(list(self._items))

    def __bool__(self) -> bool:
        return bool(self._items)

    def __contains__(self, suggestion_id: str) -> bool:
        return self.get(suggestion_id) is not None

    def get(self, suggestion_id: str) -> Optional[Suggestion]:
        for s in self._items:
            if s.id == suggestion_id:
                return s
        return None

    def remove(self, suggestion_id: str) -> Optional[Suggestion]:
        """Remove and return the suggestion, or None if it is not present."""
        for i, s in enumerate(self._items):
            if s.id == suggestion_id:
                return self._items.pop(i)
        return None

    def shift_after(self, index: int, delta: int):
        """Move every suggestion starting strictly after index by delta."""
        if delta == 0:
            return
        self._items = [s.moved(s.index + delta) if s.index > index else s
                       for s in self._items]

    def drop_beyond(self, length: int) -> int:
        """Drop suggestions whose span extends past length. Returns how many were dropped."""
        kept = [s for s in self._items if s.end <= length]
        dropped = len(self._items) - len(kept)
        if dropped:
            logger.debug("Dropped %d suggestion(s) beyond length %d", dropped, length)
        self._items = kept
        return dropped

    def visible(self, length: Optional[int] = None) -> List[Suggestion]:
        """Non-overlapping subset used for rendering and lookup.

        Spans outside [0, length] are skipped when length is given.
        """
        result = []
        last_end = 0
        for s in self._items:
            if s.index < 0 or (length is not None and s.end > length):
                continue
            if result and s.index < last_end:
                continue
            result.append(s)
            last_end = s.end
        return result

    def find_at(self, offset: int, length: Optional[int] = None) -> Optional[Suggestion]:
        """Suggestion whose span contains offset, boundaries included."""
        spans = self.visible(length)
        starts = [s.index for s in spans]
        # rightmost span starting at or before offset, then its left neighbour
        # in case offset sits on that neighbour's end boundary
        pos = bisect.bisect_right(starts, offset) - 1
        for i in (pos - 1, pos):
            if 0 <= i < len(spans) and spans[i].covers(offset):
                return spans[i]
        return None

    def to_list(self) -> List[dict]:
        return [s.to_dict() for s in self._items]
