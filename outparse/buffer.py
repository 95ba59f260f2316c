"""Text buffer — the single source of truth for document content."""
import logging
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


def utf16_to_index(text: str, units: int) -> int:
    """Convert a UTF-16 code-unit offset into a Python string index.

    Offsets pointing into the middle of a surrogate pair snap forward to
    the next character. Offsets past the end map past the end.
    """
    if units <= 0:
        return units
    consumed = 0
    for i, ch in enumerate(text):
        if consumed >= units:
            return i
        consumed += 2 if ord(ch) > 0xFFFF else 1
    return len(text) + (units - consumed)


def index_to_utf16(text: str, index: int) -> int:
    """Convert a Python string index into a UTF-16 code-unit offset."""
    return utf16_length(text[:index])


def utf16_length(text: str) -> int:
    return len(text) + sum(1 for ch in text if ord(ch) > 0xFFFF)


class TextBuffer:
    """Holds the current document and the cursor/selection.

    Offsets are Python string indices (one per code point). max_length is
    measured in UTF-16 code units, the way a browser counts characters, and
    truncation backs off rather than split a surrogate pair. Every
    assignment goes through it.
    """

    def __init__(self, max_length: Optional[int] = None):
        self._content: str = ""
        self._max_length = max_length
        self._selection: Tuple[int, int] = (0, 0)
        self._listeners: List[Callable[[str], None]] = []

    @property
    def content(self) -> str:
        return self._content

    @property
    def length(self) -> int:
        return len(self._content)

    @property
    def units(self) -> int:
        """Length in UTF-16 code units."""
        return utf16_length(self._content)

    @property
    def max_length(self) -> Optional[int]:
        return self._max_length

    @max_length.setter
    def max_length(self, val: Optional[int]):
        self._max_length = val
        if val is not None and utf16_length(self._content) > val:
            self.set_content(self._content)

    @property
    def cursor(self) -> int:
        return self._selection[1]

    @property
    def selection(self) -> Tuple[int, int]:
        return self._selection

    def add_listener(self, callback: Callable[[str], None]):
        """Register a callback invoked with the new content after each mutation."""
        self._listeners.append(callback)

    def set_content(self, text: str, notify: bool = True) -> str:
        """Replace the whole document. Returns the (possibly truncated) content."""
        text = self._truncate(text)
        self._content = text
        self._clamp_selection()
        if notify:
            self._notify()
        return text

    def mutate_at(self, start: int, end: int, inserted: str, notify: bool = True) -> str:
        """Replace content[start:end] with inserted (typing, paste into selection)."""
        start = max(0, min(start, len(self._content)))
        end = max(start, min(end, len(self._content)))
        new = self._content[:start] + inserted + self._content[end:]
        caret = start + len(inserted)
        result = self.set_content(new, notify=notify)
        self.select(caret, caret)
        return result

    def select(self, start: int, end: Optional[int] = None):
        if end is None:
            end = start
        self._selection = (start, end)
        self._clamp_selection()

    def clear(self, notify: bool = True):
        self.set_content("", notify=notify)

    def _truncate(self, text: str) -> str:
        if self._max_length is None or utf16_length(text) <= self._max_length:
            return text
        cut = utf16_to_index(text, self._max_length)
        if index_to_utf16(text, cut) > self._max_length:
            # limit falls inside a surrogate pair
            cut -= 1
        logger.debug("Truncating content from %d to %d UTF-16 units",
                     utf16_length(text), self._max_length)
        return text[:cut]

    def _clamp_selection(self):
        n = len(self._content)
        start, end = self._selection
        start = max(0, min(start, n))
        end = max(start, min(end, n))
        self._selection = (start, end)

    def _notify(self):
        for callback in list(self._listeners):
            callback(self._content)
