"""Reconciler — keeps suggestion offsets valid while the buffer changes."""
import logging
import threading
from typing import Optional

from outparse.buffer import TextBuffer
from outparse.models import AnalysisResult, Suggestion
from outparse.suggestions import SuggestionSet

logger = logging.getLogger(__name__)


class Reconciler:
    """Owns the link between a TextBuffer and the current SuggestionSet.

    Any buffer mutation that does not come from apply() clears the set,
    since its offsets describe a different document.
    """

    def __init__(self, buffer: TextBuffer, lock: Optional[threading.RLock] = None):
        self.buffer = buffer
        self.suggestions = SuggestionSet()
        self._result: Optional[AnalysisResult] = None
        self._lock = lock or threading.RLock()
        buffer.add_listener(self._on_buffer_changed)

    @property
    def result(self) -> Optional[AnalysisResult]:
        return self._result

    def _on_buffer_changed(self, content: str):
        with self._lock:
            if self.suggestions:
                logger.debug("Buffer changed, discarding %d suggestion(s)", len(self.suggestions))
            self.suggestions.clear()

    def accept_result(self, result: AnalysisResult) -> SuggestionSet:
        """Install a fresh analysis result, validated against the current buffer.

        The previous set is replaced wholesale.
        """
        with self._lock:
            text = self.buffer.content
            self._result = result
            self.suggestions = SuggestionSet.validated(result.suggestions, text)
            dropped = len(result.suggestions) - len(self.suggestions)
            if dropped:
                logger.debug("Validation dropped %d of %d suggestion(s)",
                             dropped, len(result.suggestions))
            return self.suggestions

    def apply(self, suggestion_id: str) -> Optional[Suggestion]:
        """Apply one suggestion to the buffer and shift the ones after it.

        Returns the applied suggestion, or None when the id is not present.
        """
        with self._lock:
            s = self.suggestions.remove(suggestion_id)
            if s is None:
                logger.debug("apply(%s): no such suggestion", suggestion_id)
                return None

            content = self.buffer.content
            delta = len(s.replacement) - len(s.original)
            new_content = content[:s.index] + s.replacement + content[s.end:]
            self.buffer.set_content(new_content, notify=False)
            self.buffer.select(s.index + len(s.replacement))
            self.suggestions.shift_after(s.index, delta)
            if self.buffer.length < len(new_content):
                # replacement grew the text past max_length
                self.suggestions.drop_beyond(self.buffer.length)

            logger.info("Applied %s: %r -> %r at %d", s.category.value,
                        s.original, s.replacement, s.index)
            return s

    def ignore(self, suggestion_id: str) -> bool:
        """Drop a suggestion without touching the buffer. Idempotent."""
        with self._lock:
            removed = self.suggestions.remove(suggestion_id)
            if removed is None:
                logger.debug("ignore(%s): no such suggestion", suggestion_id)
                return False
            logger.info("Ignored %s: %r", removed.category.value, removed.original)
            return True

    def apply_all(self) -> bool:
        """Replace the buffer with the engine's corrected text.

        No-op unless suggestions are pending.
        """
        with self._lock:
            if not self.suggestions or self._result is None:
                logger.debug("apply_all: nothing to apply")
                return False
            count = len(self.suggestions)
            corrected = self._result.corrected_text
            # listener clears the set
            self.buffer.set_content(corrected)
            self.suggestions.clear()
            self.buffer.select(self.buffer.length)
            logger.info("Applied all %d suggestion(s)", count)
            return True

    def find_at(self, offset: int) -> Optional[Suggestion]:
        with self._lock:
            return self.suggestions.find_at(offset, self.buffer.length)

    def reset(self):
        """Forget suggestions and the last result."""
        with self._lock:
            self.suggestions.clear()
            self._result = None
