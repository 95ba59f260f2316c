"""Editor session — ties together buffer, reconciler, scheduler and engine."""
import logging
import threading
from typing import List, Optional

from outparse.api_client import AnalysisError
from outparse.buffer import TextBuffer
from outparse.config import Config
from outparse.importer import read_document
from outparse.models import AnalysisRequest, AnalysisResult, EditorialTone, Suggestion
from outparse.overlay import Run, render_overlay
from outparse.reconciler import Reconciler
from outparse.scheduler import AnalysisScheduler, SchedulerState

logger = logging.getLogger(__name__)

SAMPLE_TEXT = (
    "Had governments taken climate change seriously decades ago, the world might "
    "not be facing such severe environmental problems today. While some countries "
    "is making progress, others continues to ignore scientific warnings, which put "
    "future generations at risk. Many scientists believes that if action was took "
    "earlier, these problems will not became so serious. However, few governments "
    "has done enough to change the situation."
)


class QuotaExhausted(Exception):
    """A manual analysis was requested with no credits left."""


class EditorSession:
    """One editing surface: a buffer, its suggestions and the analysis cycle.

    All mutation paths share one lock, so typing, accept/ignore, bulk apply
    and response arrival are applied in arrival order.
    """

    def __init__(self, config: Config, engine, auto_analyze: bool = True):
        self.config = config
        self.engine = engine
        self.auto_analyze = auto_analyze
        self.credits: int = config.credits
        self.last_error: Optional[str] = None
        self._tone = EditorialTone(config.tone)
        self._active_id: Optional[str] = None
        self._lock = threading.RLock()
        # outcome of the most recent authoritative request: (id, error or None)
        self._last_outcome: Optional[tuple] = None

        self.buffer = TextBuffer(max_length=config.max_length)
        # reconciler listens first so suggestions are cleared before rescheduling
        self.reconciler = Reconciler(self.buffer, lock=self._lock)
        self.scheduler = AnalysisScheduler(
            analyze=engine.analyze,
            snapshot=lambda: self.buffer.content,
            tone=lambda: self._tone,
            on_result=self._on_result,
            on_error=self._on_error,
            delay_ms=config.debounce_ms,
            gate=lambda: self.auto_analyze,
            lock=self._lock,
        )
        self.buffer.add_listener(self._on_buffer_changed)

    # --- state ---

    @property
    def text(self) -> str:
        return self.buffer.content

    @property
    def tone(self) -> EditorialTone:
        return self._tone

    @property
    def result(self) -> Optional[AnalysisResult]:
        return self.reconciler.result

    @property
    def suggestions(self) -> List[Suggestion]:
        return list(self.reconciler.suggestions)

    @property
    def is_loading(self) -> bool:
        return self.scheduler.state in (SchedulerState.IN_FLIGHT, SchedulerState.SUPERSEDED)

    @property
    def active_suggestion(self) -> Optional[Suggestion]:
        if self._active_id is None:
            return None
        return self.reconciler.suggestions.get(self._active_id)

    # --- buffer mutation ---

    def set_text(self, text: str) -> str:
        with self._lock:
            return self.buffer.set_content(text)

    def type_text(self, start: int, end: int, inserted: str) -> str:
        with self._lock:
            return self.buffer.mutate_at(start, end, inserted)

    def load_sample(self) -> str:
        return self.set_text(SAMPLE_TEXT)

    def import_file(self, filename: str, data: bytes) -> str:
        """Load an uploaded document into the buffer (truncated to max_length)."""
        text = read_document(filename, data)
        logger.info("Imported %s (%d chars)", filename, len(text))
        return self.set_text(text)

    def clear(self):
        with self._lock:
            self.buffer.clear()
            self.reconciler.reset()
            self._active_id = None

    def leave(self):
        """Navigation away from the editing surface: stop analysis, drop suggestions."""
        with self._lock:
            self.scheduler.cancel()
            self.reconciler.reset()
            self._active_id = None
            logger.debug("Session left editing surface")

    def export_text(self) -> str:
        return self.buffer.content

    def set_tone(self, tone: EditorialTone):
        with self._lock:
            if tone == self._tone:
                return
            self._tone = tone
            logger.info("Tone changed to %s", tone.value)
            self.scheduler.notify_change(self.buffer.content)

    def _on_buffer_changed(self, content: str):
        self._active_id = None
        if not content.strip():
            self.scheduler.cancel()
            self.reconciler.reset()
            return
        self.scheduler.notify_change(content)

    # --- suggestions ---

    def apply(self, suggestion_id: str) -> Optional[Suggestion]:
        with self._lock:
            applied = self.reconciler.apply(suggestion_id)
            if applied is None:
                return None
            # a response computed before this edit no longer describes the buffer
            self.scheduler.fence()
            if self._active_id == suggestion_id:
                self._active_id = None
            return applied

    def ignore(self, suggestion_id: str) -> bool:
        with self._lock:
            if self._active_id == suggestion_id:
                self._active_id = None
            return self.reconciler.ignore(suggestion_id)

    def apply_all(self) -> bool:
        with self._lock:
            return self.reconciler.apply_all()

    def click(self, offset: int) -> Optional[Suggestion]:
        """Move the cursor to offset and activate the suggestion under it, if any."""
        with self._lock:
            self.buffer.select(offset)
            found = self.reconciler.find_at(self.buffer.cursor)
            self._active_id = found.id if found else None
            return found

    def suggestion_at_cursor(self) -> Optional[Suggestion]:
        """Suggestion under the current caret, activated like a click."""
        with self._lock:
            return self.click(self.buffer.cursor)

    def overlay(self) -> List[Run]:
        with self._lock:
            return render_overlay(self.buffer.content,
                                  self.reconciler.suggestions.visible(self.buffer.length),
                                  self._active_id)

    # --- analysis ---

    def fix_grammar(self, timeout: Optional[float] = None) -> Optional[AnalysisResult]:
        """Manual analysis trigger. Spends one credit on success.

        Returns None when there is nothing to analyse, a request is already
        running, or the response was superseded by a later edit.
        """
        with self._lock:
            if not self.buffer.content.strip() or self.is_loading:
                return None
            if self.credits <= 0:
                raise QuotaExhausted("No AI credits left! Please upgrade your plan.")
            request = self.scheduler.issue()
            if request is None:
                return None

        if not self.scheduler.wait(timeout):
            logger.warning("Manual analysis %d still running after %ss",
                           request.request_id, timeout)
            return None

        with self._lock:
            if self._last_outcome is None or self._last_outcome[0] != request.request_id:
                logger.debug("Manual analysis %d was superseded", request.request_id)
                return None
            error = self._last_outcome[1]
            if error is not None:
                if isinstance(error, AnalysisError):
                    raise error
                raise AnalysisError(str(error)) from error
            self.credits -= 1
            logger.info("Manual analysis done, %d credit(s) left", self.credits)
            return self.reconciler.result

    def speak(self, text: Optional[str] = None) -> bytes:
        synthesize = getattr(self.engine, 'synthesize_speech', None)
        if synthesize is None:
            raise AnalysisError("Speech synthesis is not available for this engine")
        return synthesize(text if text is not None else self.buffer.content)

    def _on_result(self, request: AnalysisRequest, result: AnalysisResult):
        self.reconciler.accept_result(result)
        self.last_error = None
        self._last_outcome = (request.request_id, None)
        logger.info("Accepted %d of %d suggestion(s) for request %d",
                    len(self.reconciler.suggestions), len(result.suggestions),
                    request.request_id)

    def _on_error(self, request: AnalysisRequest, error: Exception):
        # existing suggestions stay on transient failure
        self.last_error = str(error) or type(error).__name__
        self._last_outcome = (request.request_id, error)

    def to_dict(self) -> dict:
        with self._lock:
            result = self.reconciler.result
            return {
                'text': self.buffer.content,
                'length': self.buffer.length,
                'maxLength': self.buffer.max_length,
                'tone': self._tone.value,
                'credits': self.credits,
                'state': self.scheduler.state.value,
                'suggestions': self.reconciler.suggestions.to_list(),
                'activeSuggestionId': self._active_id,
                'stats': result.stats.to_dict() if result and result.stats else None,
                'overallTone': result.overall_tone if result else None,
                'lastError': self.last_error,
            }
