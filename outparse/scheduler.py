"""Analysis scheduler — debounced, single-flight engine calls with request fencing.

State machine: idle -> pending -> in-flight -> idle. A buffer change while
a request is in flight does not cancel the call; it bumps the request id so
the response is discarded on arrival (superseded), and restarts the timer.
"""
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from outparse.models import AnalysisRequest, AnalysisResult, EditorialTone

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    IN_FLIGHT = 'in-flight'
    SUPERSEDED = 'superseded'


class AnalysisScheduler:
    """Debounces change events and runs at most one authoritative request.

    Callbacks are invoked on the worker thread while holding the shared
    lock, so they are serialized with every other mutation path.
    """

    def __init__(self,
                 analyze: Callable[[AnalysisRequest], AnalysisResult],
                 snapshot: Callable[[], str],
                 tone: Callable[[], EditorialTone],
                 on_result: Callable[[AnalysisRequest, AnalysisResult], None],
                 on_error: Optional[Callable[[AnalysisRequest, Exception], None]] = None,
                 delay_ms: int = 1000,
                 gate: Optional[Callable[[], bool]] = None,
                 lock: Optional[threading.RLock] = None):
        self._analyze = analyze
        self._snapshot = snapshot
        self._tone = tone
        self._on_result = on_result
        self._on_error = on_error
        self._gate = gate
        self.delay_ms = delay_ms
        self._lock = lock or threading.RLock()
        self._request_id = 0
        self._timer: Optional[threading.Timer] = None
        self._in_flight: Optional[AnalysisRequest] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def request_id(self) -> int:
        return self._request_id

    @property
    def state(self) -> SchedulerState:
        with self._lock:
            if self._in_flight is not None:
                if self._in_flight.request_id != self._request_id:
                    return SchedulerState.SUPERSEDED
                return SchedulerState.IN_FLIGHT
            if self._timer is not None:
                return SchedulerState.PENDING
            return SchedulerState.IDLE

    def notify_change(self, text: str):
        """Called after every buffer mutation that should trigger re-analysis."""
        with self._lock:
            self._cancel_timer()
            if self._in_flight is not None:
                self._request_id += 1
                logger.debug("Buffer changed during request %d, superseded",
                             self._in_flight.request_id)
            if not text.strip():
                logger.debug("Blank buffer, scheduler idle")
                return
            delay_sec = self.delay_ms / 1000.0
            self._timer = threading.Timer(delay_sec, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self):
        """Drop any pending timer and fence off the in-flight request. State is idle afterwards."""
        with self._lock:
            self._cancel_timer()
            self.fence()
            logger.debug("Scheduler cancelled")

    def fence(self):
        """Discard the in-flight response on arrival. A pending timer is left alone."""
        with self._lock:
            if self._in_flight is None:
                return
            self._request_id += 1
            logger.debug("Request %d fenced off", self._in_flight.request_id)
            self._in_flight = None

    def flush(self) -> Optional[AnalysisRequest]:
        """Fire a pending timer immediately. Returns the issued request, if any."""
        with self._lock:
            if self._timer is None:
                return None
            self._cancel_timer()
            if self._gate is not None and not self._gate():
                return None
            return self.issue()

    def issue(self) -> Optional[AnalysisRequest]:
        """Start a request for the current snapshot right now.

        Returns None when the buffer is blank. The gate only applies to
        timer-driven requests; manual triggers are gated by the caller.
        """
        with self._lock:
            self._cancel_timer()
            text = self._snapshot()
            if not text.strip():
                return None
            self._request_id += 1
            request = AnalysisRequest(text, self._tone(), self._request_id)
            self._in_flight = request
            logger.info("Issuing analysis request %d (%d chars, %s)",
                        request.request_id, len(text), request.tone.value)

            worker = threading.Thread(target=self._run, args=(request,), daemon=True)
            self._worker = worker
            worker.start()
            return request

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the most recently issued request finishes."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout)
        return not worker.is_alive()

    def _on_timer(self):
        with self._lock:
            if self._timer is None or threading.current_thread() is not self._timer:
                # cancelled or replaced after the timer thread started
                return
            self._timer = None
            if self._gate is not None and not self._gate():
                logger.debug("Engine gate closed, skipping scheduled analysis")
                return
            self.issue()

    def _run(self, request: AnalysisRequest):
        """Worker thread body: call the engine outside the lock, deliver inside it."""
        result = None
        error = None
        try:
            result = self._analyze(request)
        except Exception as e:
            error = e

        with self._lock:
            if self._in_flight is request:
                self._in_flight = None
            if request.request_id != self._request_id:
                logger.debug("Discarding stale response for request %d (current %d)",
                             request.request_id, self._request_id)
                return
            if error is not None:
                logger.warning("Analysis request %d failed: %s", request.request_id, error)
                if self._on_error is not None:
                    self._on_error(request, error)
                return
            logger.info("Analysis request %d completed", request.request_id)
            self._on_result(request, result)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
