"""Session tests — the full edit / analyse / accept cycle without a network.

FakeEngine returns canned results; its gate Event lets a test hold a
request in flight while the buffer changes underneath it.
"""
import sys
import os
import threading
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import pytest

from outparse.api_client import AnalysisError
from outparse.config import Config
from outparse.models import AnalysisResult, EditorialTone, Suggestion, SuggestionCategory
from outparse.scheduler import SchedulerState
from outparse.session import SAMPLE_TEXT, EditorSession, QuotaExhausted


class FakeEngine:
    def __init__(self):
        self.requests = []
        self.fail = None
        self.gate = None

    def analyze(self, request):
        self.requests.append(request)
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail is not None:
            raise self.fail
        text = request.snapshot_text
        suggestions = []
        pos = text.find("wrld")
        if pos >= 0:
            # deliberately wrong index, recovered by validation
            suggestions.append(Suggestion("s1", "wrld", "world", SuggestionCategory.GRAMMAR,
                                          "Spelling.", pos + 100))
        suggestions.append(Suggestion("s2", "zzz", "", SuggestionCategory.STYLE, "", 0))
        return AnalysisResult(corrected_text=text.replace("wrld", "world"),
                              suggestions=suggestions, overall_tone="Neutral")


def make_session(tmp_path, **overrides):
    config = Config(tmp_path / "config.json")
    config.override("debounce_ms", 10000)
    for key, value in overrides.items():
        config.override(key, value)
    engine = FakeEngine()
    return EditorSession(config, engine), engine


def analysed_session(tmp_path, text="Hello wrld", **overrides):
    session, engine = make_session(tmp_path, **overrides)
    session.set_text(text)
    session.scheduler.flush()
    session.scheduler.wait(5)
    return session, engine


def test_debounced_analysis_validates_suggestions(tmp_path):
    session, engine = analysed_session(tmp_path)
    assert [s.id for s in session.suggestions] == ["s1"]
    assert session.suggestions[0].index == 6
    assert session.scheduler.state is SchedulerState.IDLE
    session.leave()


def test_edit_clears_suggestions_and_reschedules(tmp_path):
    session, engine = analysed_session(tmp_path)
    session.type_text(10, 10, "!")
    assert session.suggestions == []
    assert session.scheduler.state is SchedulerState.PENDING
    session.leave()


def test_accept_updates_buffer_without_new_request(tmp_path):
    session, engine = analysed_session(tmp_path)
    count = len(engine.requests)
    session.apply("s1")
    assert session.text == "Hello world"
    assert session.suggestions == []
    assert session.scheduler.state is SchedulerState.IDLE
    assert len(engine.requests) == count


def test_ignore_twice(tmp_path):
    session, engine = analysed_session(tmp_path)
    assert session.ignore("s1") is True
    assert session.ignore("s1") is False
    assert session.text == "Hello wrld"


def test_apply_all(tmp_path):
    session, engine = analysed_session(tmp_path, text="wrld wrld")
    assert session.apply_all() is True
    assert session.text == "world world"
    assert session.suggestions == []
    session.leave()


def test_stale_response_does_not_touch_suggestions(tmp_path):
    session, engine = make_session(tmp_path)
    engine.gate = threading.Event()
    session.set_text("Hello wrld")
    req_a = session.scheduler.flush()
    session.type_text(0, 0, ">> ")
    engine.gate.set()
    assert session.scheduler.wait(5)
    assert session.result is None
    assert session.suggestions == []
    assert session.scheduler.request_id > req_a.request_id
    session.leave()


def test_failure_keeps_existing_suggestions(tmp_path):
    session, engine = analysed_session(tmp_path)
    engine.fail = AnalysisError("Analysis Error")
    session.scheduler.issue()
    session.scheduler.wait(5)
    assert [s.id for s in session.suggestions] == ["s1"]
    assert session.last_error == "Analysis Error"


def test_blank_text_cancels_and_clears(tmp_path):
    session, engine = analysed_session(tmp_path)
    session.set_text("   ")
    assert session.scheduler.state is SchedulerState.IDLE
    assert session.suggestions == []
    assert session.result is None


def test_leave_fences_in_flight_request(tmp_path):
    session, engine = make_session(tmp_path)
    engine.gate = threading.Event()
    session.set_text("Hello wrld")
    session.scheduler.flush()
    session.leave()
    engine.gate.set()
    session.scheduler.wait(5)
    assert session.result is None
    assert session.scheduler.state is SchedulerState.IDLE


def test_fix_grammar_spends_credit(tmp_path):
    session, engine = make_session(tmp_path, credits=1)
    session.set_text("Hello wrld")
    result = session.fix_grammar(timeout=5)
    assert result is not None
    assert session.credits == 0
    assert [s.id for s in session.suggestions] == ["s1"]
    session.set_text("Another wrld")
    with pytest.raises(QuotaExhausted):
        session.fix_grammar(timeout=5)
    session.leave()


def test_fix_grammar_failure_keeps_credit(tmp_path):
    session, engine = make_session(tmp_path, credits=2)
    engine.fail = AnalysisError("engine down")
    session.set_text("Hello wrld")
    with pytest.raises(AnalysisError):
        session.fix_grammar(timeout=5)
    assert session.credits == 2


def test_fix_grammar_blank_is_noop(tmp_path):
    session, engine = make_session(tmp_path)
    assert session.fix_grammar(timeout=5) is None
    assert engine.requests == []
    assert session.credits == 3


def test_truncation_to_surface_limit(tmp_path):
    session, engine = make_session(tmp_path, surface="free")
    session.set_text("x" * 600)
    assert len(session.text) == 500
    session.leave()


def test_sample_and_clear(tmp_path):
    session, engine = make_session(tmp_path)
    session.load_sample()
    assert session.text == SAMPLE_TEXT
    session.clear()
    assert session.text == ""
    assert session.scheduler.state is SchedulerState.IDLE


def test_click_activates_suggestion(tmp_path):
    session, engine = analysed_session(tmp_path)
    found = session.click(10)
    assert found.id == "s1"
    assert session.active_suggestion.id == "s1"
    runs = session.overlay()
    assert "".join(r.text for r in runs) == session.text
    assert [r.is_active for r in runs if r.highlighted] == [True]
    assert session.click(2) is None
    assert session.active_suggestion is None


def test_tone_change_reschedules(tmp_path):
    session, engine = make_session(tmp_path)
    session.set_text("Hello wrld")
    session.scheduler.cancel()
    session.set_tone(EditorialTone.CASUAL)
    assert session.scheduler.state is SchedulerState.PENDING
    session.scheduler.flush()
    session.scheduler.wait(5)
    assert engine.requests[-1].tone is EditorialTone.CASUAL


def test_import_truncates(tmp_path):
    session, engine = make_session(tmp_path, surface="free")
    session.import_file("long.txt", ("word " * 200).encode())
    assert len(session.text) == 500
    session.leave()


def test_export_is_buffer_content(tmp_path):
    session, engine = analysed_session(tmp_path)
    assert session.export_text() == "Hello wrld"


def test_speak_without_speech_support(tmp_path):
    session, engine = make_session(tmp_path)
    with pytest.raises(AnalysisError):
        session.speak("hi")


class ScriptedEngine:
    """Hands out queued results in call order; gate holds a call in flight."""

    def __init__(self, *results):
        self.results = list(results)
        self.requests = []
        self.gate = None

    def analyze(self, request):
        self.requests.append(request)
        if self.gate is not None:
            self.gate.wait(5)
        return self.results.pop(0)


def test_apply_discards_response_for_pre_apply_text(tmp_path):
    text = "I was went to teh shop and teh mall"
    first = AnalysisResult(
        corrected_text="I went to the shop and the mall",
        suggestions=[Suggestion("a", "was went", "went", SuggestionCategory.GRAMMAR, "Tense.", 2)],
        overall_tone="Neutral")
    # computed for the text before "a" was applied
    late = AnalysisResult(
        corrected_text="I was went to the very shop and the very mall",
        suggestions=[Suggestion("t1", "teh", "the very", SuggestionCategory.GRAMMAR, "", 14),
                     Suggestion("t2", "teh", "the very", SuggestionCategory.GRAMMAR, "", 27)],
        overall_tone="Neutral")
    engine = ScriptedEngine(first, late)
    config = Config(tmp_path / "config.json")
    config.override("debounce_ms", 10000)
    session = EditorSession(config, engine)
    session.set_text(text)
    session.scheduler.flush()
    session.scheduler.wait(5)
    assert [s.id for s in session.suggestions] == ["a"]

    engine.gate = threading.Event()
    held = session.scheduler.issue()
    assert session.is_loading
    assert session.apply("a") is not None
    assert session.text == "I went to teh shop and teh mall"
    assert session.scheduler.request_id > held.request_id
    assert session.scheduler.state is SchedulerState.IDLE

    engine.gate.set()
    assert session.scheduler.wait(5)
    assert session.suggestions == []
    assert session.result is first
    assert session.text == "I went to teh shop and teh mall"
    assert len(engine.requests) == 2


def test_blank_text_idles_immediately_while_in_flight(tmp_path):
    session, engine = make_session(tmp_path)
    held_gate = engine.gate = threading.Event()
    session.set_text("Hello wrld")
    session.scheduler.flush()
    held_worker = session.scheduler._worker
    assert session.is_loading

    session.set_text("   ")
    assert session.scheduler.state is SchedulerState.IDLE
    assert session.is_loading is False

    engine.gate = None
    session.set_text("Fresh wrld")
    result = session.fix_grammar(timeout=5)
    assert result is not None
    assert session.credits == 2
    assert [(s.id, s.index) for s in session.suggestions] == [("s1", 6)]

    held_gate.set()
    held_worker.join(5)
    assert [(s.id, s.index) for s in session.suggestions] == [("s1", 6)]
    assert session.text == "Fresh wrld"
    session.leave()


def test_suggestion_at_cursor_activates(tmp_path):
    session, engine = analysed_session(tmp_path)
    session.buffer.select(7)
    assert session.suggestion_at_cursor().id == "s1"
    assert session.active_suggestion.id == "s1"
    session.buffer.select(0)
    assert session.suggestion_at_cursor() is None
    assert session.active_suggestion is None


def test_surface_limit_counts_utf16_units(tmp_path):
    session, engine = make_session(tmp_path, surface="free")
    session.set_text("\U0001F600" * 300)
    assert session.buffer.units == 500
    assert len(session.text) == 250
    session.leave()
