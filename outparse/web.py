"""Flask JSON API over a single EditorSession."""
from __future__ import annotations

import logging

from flask import Flask, Response, jsonify, request

from outparse.api_client import AnalysisError
from outparse.buffer import index_to_utf16, utf16_length, utf16_to_index
from outparse.importer import ImportFailure
from outparse.models import EditorialTone
from outparse.session import EditorSession, QuotaExhausted

logger = logging.getLogger(__name__)

app = Flask(__name__)
_session: EditorSession | None = None


def init_app(session: EditorSession) -> Flask:
    global _session
    _session = session
    return app


def _session_dict() -> dict:
    """Session state with offsets and lengths in UTF-16 code units, as the browser counts them."""
    body = _session.to_dict()  # type: ignore
    text = body["text"]
    body["length"] = utf16_length(text)
    body["suggestions"] = [_suggestion_dict(text, s) for s in body["suggestions"]]
    return body


def _suggestion_dict(text: str, suggestion: dict) -> dict:
    return dict(suggestion, index=index_to_utf16(text, suggestion["index"]))


def _state():
    return jsonify({"ok": True, "session": _session_dict()})


def _error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


@app.errorhandler(AnalysisError)
def _analysis_failed(e):
    return _error(str(e) or "Analysis Error", 502)


@app.errorhandler(QuotaExhausted)
def _quota(e):
    return _error(str(e), 402)


@app.errorhandler(ImportFailure)
def _import_failed(e):
    return _error(str(e), 400)


# ---------- API ----------
@app.get("/api/health")
def health():
    return jsonify({"ok": _session is not None})


@app.get("/api/session")
def session_state():
    return _state()


@app.post("/api/text")
def set_text():
    """Full replace with {"text": ...} or a ranged edit with {"start", "end", "inserted"}."""
    body = request.get_json(silent=True) or {}
    if "text" in body:
        _session.set_text(str(body["text"]))  # type: ignore
    elif "inserted" in body:
        try:
            start = int(body["start"])
            end = int(body.get("end", start))
        except (KeyError, TypeError, ValueError):
            return _error("start/end must be integers", 400)
        text = _session.text  # type: ignore
        _session.type_text(utf16_to_index(text, start), utf16_to_index(text, end),  # type: ignore
                           str(body["inserted"]))
    else:
        return _error("expected 'text' or 'inserted'", 400)
    return _state()


@app.post("/api/sample")
def sample():
    _session.load_sample()  # type: ignore
    return _state()


@app.post("/api/clear")
def clear():
    _session.clear()  # type: ignore
    return _state()


@app.post("/api/leave")
def leave():
    _session.leave()  # type: ignore
    return _state()


@app.post("/api/tone")
def set_tone():
    body = request.get_json(silent=True) or {}
    try:
        tone = EditorialTone(body.get("tone"))
    except ValueError:
        return _error(f"unknown tone: {body.get('tone')!r}", 400)
    _session.set_tone(tone)  # type: ignore
    return _state()


@app.post("/api/analyze")
def analyze():
    timeout = request.args.get("timeout", None, type=float)
    result = _session.fix_grammar(timeout=timeout)  # type: ignore
    body = _session_dict()
    return jsonify({"ok": True, "analyzed": result is not None, "session": body})


@app.post("/api/suggestions/<suggestion_id>/apply")
def apply_suggestion(suggestion_id: str):
    applied = _session.apply(suggestion_id)  # type: ignore
    return jsonify({"ok": True, "applied": applied is not None, "session": _session_dict()})


@app.post("/api/suggestions/<suggestion_id>/ignore")
def ignore_suggestion(suggestion_id: str):
    ignored = _session.ignore(suggestion_id)  # type: ignore
    return jsonify({"ok": True, "ignored": ignored, "session": _session_dict()})


@app.post("/api/apply-all")
def apply_all():
    applied = _session.apply_all()  # type: ignore
    return jsonify({"ok": True, "applied": applied, "session": _session_dict()})


@app.get("/api/overlay")
def overlay():
    runs = _session.overlay()  # type: ignore
    return jsonify([r.to_dict() for r in runs])


@app.get("/api/lookup")
def lookup():
    """Suggestion at ?offset= (UTF-16 units), or at the current caret when omitted."""
    if "offset" in request.args:
        offset = request.args.get("offset", None, type=int)
        if offset is None:
            return _error("offset must be an integer", 400)
        found = _session.click(utf16_to_index(_session.text, offset))  # type: ignore
    else:
        found = _session.suggestion_at_cursor()  # type: ignore
    if found is None:
        return jsonify({"ok": True, "suggestion": None})
    return jsonify({"ok": True, "suggestion": _suggestion_dict(_session.text, found.to_dict())})  # type: ignore


@app.post("/api/import")
def import_document():
    """Multipart upload ("file") or clipboard paste as JSON {"text": ...}."""
    upload = request.files.get("file")
    if upload is not None:
        _session.import_file(upload.filename or "upload.txt", upload.read())  # type: ignore
        return _state()
    body = request.get_json(silent=True) or {}
    if "text" not in body:
        return _error("expected a file upload or 'text'", 400)
    _session.set_text(str(body["text"]))  # type: ignore
    return _state()


@app.get("/api/export")
def export():
    return Response(_session.export_text(), mimetype="text/plain")  # type: ignore


@app.post("/api/speech")
def speech():
    body = request.get_json(silent=True) or {}
    audio = _session.speak(body.get("text"))  # type: ignore
    return Response(audio, mimetype="application/octet-stream")
