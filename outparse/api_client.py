"""API client — sends analysis and speech requests to the remote engine."""
import base64
import binascii
import logging
from typing import Optional

import requests

from outparse.buffer import utf16_to_index
from outparse.models import AnalysisRequest, AnalysisResult, SchemaError

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """The engine call failed, timed out, or returned malformed data."""


class APIClient:
    """Client for the HTTP analysis engine."""

    def __init__(self, url: str, timeout_ms: int = 30000,
                 speech_url: str = "", offset_units: str = "utf-16"):
        self.url = url
        self.timeout_sec = timeout_ms / 1000.0
        self.speech_url = speech_url
        self.offset_units = offset_units

    @property
    def base_url(self) -> str:
        """Derive the API base URL from the analysis endpoint URL.

        e.g. http://localhost:8080/v1/analyze → http://localhost:8080
        """
        url = self.url.rstrip('/')
        for suffix in ('/v1/analyze', '/analyze', '/v1/proofread', '/proofread'):
            if url.endswith(suffix):
                return url[:-len(suffix)]
        parts = url.rsplit('/', 1)
        return parts[0] if len(parts) > 1 else url

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """POST {text, tone} and parse the full response.

        Raises AnalysisError on any transport or schema failure; a response
        is never partially consumed.
        """
        payload = {
            "text": request.snapshot_text,
            "tone": request.tone.value,
        }
        data = self._post_json(self.url, payload)
        try:
            result = AnalysisResult.from_dict(data)
        except SchemaError as e:
            logger.debug("Malformed analysis response: %s", e)
            raise AnalysisError(f"Malformed analysis response: {e}") from e

        if self.offset_units == "utf-16":
            text = request.snapshot_text
            result.suggestions = [s.moved(utf16_to_index(text, s.index))
                                  for s in result.suggestions]
        return result

    def synthesize_speech(self, text: str) -> bytes:
        """Request spoken audio for text. Returns raw audio bytes (may be empty)."""
        url = self.speech_url or f"{self.base_url}/v1/speech"
        data = self._post_json(url, {"text": text})
        encoded = self._extract_audio(data)
        if not encoded:
            return b""
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise AnalysisError(f"Invalid audio payload: {e}") from e

    def _post_json(self, url: str, payload: dict):
        try:
            resp = requests.post(url, json=payload, timeout=self.timeout_sec)
            resp.raise_for_status()
        except requests.Timeout as e:
            logger.debug("API timeout at %s", url)
            raise AnalysisError("Analysis engine timed out") from e
        except requests.ConnectionError as e:
            logger.debug("API connection error — is the engine running? URL: %s", url)
            raise AnalysisError("Analysis engine unreachable") from e
        except requests.RequestException as e:
            raise AnalysisError(f"Analysis engine request failed: {e}") from e

        try:
            return resp.json()
        except ValueError as e:
            raise AnalysisError("Analysis engine returned invalid JSON") from e

    @staticmethod
    def _extract_audio(data) -> Optional[str]:
        """Pull the base64 audio string out of a speech response.

        Supports:
        - "..."                          (bare string)
        - {"audio": "..."} / {"data": "..."}
        - {"inlineData": {"data": "..."}}
        """
        if isinstance(data, str):
            return data
        if not isinstance(data, dict):
            return None
        for key in ("audio", "data"):
            val = data.get(key)
            if isinstance(val, str):
                return val
        inline = data.get("inlineData")
        if isinstance(inline, dict) and isinstance(inline.get("data"), str):
            return inline["data"]
        return None
