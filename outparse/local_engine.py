"""Local analysis engine — offline spelling and repetition checks.

Used when no remote engine is configured. Produces the same
AnalysisResult shape as the HTTP engine:
1. Repeated words ("the the") → Grammar
2. Misspelled words (pyspellchecker's most frequent nearest candidate) → Grammar
3. Runs of multiple spaces → Style
"""
import logging
import re
from typing import List

from spellchecker import SpellChecker

from outparse.models import (
    AnalysisRequest, AnalysisResult, Suggestion, SuggestionCategory,
)
from outparse.readability import compute_stats

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[A-Za-z]+(?:'[A-Za-z]+)?")
_REPEAT_RE = re.compile(r"\b([A-Za-z]+)(\s+)\1\b", re.IGNORECASE)
_SPACES_RE = re.compile(r"(?<=\S) {2,}(?=\S)")

MAX_EDIT_DISTANCE = 2


class LocalEngine:
    """Rule-based engine backed by pyspellchecker."""

    def __init__(self, language: str = 'en'):
        self._spell = SpellChecker(language=language, distance=MAX_EDIT_DISTANCE)

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        text = request.snapshot_text
        suggestions = self._find_repeats(text)
        suggestions += self._find_misspellings(text)
        suggestions += self._find_spacing(text)
        suggestions = self._drop_overlaps(suggestions)

        logger.debug("Local engine found %d suggestion(s)", len(suggestions))
        return AnalysisResult(
            corrected_text=self._fold(text, suggestions),
            suggestions=suggestions,
            stats=compute_stats(text),
            overall_tone="Neutral",
        )

    def _find_repeats(self, text: str) -> List[Suggestion]:
        result = []
        for m in _REPEAT_RE.finditer(text):
            word = m.group(1)
            result.append(Suggestion(
                id=f"repeat-{m.start()}",
                original=m.group(0),
                replacement=word,
                category=SuggestionCategory.GRAMMAR,
                explanation=f"The word \"{word}\" is repeated.",
                index=m.start(),
            ))
        return result

    def _find_misspellings(self, text: str) -> List[Suggestion]:
        result = []
        for m in _WORD_RE.finditer(text):
            word = m.group(0)
            if len(word) < 2 or word.isupper():
                continue
            if word.lower() in self._spell:
                continue
            fix = self._spell.correction(word.lower())
            if not fix or fix == word.lower():
                continue
            if word[0].isupper():
                fix = fix.capitalize()
            result.append(Suggestion(
                id=f"spell-{m.start()}",
                original=word,
                replacement=fix,
                category=SuggestionCategory.GRAMMAR,
                explanation=f"\"{word}\" appears to be misspelled.",
                index=m.start(),
            ))
        return result

    def _find_spacing(self, text: str) -> List[Suggestion]:
        return [
            Suggestion(
                id=f"space-{m.start()}",
                original=m.group(0),
                replacement=" ",
                category=SuggestionCategory.STYLE,
                explanation="Use a single space between words.",
                index=m.start(),
            )
            for m in _SPACES_RE.finditer(text)
        ]

    @staticmethod
    def _drop_overlaps(suggestions: List[Suggestion]) -> List[Suggestion]:
        kept = []
        last_end = 0
        for s in sorted(suggestions, key=lambda s: s.index):
            if kept and s.index < last_end:
                continue
            kept.append(s)
            last_end = s.end
        return kept

    @staticmethod
    def _fold(text: str, suggestions: List[Suggestion]) -> str:
        """Apply non-overlapping suggestions right to left."""
        for s in sorted(suggestions, key=lambda s: s.index, reverse=True):
            text = text[:s.index] + s.replacement + text[s.end:]
        return text
