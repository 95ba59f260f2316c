"""Readability statistics — Flesch reading ease, counts and reading time, via textstat."""
import math

import textstat

from outparse.models import ReadabilityStats

# (minimum score, level name), highest first
_LEVELS = [
    (90, "Very Easy"),
    (80, "Easy"),
    (70, "Fairly Easy"),
    (60, "Standard"),
    (50, "Fairly Difficult"),
    (30, "Difficult"),
    (0, "Very Difficult"),
]


def reading_level(score: float) -> str:
    for minimum, name in _LEVELS:
        if score >= minimum:
            return name
    return _LEVELS[-1][1]


def format_reading_time(seconds: float) -> str:
    if seconds <= 0:
        return "0 min"
    if seconds < 60:
        return "< 1 min"
    return f"{math.ceil(seconds / 60)} min"


def compute_stats(text: str) -> ReadabilityStats:
    """Compute readability statistics for text."""
    word_count = textstat.lexicon_count(text, removepunct=True)
    if word_count == 0:
        return ReadabilityStats(0.0, reading_level(0.0), 0, 0, format_reading_time(0))

    score = textstat.flesch_reading_ease(text)
    score = round(max(0.0, min(100.0, score)), 1)
    sentence_count = max(1, textstat.sentence_count(text))

    return ReadabilityStats(
        score=score,
        level=reading_level(score),
        word_count=word_count,
        sentence_count=sentence_count,
        reading_time=format_reading_time(textstat.reading_time(text)),
    )
