"""Data model — suggestions, analysis results and requests."""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional


class SuggestionCategory(Enum):
    GRAMMAR = 'Grammar'
    STYLE = 'Style'
    CLARITY = 'Clarity'
    TONE = 'Tone'
    VOCABULARY = 'Vocabulary'


class EditorialTone(Enum):
    PROFESSIONAL = 'Professional'
    CASUAL = 'Casual'
    ACADEMIC = 'Academic'
    CREATIVE = 'Creative'
    URGENT = 'Urgent'


class SchemaError(ValueError):
    """Raised when an engine payload does not match the expected shape."""


@dataclass(frozen=True)
class Suggestion:
    id: str
    original: str          # exact substring expected at index
    replacement: str
    category: SuggestionCategory
    explanation: str
    index: int             # zero-based offset where original starts

    @property
    def end(self) -> int:
        return self.index + len(self.original)

    def covers(self, offset: int) -> bool:
        """Boundary-inclusive containment check."""
        return self.index <= offset <= self.end

    def moved(self, index: int) -> 'Suggestion':
        return replace(self, index=index)

    @classmethod
    def from_dict(cls, data: dict) -> 'Suggestion':
        if not isinstance(data, dict):
            raise SchemaError(f"suggestion must be an object, got {type(data).__name__}")
        try:
            category = SuggestionCategory(data['category'])
        except KeyError:
            raise SchemaError("suggestion is missing 'category'")
        except ValueError:
            raise SchemaError(f"unknown suggestion category: {data['category']!r}")

        for key in ('id', 'original', 'replacement', 'explanation'):
            if not isinstance(data.get(key), str):
                raise SchemaError(f"suggestion field {key!r} must be a string")
        index = data.get('index')
        # bool is an int subclass
        if not isinstance(index, int) or isinstance(index, bool):
            raise SchemaError("suggestion field 'index' must be an integer")

        return cls(
            id=data['id'],
            original=data['original'],
            replacement=data['replacement'],
            category=category,
            explanation=data['explanation'],
            index=index,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'original': self.original,
            'replacement': self.replacement,
            'category': self.category.value,
            'explanation': self.explanation,
            'index': self.index,
        }


@dataclass(frozen=True)
class ReadabilityStats:
    score: float
    level: str
    word_count: int
    sentence_count: int
    reading_time: str

    @classmethod
    def from_dict(cls, data: dict) -> 'ReadabilityStats':
        if not isinstance(data, dict):
            raise SchemaError("stats must be an object")
        try:
            score = data['score']
            level = data['level']
            word_count = data['wordCount']
            sentence_count = data['sentenceCount']
            reading_time = data['readingTime']
        except KeyError as e:
            raise SchemaError(f"stats is missing {e.args[0]!r}")
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            raise SchemaError("stats.score must be a number")
        if not isinstance(word_count, int) or not isinstance(sentence_count, int):
            raise SchemaError("stats counts must be integers")
        if not isinstance(level, str) or not isinstance(reading_time, str):
            raise SchemaError("stats.level and stats.readingTime must be strings")
        return cls(float(score), level, word_count, sentence_count, reading_time)

    def to_dict(self) -> dict:
        return {
            'score': self.score,
            'level': self.level,
            'wordCount': self.word_count,
            'sentenceCount': self.sentence_count,
            'readingTime': self.reading_time,
        }


@dataclass
class AnalysisResult:
    """One engine response. Suggestion offsets are untrusted until validated."""
    corrected_text: str
    suggestions: List[Suggestion] = field(default_factory=list)
    stats: Optional[ReadabilityStats] = None
    overall_tone: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> 'AnalysisResult':
        """Parse an engine payload. The whole payload is rejected on any violation."""
        if not isinstance(data, dict):
            raise SchemaError("analysis response must be an object")
        for key in ('correctedText', 'suggestions', 'stats', 'overallTone'):
            if key not in data:
                raise SchemaError(f"analysis response is missing {key!r}")
        if not isinstance(data['correctedText'], str):
            raise SchemaError("correctedText must be a string")
        if not isinstance(data['suggestions'], list):
            raise SchemaError("suggestions must be a list")
        if not isinstance(data['overallTone'], str):
            raise SchemaError("overallTone must be a string")

        return cls(
            corrected_text=data['correctedText'],
            suggestions=[Suggestion.from_dict(s) for s in data['suggestions']],
            stats=ReadabilityStats.from_dict(data['stats']),
            overall_tone=data['overallTone'],
        )

    def to_dict(self) -> dict:
        return {
            'correctedText': self.corrected_text,
            'suggestions': [s.to_dict() for s in self.suggestions],
            'stats': self.stats.to_dict() if self.stats else None,
            'overallTone': self.overall_tone,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    snapshot_text: str
    tone: EditorialTone
    request_id: int
