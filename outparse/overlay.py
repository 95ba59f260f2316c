"""Overlay rendering — a read-only segmentation of the buffer for display."""
from typing import Iterable, List, NamedTuple, Optional

from outparse.models import Suggestion, SuggestionCategory


class Run(NamedTuple):
    text: str
    highlighted: bool = False
    category: Optional[SuggestionCategory] = None
    is_active: bool = False
    suggestion_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'text': self.text,
            'highlighted': self.highlighted,
            'category': self.category.value if self.category else None,
            'isActive': self.is_active,
            'suggestionId': self.suggestion_id,
        }


def render_overlay(text: str, suggestions: Iterable[Suggestion],
                   active_id: Optional[str] = None) -> List[Run]:
    """Split text into plain runs and highlighted suggestion spans.

    Overlapping spans keep the earliest index; spans running past the end
    of text are skipped. Empty plain runs are not emitted, so the result
    holds at most 2 * len(suggestions) + 1 runs and its texts concatenate
    back to text.
    """
    runs = []
    pos = 0
    for s in sorted(suggestions, key=lambda s: s.index):
        if s.index < pos or s.end > len(text) or not s.original:
            continue
        if s.index > pos:
            runs.append(Run(text[pos:s.index]))
        runs.append(Run(
            text[s.index:s.end],
            highlighted=True,
            category=s.category,
            is_active=s.id == active_id,
            suggestion_id=s.id,
        ))
        pos = s.end
    if pos < len(text):
        runs.append(Run(text[pos:]))
    return runs
