from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .words import AnnotatedWord

__all__ = [
    "AlignedRun",
    "AlignmentMiss",
    "MergeResult",
    "merge_annotations",
]


@dataclass(frozen=True)
class AlignedRun:
    text: str
    word: AnnotatedWord | None = None

    @property
    def is_gloss_candidate(self) -> bool:
        return self.word is not None


@dataclass(frozen=True)
class AlignmentMiss:
    """A returned surface that could not be located at or after ``offset``."""

    surface: str
    offset: int


@dataclass
class MergeResult:
    runs: list[AlignedRun] = field(default_factory=list)
    misses: list[AlignmentMiss] = field(default_factory=list)

    def text(self) -> str:
        return "".join(run.text for run in self.runs)


def merge_annotations(text: str, words: Iterable[AnnotatedWord]) -> MergeResult:
    """
    Lay the annotated words back onto ``text``.

    Words are matched left to right from a moving cursor; the gaps between
    matches become plain runs. A word that cannot be found is reported as a
    miss and skipped without moving the cursor, so the runs always rebuild
    ``text`` exactly.
    """
    result = MergeResult()
    cursor = 0
    for word in words:
        surface = word.surface
        start = text.find(surface, cursor) if surface else -1
        if start == -1:
            result.misses.append(AlignmentMiss(surface=surface, offset=cursor))
            continue
        if start > cursor:
            result.runs.append(AlignedRun(text=text[cursor:start]))
        result.runs.append(AlignedRun(text=surface, word=word))
        cursor = start + len(surface)
    if cursor < len(text):
        result.runs.append(AlignedRun(text=text[cursor:]))
    return result
