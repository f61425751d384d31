from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

__all__ = [
    "AnnotatedWord",
    "word_from_payload",
    "words_from_payload",
    "serialize_words",
]


@dataclass(frozen=True)
class AnnotatedWord:
    """
    One segment returned by the annotation service.

    ``surface`` is expected to be a contiguous slice of the text that was
    submitted; ``subwords`` split a compound into finer reading units.
    """

    surface: str
    reading: str | None = None
    romanization: str | None = None
    subwords: tuple["AnnotatedWord", ...] = ()

    @property
    def has_reading(self) -> bool:
        return bool(self.reading) and self.reading != self.surface


def _optional_str(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def word_from_payload(entry: Mapping[str, object]) -> AnnotatedWord:
    surface = entry.get("surface")
    if not isinstance(surface, str):
        raise ValueError(f"Word entry is missing a surface: {entry!r}")
    subwords: list[AnnotatedWord] = []
    raw_subwords = entry.get("subword")
    if isinstance(raw_subwords, list):
        for item in raw_subwords:
            if isinstance(item, Mapping):
                subwords.append(word_from_payload(item))
    return AnnotatedWord(
        surface=surface,
        reading=_optional_str(entry.get("furigana")),
        romanization=_optional_str(entry.get("roman")),
        subwords=tuple(subwords),
    )


def words_from_payload(data: Iterable[object]) -> list[AnnotatedWord]:
    words: list[AnnotatedWord] = []
    for entry in data:
        if not isinstance(entry, Mapping):
            continue
        words.append(word_from_payload(entry))
    return words


def serialize_words(words: Iterable[AnnotatedWord]) -> list[dict[str, object]]:
    payload: list[dict[str, object]] = []
    for word in words:
        entry: dict[str, object] = {"surface": word.surface}
        if word.reading is not None:
            entry["furigana"] = word.reading
        if word.romanization is not None:
            entry["roman"] = word.romanization
        if word.subwords:
            entry["subword"] = serialize_words(word.subwords)
        payload.append(entry)
    return payload
