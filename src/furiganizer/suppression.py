from __future__ import annotations

from .logging_utils import debug_log

SkipTable = dict[str, int]


def is_kanji(ch: str) -> bool:
    if not ch:
        return False
    code = ord(ch)
    return (
        0x4E00 <= code <= 0x9FFF  # CJK Unified Ideographs
        or 0x3400 <= code <= 0x4DBF  # Extension A
        or 0x20000 <= code <= 0x2A6DF  # Extension B
        or 0x2A700 <= code <= 0x2EBEF  # Extensions C-F
        or 0x30000 <= code <= 0x3134F  # Extension G
        or 0xF900 <= code <= 0xFAFF  # Compatibility Ideographs
        or 0x2F800 <= code <= 0x2FA1F  # Compatibility Supplement
        or ch in "々〆"
    )


def kanji_in(text: str) -> list[str]:
    return [ch for ch in text if is_kanji(ch)]


def count_kanji(text: str) -> int:
    return sum(1 for ch in text if is_kanji(ch))


def normalize_skip_length(value: int) -> int:
    if value < 0:
        debug_log(f"skip length {value} is negative; repeat suppression disabled")
        return 0
    return value


class RepeatSuppressor:
    """
    Decide whether a kanji run should be glossed again.

    Each glossed kanji is remembered with a countdown equal to the skip
    length. ``advance`` ticks every countdown down by the number of kanji
    characters processed since, and ``reset`` forgets everything (page
    breaks). One instance belongs to exactly one document run.
    """

    def __init__(self, skip_length: int, table: SkipTable | None = None) -> None:
        self.skip_length = normalize_skip_length(skip_length)
        self.table: SkipTable = table if table is not None else {}

    @property
    def enabled(self) -> bool:
        return self.skip_length > 0

    def should_suppress(self, surface: str) -> bool:
        for ch in surface:
            if is_kanji(ch) and self.table.get(ch, 0) > 0:
                return True
        return False

    def record_glossed(self, surface: str) -> None:
        if not self.enabled:
            return
        for ch in kanji_in(surface):
            self.table[ch] = self.skip_length

    def advance(self, count: int) -> None:
        if count <= 0 or not self.table:
            return
        for ch in list(self.table):
            remaining = self.table[ch] - count
            if remaining > 0:
                self.table[ch] = remaining
            else:
                del self.table[ch]

    def reset(self) -> None:
        self.table.clear()


__all__ = [
    "RepeatSuppressor",
    "SkipTable",
    "count_kanji",
    "is_kanji",
    "kanji_in",
    "normalize_skip_length",
]
