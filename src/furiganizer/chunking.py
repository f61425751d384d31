from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

PAGE_BREAK = "｛改頁｝"
DEFAULT_MAX_CHUNK_BYTES = 4000
_SEGMENT_BREAKS = (
    ".",
    "。",
    ",",
    "、",
    "!",
    "！",
    "?",
    "？",
    "(",
    ")",
    "（",
    "）",
    "[",
    "]",
    "「",
    "」",
    "『",
    "』",
)
_SEGMENT_BREAK_RE = re.compile(
    "(" + "|".join(re.escape(sep) for sep in _SEGMENT_BREAKS) + ")"
)


@dataclass(frozen=True)
class Chunk:
    text: str
    ends_with_page_break: bool = False
    max_bytes: int = DEFAULT_MAX_CHUNK_BYTES

    @property
    def byte_length(self) -> int:
        return _byte_length(self.text)

    @property
    def oversized(self) -> bool:
        return self.byte_length > self.max_bytes

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()


def split_text_into_chunks(
    text: str,
    *,
    max_bytes: int = DEFAULT_MAX_CHUNK_BYTES,
) -> list[Chunk]:
    """
    Split text into request-sized chunks.

    Every page-break marker closes the current chunk and is recorded on it
    instead of being kept in the text. Lines are packed greedily under the
    UTF-8 byte budget; lines that are too long on their own are cut after
    punctuation and brackets. Joining the chunks with ``join_chunks`` gives
    back the input unchanged.
    """
    if max_bytes < 1:
        raise ValueError(f"max_bytes must be positive, got {max_bytes}")
    chunks: list[Chunk] = []
    regions = text.split(PAGE_BREAK)
    for index, region in enumerate(regions):
        ends_with_break = index < len(regions) - 1
        region_chunks = [
            Chunk(text=piece, max_bytes=max_bytes) for piece in _pack_units(_iter_units(region, max_bytes), max_bytes)
        ]
        if ends_with_break:
            if region_chunks:
                last = region_chunks[-1]
                region_chunks[-1] = Chunk(text=last.text, ends_with_page_break=True, max_bytes=max_bytes)
            else:
                # Keep the marker even when nothing precedes it.
                region_chunks.append(Chunk(text="", ends_with_page_break=True, max_bytes=max_bytes))
        chunks.extend(region_chunks)
    return chunks


def join_chunks(chunks: Iterable[Chunk]) -> str:
    parts: list[str] = []
    for chunk in chunks:
        parts.append(chunk.text)
        if chunk.ends_with_page_break:
            parts.append(PAGE_BREAK)
    return "".join(parts)


def _iter_units(region: str, max_bytes: int) -> Iterable[str]:
    # The terminator is its own unit so that it never counts toward the line.
    for line in region.splitlines(keepends=True):
        stripped = line.splitlines()
        content = stripped[0] if stripped else ""
        terminator = line[len(content):]
        if content:
            if _byte_length(content) <= max_bytes:
                yield content
            else:
                yield from _split_at_segment_breaks(content)
        if terminator:
            yield terminator


def _split_at_segment_breaks(line: str) -> list[str]:
    return [piece for piece in _SEGMENT_BREAK_RE.split(line) if piece]


def _pack_units(units: Iterable[str], max_bytes: int) -> list[str]:
    packed: list[str] = []
    current: list[str] = []
    current_bytes = 0
    for unit in units:
        unit_bytes = _byte_length(unit)
        if current and current_bytes + unit_bytes > max_bytes:
            packed.append("".join(current))
            current = []
            current_bytes = 0
        current.append(unit)
        current_bytes += unit_bytes
    if current:
        packed.append("".join(current))
    return packed


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


__all__ = [
    "Chunk",
    "DEFAULT_MAX_CHUNK_BYTES",
    "PAGE_BREAK",
    "join_chunks",
    "split_text_into_chunks",
]
