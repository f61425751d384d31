from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

from .alignment import AlignedRun, merge_annotations
from .annotator import AnnotationServiceError, Annotator
from .chunking import PAGE_BREAK, Chunk, split_text_into_chunks
from .config import FuriganaConfig
from .logging_utils import debug_log
from .ruby import gloss_ruby
from .suppression import RepeatSuppressor, count_kanji
from .words import AnnotatedWord

ProgressCallback = Callable[[dict[str, object]], None]
MissCallback = Callable[[str, int, "str | None"], None]

DIAG_ANNOTATION_ERROR = "annotation_error"
DIAG_ALIGNMENT_MISS = "alignment_miss"
DIAG_OVERSIZED_CHUNK = "oversized_chunk"


class ProcessorState(Enum):
    IDLE = "idle"
    SPLITTING = "splitting"
    ANNOTATING = "annotating"
    MERGING = "merging"
    RENDERING = "rendering"
    DONE = "done"


@dataclass(frozen=True)
class ChunkDiagnostic:
    chunk_index: int
    kind: str
    message: str
    surface: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "chunk": self.chunk_index,
            "kind": self.kind,
            "message": self.message,
        }
        if self.surface is not None:
            payload["surface"] = self.surface
        return payload


@dataclass
class ProcessResult:
    text: str
    chunk_count: int = 0
    diagnostics: list[ChunkDiagnostic] = field(default_factory=list)

    @property
    def failed_chunks(self) -> list[int]:
        return sorted(
            {diag.chunk_index for diag in self.diagnostics if diag.kind == DIAG_ANNOTATION_ERROR}
        )


class _ChunkRenderer:
    """Renders aligned runs of one document while owning its skip table."""

    def __init__(self, config: FuriganaConfig) -> None:
        self.config = config
        self.suppressor = RepeatSuppressor(config.skip_length)

    def render_runs(self, runs: list[AlignedRun], emit_miss: MissCallback) -> str:
        parts: list[str] = []
        for run in runs:
            if run.word is None:
                self.suppressor.advance(count_kanji(run.text))
                parts.append(run.text)
            else:
                parts.append(self._render_word(run.word, emit_miss))
        return "".join(parts)

    def _render_word(self, word: AnnotatedWord, emit_miss: MissCallback) -> str:
        if word.subwords:
            merged = merge_annotations(word.surface, word.subwords)
            for miss in merged.misses:
                emit_miss(miss.surface, miss.offset, word.surface)
            return self.render_runs(merged.runs, emit_miss)
        return self._render_leaf(word)

    def _render_leaf(self, word: AnnotatedWord) -> str:
        surface = word.surface
        kanji_count = count_kanji(surface)
        if not word.has_reading or kanji_count == 0:
            self.suppressor.advance(kanji_count)
            return surface
        suppressed = self.suppressor.should_suppress(surface)
        self.suppressor.advance(kanji_count)
        if suppressed:
            return surface
        gloss = gloss_ruby(
            surface,
            word.reading,
            self.config.style,
            per_character=self.config.per_character,
        )
        # Only kanji that actually received a reading start a new window.
        self.suppressor.record_glossed(gloss.glossed)
        return gloss.text

    def page_break(self) -> None:
        self.suppressor.reset()


class FuriganaProcessor:
    """
    Annotate a whole document chunk by chunk.

    The annotator is any callable taking ``(text, grade)`` and returning
    annotated words, raising ``AnnotationServiceError`` on failure. A failed
    chunk is copied through unchanged and reported in the result
    diagnostics; the remaining chunks are still processed.
    """

    def __init__(
        self,
        annotator: Annotator,
        config: FuriganaConfig | None = None,
        *,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.annotator = annotator
        self.config = config or FuriganaConfig()
        self.progress = progress
        self.state = ProcessorState.IDLE

    def _emit(self, event: dict[str, object]) -> None:
        if self.progress is not None:
            self.progress(event)

    def split(self, text: str) -> list[Chunk]:
        return split_text_into_chunks(text, max_bytes=self.config.max_chunk_bytes)

    def _annotate(self, chunk: Chunk) -> list[AnnotatedWord]:
        return self.annotator(chunk.text, self.config.grade)

    def _iter_annotations(
        self, chunks: list[Chunk]
    ) -> Iterator[tuple[Chunk, list[AnnotatedWord] | None, AnnotationServiceError | None]]:
        """Yield annotation outcomes in chunk order, fetching ahead when jobs > 1."""
        if self.config.jobs <= 1:
            for chunk in chunks:
                if chunk.is_blank:
                    yield chunk, None, None
                    continue
                self.state = ProcessorState.ANNOTATING
                try:
                    words = self._annotate(chunk)
                except AnnotationServiceError as exc:
                    yield chunk, None, exc
                    continue
                yield chunk, words, None
            return

        with ThreadPoolExecutor(max_workers=self.config.jobs) as executor:
            futures: list[Future | None] = [
                None if chunk.is_blank else executor.submit(self._annotate, chunk) for chunk in chunks
            ]
            for chunk, future in zip(chunks, futures):
                if future is None:
                    yield chunk, None, None
                    continue
                self.state = ProcessorState.ANNOTATING
                try:
                    words = future.result()
                except AnnotationServiceError as exc:
                    yield chunk, None, exc
                    continue
                yield chunk, words, None

    def process(self, text: str) -> ProcessResult:
        self.state = ProcessorState.SPLITTING
        chunks = self.split(text)
        total = len(chunks)
        result = ProcessResult(text="", chunk_count=total)
        renderer = _ChunkRenderer(self.config)
        debug_log(
            f"processing {len(text)} chars in {total} chunks "
            f"(grade={self.config.grade}, skip={self.config.skip_length}, style={self.config.style.value})"
        )
        self._emit({"event": "document_start", "total_chunks": total})

        parts: list[str] = []
        for index, (chunk, words, error) in enumerate(self._iter_annotations(chunks)):
            if chunk.oversized:
                result.diagnostics.append(
                    ChunkDiagnostic(
                        chunk_index=index,
                        kind=DIAG_OVERSIZED_CHUNK,
                        message=f"chunk is {chunk.byte_length} bytes (limit {chunk.max_bytes})",
                    )
                )
            if error is not None:
                debug_log(f"chunk {index + 1}/{total} failed: {error}")
                result.diagnostics.append(
                    ChunkDiagnostic(chunk_index=index, kind=DIAG_ANNOTATION_ERROR, message=str(error))
                )
                parts.append(chunk.text)
                self._emit({"event": "chunk_failed", "index": index, "total_chunks": total, "error": str(error)})
            elif words is None:
                parts.append(chunk.text)
                self._emit({"event": "chunk_done", "index": index, "total_chunks": total})
            else:
                self.state = ProcessorState.MERGING
                merged = merge_annotations(chunk.text, words)

                def _record_miss(
                    surface: str, offset: int, parent: str | None = None, *, _index: int = index
                ) -> None:
                    if parent is None:
                        where = f"chunk offset {offset}"
                    else:
                        where = f"offset {offset} of word {parent!r}"
                    debug_log(f"chunk {_index + 1}: could not align {surface!r} at {where}")
                    result.diagnostics.append(
                        ChunkDiagnostic(
                            chunk_index=_index,
                            kind=DIAG_ALIGNMENT_MISS,
                            message=f"surface not found at or after {where}",
                            surface=surface,
                        )
                    )

                for miss in merged.misses:
                    _record_miss(miss.surface, miss.offset)
                self.state = ProcessorState.RENDERING
                parts.append(renderer.render_runs(merged.runs, _record_miss))
                self._emit({"event": "chunk_done", "index": index, "total_chunks": total})
            if chunk.ends_with_page_break:
                parts.append(PAGE_BREAK)
                renderer.page_break()

        result.text = "".join(parts)
        self.state = ProcessorState.DONE
        self._emit({"event": "document_done", "total_chunks": total, "diagnostics": len(result.diagnostics)})
        return result


def annotate_text(text: str, annotator: Annotator, config: FuriganaConfig | None = None) -> str:
    return FuriganaProcessor(annotator, config).process(text).text


__all__ = [
    "ChunkDiagnostic",
    "DIAG_ALIGNMENT_MISS",
    "DIAG_ANNOTATION_ERROR",
    "DIAG_OVERSIZED_CHUNK",
    "FuriganaProcessor",
    "ProcessResult",
    "ProcessorState",
    "ProgressCallback",
    "annotate_text",
]
