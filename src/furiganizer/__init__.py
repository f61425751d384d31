from .annotator import (
    AnnotationServiceError,
    AnnotationServiceUnavailableError,
    YahooFuriganaClient,
)
from .chunking import PAGE_BREAK, Chunk, join_chunks, split_text_into_chunks
from .config import FuriganaConfig, load_config
from .processor import FuriganaProcessor, ProcessResult, annotate_text
from .ruby import RubyStyle, render_ruby
from .words import AnnotatedWord

__all__ = [
    "AnnotatedWord",
    "AnnotationServiceError",
    "AnnotationServiceUnavailableError",
    "Chunk",
    "FuriganaConfig",
    "FuriganaProcessor",
    "PAGE_BREAK",
    "ProcessResult",
    "RubyStyle",
    "YahooFuriganaClient",
    "annotate_text",
    "join_chunks",
    "load_config",
    "render_ruby",
    "split_text_into_chunks",
]
