from __future__ import annotations

import argparse
import sys
from importlib import metadata
from pathlib import Path

import tomllib
import uvicorn
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .annotator import MAX_GRADE, MIN_GRADE, YahooFuriganaClient
from .config import CLIENT_ID_ENV, FuriganaConfig, load_config
from .logging_utils import build_uvicorn_log_config, set_debug_logging
from .processor import FuriganaProcessor, ProcessResult
from .ruby import RubyStyle
from .web import WebConfig, create_app


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - defensive
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("furiganizer")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"furiganizer {__version__}",
    )


def _add_annotation_flags(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--config",
        help="JSON file with default settings (grade, skip_length, style, ...).",
    )
    ap.add_argument(
        "--client-id",
        help=f"Yahoo! JAPAN client ID (default: ${CLIENT_ID_ENV}).",
    )
    ap.add_argument(
        "--grade",
        type=int,
        choices=range(MIN_GRADE, MAX_GRADE + 1),
        help="School grade passed to the furigana service; kanji above it get ruby (default: 8).",
    )
    ap.add_argument(
        "--skip-length",
        type=int,
        help=(
            "Do not repeat ruby for a kanji until this many kanji have passed "
            "(default: 6080; 0 glosses every occurrence)."
        ),
    )
    ap.add_argument(
        "--style",
        choices=[style.value for style in RubyStyle],
        help="Ruby notation: 'ink' for 漢字《かんじ》, 'xhtml' for <ruby> markup (default: ink).",
    )
    ap.add_argument(
        "--per-character",
        action="store_true",
        default=None,
        help="Attach one reading character to each kanji instead of one reading per word.",
    )
    ap.add_argument(
        "--max-chunk-bytes",
        type=int,
        help="Maximum UTF-8 bytes per service request (default: 4000).",
    )
    ap.add_argument(
        "--timeout",
        type=float,
        help="HTTP timeout in seconds for furigana requests (default: 30).",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging (service requests, alignment misses).",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Add furigana to Japanese text. Use `furiganizer web` to serve the HTTP API.",
    )
    _add_version_flag(ap)
    ap.add_argument(
        "input_path",
        help="Path to a UTF-8 .txt file, or '-' to read standard input.",
    )
    ap.add_argument(
        "-o",
        "--output",
        help="Write the annotated text here instead of standard output.",
    )
    ap.add_argument(
        "-j",
        "--jobs",
        type=int,
        help="Number of concurrent service requests (default: 1).",
    )
    ap.add_argument(
        "--diagnostics",
        action="store_true",
        help="List every chunk and word that could not be annotated.",
    )
    _add_annotation_flags(ap)
    return ap


def build_web_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Serve the furigana proxy and document API over HTTP.",
    )
    _add_version_flag(ap)
    ap.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the web server (default: 127.0.0.1).",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the web server (default: 3000).",
    )
    _add_annotation_flags(ap)
    return ap


def _resolve_config(args: argparse.Namespace) -> FuriganaConfig:
    base = FuriganaConfig()
    if args.config:
        base = load_config(Path(args.config).expanduser())
    return base.merged(
        client_id=args.client_id,
        grade=args.grade,
        skip_length=args.skip_length,
        style=args.style,
        per_character=args.per_character,
        max_chunk_bytes=args.max_chunk_bytes,
        timeout=args.timeout,
        jobs=getattr(args, "jobs", None),
    )


class _RichProgress:
    def __init__(self, console: Console) -> None:
        self.console = console
        self.enabled = console.is_terminal
        self.progress: Progress | None = None
        self.task = None

    def __call__(self, event: dict[str, object]) -> None:
        if not self.enabled:
            return
        kind = event.get("event")
        if kind == "document_start":
            total = int(event.get("total_chunks") or 0)
            if total <= 1:
                return
            self.progress = Progress(
                TextColumn("{task.description}", justify="left"),
                BarColumn(bar_width=None),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                console=self.console,
                transient=True,
            )
            self.progress.start()
            self.task = self.progress.add_task("Chunks", total=total)
        elif kind in {"chunk_done", "chunk_failed"}:
            if self.progress is not None and self.task is not None:
                self.progress.advance(self.task)
        elif kind == "document_done":
            self.close()

    def close(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None


def _report_diagnostics(console: Console, result: ProcessResult, *, verbose: bool) -> None:
    if not result.diagnostics:
        return
    failed = result.failed_chunks
    if failed:
        console.print(
            f"[yellow]{len(failed)} of {result.chunk_count} chunks were left without ruby "
            "because the service request failed.[/yellow]"
        )
    misses = sum(1 for diag in result.diagnostics if diag.kind == "alignment_miss")
    if misses:
        console.print(f"[yellow]{misses} words could not be aligned with the input text.[/yellow]")
    if not verbose:
        return
    for diag in result.diagnostics:
        detail = f" {diag.surface!r}" if diag.surface is not None else ""
        console.print(f"  chunk {diag.chunk_index + 1}: {diag.kind}{detail} - {diag.message}", markup=False)


def _run_annotate(args: argparse.Namespace) -> int:
    set_debug_logging(bool(args.debug))
    try:
        config = _resolve_config(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    client_id = config.resolved_client_id()
    if not client_id:
        raise SystemExit(f"A client ID is required (use --client-id or set {CLIENT_ID_ENV}).")

    if args.input_path == "-":
        text = sys.stdin.read()
    else:
        input_path = Path(args.input_path).expanduser()
        if not input_path.is_file():
            raise SystemExit(f"Input file not found: {input_path}")
        text = input_path.read_text(encoding="utf-8")

    console = Console(stderr=True)
    progress = _RichProgress(console)
    with YahooFuriganaClient(client_id, endpoint=config.endpoint, timeout=config.timeout) as client:
        try:
            result = FuriganaProcessor(client, config, progress=progress).process(text)
        finally:
            progress.close()

    if args.output:
        output_path = Path(args.output).expanduser()
        output_path.write_text(result.text, encoding="utf-8")
        console.print(f"Wrote {output_path}")
    else:
        sys.stdout.write(result.text)
        sys.stdout.flush()
    _report_diagnostics(console, result, verbose=bool(args.diagnostics))
    return 0


def _run_web(args: argparse.Namespace) -> int:
    set_debug_logging(bool(args.debug))
    try:
        config = _resolve_config(args)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    app = create_app(WebConfig(defaults=config))
    print(f"Serving furiganizer API at http://{args.host}:{args.port}/api/")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="debug" if args.debug else "info",
        log_config=build_uvicorn_log_config(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "web":
        web_parser = build_web_parser()
        web_args = web_parser.parse_args(argv[1:])
        return _run_web(web_args)

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    args = parser.parse_args(argv)
    return _run_annotate(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
