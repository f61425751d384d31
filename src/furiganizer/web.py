from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .annotator import (
    AnnotationServiceError,
    AnnotationServiceUnavailableError,
    YahooFuriganaClient,
)
from .config import FuriganaConfig, config_from_mapping
from .logging_utils import debug_log
from .processor import FuriganaProcessor

ClientFactory = Callable[[str, FuriganaConfig], YahooFuriganaClient]


def _default_client_factory(client_id: str, config: FuriganaConfig) -> YahooFuriganaClient:
    return YahooFuriganaClient(client_id, endpoint=config.endpoint, timeout=config.timeout)


@dataclass
class WebConfig:
    defaults: FuriganaConfig = field(default_factory=FuriganaConfig)
    allow_origins: tuple[str, ...] = ("*",)
    client_factory: ClientFactory = _default_client_factory


def _request_config(defaults: FuriganaConfig, payload: dict[str, object]) -> FuriganaConfig:
    overrides = {
        key: payload[key]
        for key in ("grade", "skipLength", "rubyStyle", "perCharacter", "clientId")
        if payload.get(key) is not None
    }
    if not overrides:
        return defaults
    base = {
        "grade": defaults.grade,
        "skip_length": defaults.skip_length,
        "style": defaults.style.value,
        "per_character": defaults.per_character,
        "max_chunk_bytes": defaults.max_chunk_bytes,
        "jobs": defaults.jobs,
        "client_id": defaults.client_id,
        "endpoint": defaults.endpoint,
        "timeout": defaults.timeout,
    }
    base.update(overrides)
    try:
        return config_from_mapping(base, source="request")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _upstream_status(exc: AnnotationServiceError) -> int:
    # JSON-RPC error codes are negative; only HTTP statuses are passed through.
    if isinstance(exc.code, int) and 400 <= exc.code <= 599:
        return exc.code
    return 400


def _require_text(payload: dict[str, object]) -> str:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload.")
    text = payload.get("text")
    if not isinstance(text, str) or not text:
        raise HTTPException(status_code=400, detail="text is required.")
    return text


def create_app(config: WebConfig | None = None) -> FastAPI:
    config = config or WebConfig()
    app = FastAPI(title="furiganizer")
    app.state.config = config
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allow_origins),
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["Content-Type"],
    )

    def _client_for(run_config: FuriganaConfig) -> YahooFuriganaClient:
        client_id = run_config.resolved_client_id()
        if not client_id:
            raise HTTPException(status_code=400, detail="clientId is required.")
        return config.client_factory(client_id, run_config)

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    @app.post("/api/furigana")
    def api_furigana(payload: dict[str, object] = Body(...)) -> JSONResponse:
        text = _require_text(payload)
        run_config = _request_config(config.defaults, payload)
        client = _client_for(run_config)
        try:
            data = client.request_raw(text, run_config.grade)
        except AnnotationServiceUnavailableError as exc:
            debug_log(f"proxy request failed: {exc}")
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except AnnotationServiceError as exc:
            debug_log(f"proxy request rejected: {exc}")
            raise HTTPException(status_code=_upstream_status(exc), detail=str(exc)) from exc
        finally:
            client.close()
        return JSONResponse(data)

    @app.post("/api/ruby")
    def api_ruby(payload: dict[str, object] = Body(...)) -> JSONResponse:
        text = _require_text(payload)
        run_config = _request_config(config.defaults, payload)
        client = _client_for(run_config)
        try:
            result = FuriganaProcessor(client, run_config).process(text)
        finally:
            client.close()
        return JSONResponse(
            {
                "text": result.text,
                "chunks": result.chunk_count,
                "diagnostics": [diag.to_dict() for diag in result.diagnostics],
            }
        )

    return app


__all__ = ["WebConfig", "create_app"]
