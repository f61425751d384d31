from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

from .annotator import YAHOO_FURIGANA_URL, validate_grade
from .chunking import DEFAULT_MAX_CHUNK_BYTES
from .ruby import RubyStyle
from .suppression import normalize_skip_length

CLIENT_ID_ENV = "FURIGANIZER_CLIENT_ID"
DEFAULT_GRADE = 8
DEFAULT_SKIP_LENGTH = 6080

# Field names as posted by the browser form.
_CAMEL_CASE_KEYS = {
    "skipLength": "skip_length",
    "rubyStyle": "style",
    "perCharacter": "per_character",
    "maxChunkBytes": "max_chunk_bytes",
    "clientId": "client_id",
}


@dataclass(frozen=True)
class FuriganaConfig:
    grade: int = DEFAULT_GRADE
    skip_length: int = DEFAULT_SKIP_LENGTH
    style: RubyStyle = RubyStyle.INK_BRACKET
    per_character: bool = False
    max_chunk_bytes: int = DEFAULT_MAX_CHUNK_BYTES
    jobs: int = 1
    client_id: str | None = None
    endpoint: str = YAHOO_FURIGANA_URL
    timeout: float = 30.0

    def __post_init__(self) -> None:
        validate_grade(self.grade)
        object.__setattr__(self, "skip_length", normalize_skip_length(self.skip_length))
        object.__setattr__(self, "style", RubyStyle.parse(self.style))
        if self.max_chunk_bytes < 1:
            raise ValueError(f"max_chunk_bytes must be positive, got {self.max_chunk_bytes}")
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")

    def merged(self, **overrides: object) -> "FuriganaConfig":
        """Return a copy with every non-None override applied."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **updates)

    def resolved_client_id(self) -> str | None:
        return self.client_id or os.environ.get(CLIENT_ID_ENV) or None


def config_from_mapping(raw: dict[str, object], *, source: str = "config") -> FuriganaConfig:
    known = {f.name for f in fields(FuriganaConfig)}
    values: dict[str, object] = {}
    for key, value in raw.items():
        name = _CAMEL_CASE_KEYS.get(key, key)
        if name not in known or value is None:
            continue
        values[name] = value

    for name in ("grade", "skip_length", "max_chunk_bytes", "jobs"):
        if name not in values:
            continue
        value = values[name]
        if isinstance(value, str):
            try:
                values[name] = int(value.strip())
            except ValueError as exc:
                raise ValueError(f"{source}: '{name}' must be an integer.") from exc
        elif isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{source}: '{name}' must be an integer.")
    if "timeout" in values:
        value = values["timeout"]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{source}: 'timeout' must be a number.")
        values["timeout"] = float(value)
    if "per_character" in values and not isinstance(values["per_character"], bool):
        raise ValueError(f"{source}: 'per_character' must be true or false.")
    for name in ("client_id", "endpoint", "style"):
        if name in values and not isinstance(values[name], str):
            raise ValueError(f"{source}: '{name}' must be a string.")
    try:
        return FuriganaConfig(**values)  # type: ignore[arg-type]
    except ValueError as exc:
        raise ValueError(f"{source}: {exc}") from exc


def load_config(path: Path) -> FuriganaConfig:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Failed to parse config file: {path}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name} must contain a JSON object.")
    return config_from_mapping(raw, source=path.name)


__all__ = [
    "CLIENT_ID_ENV",
    "DEFAULT_GRADE",
    "DEFAULT_SKIP_LENGTH",
    "FuriganaConfig",
    "config_from_mapping",
    "load_config",
]
