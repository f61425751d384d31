from __future__ import annotations

import json
import time
from typing import Protocol

import requests

from .logging_utils import debug_log
from .words import AnnotatedWord, words_from_payload

YAHOO_FURIGANA_URL = "https://jlp.yahooapis.jp/FuriganaService/V2/furigana"
YAHOO_FURIGANA_METHOD = "jlp.furiganaservice.furigana"
MIN_GRADE = 1
MAX_GRADE = 8


class AnnotationServiceError(RuntimeError):
    """Raised when the annotation service rejects a request or answers with garbage."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code: {self.code})"


class AnnotationServiceUnavailableError(AnnotationServiceError):
    """Raised when the annotation service cannot be reached."""


class Annotator(Protocol):
    def __call__(self, text: str, grade: int) -> list[AnnotatedWord]: ...


def validate_grade(grade: int) -> int:
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise ValueError(f"grade must be an integer between {MIN_GRADE} and {MAX_GRADE}")
    if not MIN_GRADE <= grade <= MAX_GRADE:
        raise ValueError(f"grade must be between {MIN_GRADE} and {MAX_GRADE}, got {grade}")
    return grade


class YahooFuriganaClient:
    """
    Minimal JSON-RPC client for the Yahoo! JAPAN furigana service.
    """

    def __init__(
        self,
        client_id: str,
        *,
        endpoint: str = YAHOO_FURIGANA_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not client_id:
            raise ValueError("A Yahoo client ID is required.")
        self.client_id = client_id
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = session or requests.Session()

    def _build_payload(self, text: str, grade: int) -> dict[str, object]:
        return {
            "id": str(int(time.time() * 1000)),
            "jsonrpc": "2.0",
            "method": YAHOO_FURIGANA_METHOD,
            "params": {"q": text, "grade": grade},
        }

    def request_raw(self, text: str, grade: int) -> dict:
        """
        Post one request and return the decoded JSON-RPC success payload.
        """
        payload = self._build_payload(text, validate_grade(grade))
        debug_log(f"furigana request: {len(text)} chars, grade={grade}")
        try:
            resp = self._session.post(
                self.endpoint,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "User-Agent": f"Yahoo AppID: {self.client_id}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AnnotationServiceUnavailableError(
                f"Failed to contact furigana service at {self.endpoint}"
            ) from exc

        if resp.status_code != 200:
            raise AnnotationServiceError(
                f"Furigana service failed with status {resp.status_code}: {resp.text}",
                code=resp.status_code,
            )
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise AnnotationServiceError("Furigana service returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise AnnotationServiceError("Furigana service returned an unexpected payload")

        error = data.get("error")
        if error is not None:
            if isinstance(error, dict):
                code = error.get("code")
                raise AnnotationServiceError(
                    f"API Error: {error.get('message', 'unknown error')}",
                    code=code if isinstance(code, int) else None,
                )
            raise AnnotationServiceError(f"API Error: {error}")
        return data

    def annotate(self, text: str, grade: int) -> list[AnnotatedWord]:
        data = self.request_raw(text, grade)
        result = data.get("result")
        words = result.get("word") if isinstance(result, dict) else None
        if not isinstance(words, list):
            raise AnnotationServiceError("Furigana service response has no word list")
        try:
            parsed = words_from_payload(words)
        except ValueError as exc:
            raise AnnotationServiceError(str(exc)) from exc
        debug_log(f"furigana response: {len(parsed)} words")
        return parsed

    __call__ = annotate

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "YahooFuriganaClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = [
    "AnnotationServiceError",
    "AnnotationServiceUnavailableError",
    "Annotator",
    "MAX_GRADE",
    "MIN_GRADE",
    "YAHOO_FURIGANA_URL",
    "YahooFuriganaClient",
    "validate_grade",
]
