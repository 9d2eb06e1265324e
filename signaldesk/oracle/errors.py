"""Taxonomía de errores del oráculo y clasificador único.

Los componentes internos (retry, extract, normalizers, client) lanzan
`OracleError` o errores de transporte sin capturarlos; la fachada llama a
`classify_error` una sola vez y entrega al llamador un `ClassifiedError` con
el mensaje canónico.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED")
PERMISSION_MARKERS = ("403", "PERMISSION_DENIED")


class ErrorCategory(str, Enum):
    EMPTY_RESPONSE = "EmptyResponse"
    PERMISSION_DENIED = "PermissionDenied"
    RATE_LIMITED = "RateLimited"
    MALFORMED_PAYLOAD = "MalformedPayload"
    MISSING_FIELD = "MissingField"
    UNKNOWN = "Unknown"


USER_MESSAGES = {
    ErrorCategory.PERMISSION_DENIED: "Permission Denied. Please check your API key and project settings.",
    ErrorCategory.RATE_LIMITED: "The service is currently busy due to high demand. Please wait a moment and try again.",
    ErrorCategory.EMPTY_RESPONSE: (
        "Failed to get a valid {subject} from AI. The content may have been blocked "
        "or the model returned an empty response."
    ),
    ErrorCategory.MALFORMED_PAYLOAD: "Failed to get valid {subject} from AI. The model returned an unexpected format.",
    ErrorCategory.MISSING_FIELD: "The AI response for {subject} was missing required data. Please try again.",
    ErrorCategory.UNKNOWN: "Failed to get {subject} from AI. The model may be overloaded or the content may have been blocked.",
}


class OracleError(Exception):
    """Error interno del oráculo; nunca llega tal cual al usuario."""


class EmptyResponseError(OracleError):
    def __init__(self, message: str = "AI response was empty or malformed.") -> None:
        super().__init__(message)


class MalformedPayloadError(OracleError):
    def __init__(self, message: str, raw: str | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class MissingFieldError(OracleError):
    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"AI response is missing '{field}'.")
        self.field = field


class BackendError(OracleError):
    """Respuesta no-2xx del backend generativo."""

    def __init__(self, status_code: int | None, status: str | None = None, message: str | None = None) -> None:
        self.status_code = status_code
        self.status = status or ""
        self.detail = message or ""
        parts = [str(status_code) if status_code is not None else "", self.status, self.detail]
        super().__init__(" ".join(p for p in parts if p).strip() or "backend error")


class ClassifiedError(Exception):
    """Único error visible para los llamadores de la fachada."""

    def __init__(self, category: ErrorCategory, message: str) -> None:
        super().__init__(message)
        self.category = category
        self.message = message

    def as_dict(self) -> dict:
        return {"category": self.category.value, "detail": self.message}


def is_rate_limited(error: BaseException | str) -> bool:
    text = error if isinstance(error, str) else str(error)
    return any(marker in text for marker in RATE_LIMIT_MARKERS)


def _is_permission_denied(text: str) -> bool:
    return any(marker in text for marker in PERMISSION_MARKERS)


def _response_is_empty(response: Any) -> bool:
    if response is None:
        return False
    empty = getattr(response, "is_empty", None)
    return bool(empty() if callable(empty) else empty)


def user_message(category: ErrorCategory, subject: str = "analysis") -> str:
    return USER_MESSAGES[category].format(subject=subject)


def classify_error(error: BaseException, response: Optional[Any] = None, *, subject: str = "analysis") -> ClassifiedError:
    """Traduce el fallo terminal a una categoría accionable.

    El orden importa: una respuesta vacía no tiene mensaje que inspeccionar, así
    que se resuelve antes que los patrones 403/429.
    """
    if isinstance(error, ClassifiedError):
        return error
    if isinstance(error, EmptyResponseError) or _response_is_empty(response):
        category = ErrorCategory.EMPTY_RESPONSE
    else:
        # JSONDecodeError incluye posiciones ("column 403") que no son códigos HTTP
        text = error.msg if isinstance(error, json.JSONDecodeError) else str(error)
        if _is_permission_denied(text):
            category = ErrorCategory.PERMISSION_DENIED
        elif is_rate_limited(text):
            category = ErrorCategory.RATE_LIMITED
        elif isinstance(error, (MalformedPayloadError, json.JSONDecodeError)):
            category = ErrorCategory.MALFORMED_PAYLOAD
        elif isinstance(error, MissingFieldError):
            category = ErrorCategory.MISSING_FIELD
        else:
            category = ErrorCategory.UNKNOWN
    classified = ClassifiedError(category, user_message(category, subject))
    classified.__cause__ = error
    return classified
