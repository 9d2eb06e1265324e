from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..core.config_loader import strip_trailing_commas
from .errors import MalformedPayloadError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Extraction:
    payload: Any = None
    error: Optional[MalformedPayloadError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.payload


def _first_index(text: str, *chars: str) -> int:
    found = [idx for idx in (text.find(ch) for ch in chars) if idx != -1]
    return min(found) if found else -1


def extract_structured(text: str) -> Any:
    """Extrae el objeto/array JSON embebido en la respuesta del modelo.

    El modelo suele envolver el JSON en prosa o bloques ```json, así que se toma
    desde el primer { o [ hasta el último } o ], se quitan las comas finales y
    se parsea.
    """
    text = text or ""
    start = _first_index(text, "{", "[")
    if start == -1:
        raise MalformedPayloadError("No JSON object or array found in AI response.", raw=text)
    end = max(text.rfind("}"), text.rfind("]"))
    if end < start:
        raise MalformedPayloadError("Malformed JSON object found in AI response.", raw=text)

    candidate = strip_trailing_commas(text[start : end + 1])
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        log.error("Failed to parse JSON from AI response: %s", candidate)
        raise MalformedPayloadError("Failed to parse JSON from AI response.", raw=candidate) from exc


def try_extract(text: str) -> Extraction:
    try:
        return Extraction(payload=extract_structured(text))
    except MalformedPayloadError as exc:
        return Extraction(error=exc)
