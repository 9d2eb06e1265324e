from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import OracleConfig
from .errors import BackendError
from .models import ChatTurn, GenerationRequest, GenerationResponse

log = logging.getLogger(__name__)


def _contents_payload(request: GenerationRequest) -> List[dict]:
    if isinstance(request.contents, str):
        return [{"role": "user", "parts": [{"text": request.contents}]}]
    rows = []
    for turn in request.contents:
        if not isinstance(turn, ChatTurn):
            turn = ChatTurn.from_dict(turn)
        rows.append({"role": turn.role.value, "parts": [{"text": turn.text}]})
    return rows


def build_payload(request: GenerationRequest) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"contents": _contents_payload(request)}
    if request.system_instruction:
        payload["systemInstruction"] = {"parts": [{"text": request.system_instruction}]}
    if request.web_search:
        payload["tools"] = [{"google_search": {}}]
    return payload


def parse_response(data: Dict[str, Any]) -> GenerationResponse:
    candidates = data.get("candidates") or []
    if not candidates:
        return GenerationResponse()
    first = candidates[0] or {}
    parts = (first.get("content") or {}).get("parts") or []
    text = "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict) and not part.get("thought"))
    metadata = first.get("groundingMetadata") or {}
    chunks = tuple(chunk for chunk in metadata.get("groundingChunks") or [] if isinstance(chunk, dict))
    return GenerationResponse(
        text=text,
        grounding_chunks=chunks,
        candidates=len(candidates),
        finish_reason=first.get("finishReason"),
    )


def _error_from_response(resp: requests.Response) -> BackendError:
    status = ""
    message = resp.reason or ""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        status = str(body["error"].get("status") or "")
        message = str(body["error"].get("message") or message)
    return BackendError(resp.status_code, status, message)


class GeminiClient:
    """Cliente mínimo del endpoint REST generateContent."""

    def __init__(self, config: OracleConfig | None = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or OracleConfig()
        self.session = session or requests.Session()

    def _url(self, model: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/models/{model}:generateContent"

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        if not self.config.api_key:
            raise BackendError(403, "PERMISSION_DENIED", "API key not configured (GEMINI_API_KEY)")
        resp = self.session.post(
            self._url(request.model),
            json=build_payload(request),
            headers={"x-goog-api-key": self.config.api_key},
            timeout=self.config.timeout,
        )
        if resp.status_code >= 400:
            error = _error_from_response(resp)
            log.debug("Gemini %s returned %s", request.model, error)
            raise error
        return parse_response(resp.json())
