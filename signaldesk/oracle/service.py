from __future__ import annotations

import logging
import random
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .catalog import AssetCatalog
from .client import GeminiClient
from .config import OracleConfig, load_oracle_config
from .errors import ClassifiedError, EmptyResponseError, ErrorCategory, classify_error
from .extract import extract_structured
from .metrics import CLASSIFIED_ERRORS
from .models import ChatRole, ChatTurn, GenerationRequest, GenerationResponse, NewsArticle, TradingSignal, UserProfile
from .normalizers import normalize_chat_reply, normalize_news_batch, normalize_signal, normalize_text
from .prompts import briefing_prompt, chat_instruction, news_prompt, signal_prompt
from .retry import execute_with_retry

log = logging.getLogger(__name__)

_RAW_TEXT_CATEGORIES = {ErrorCategory.MALFORMED_PAYLOAD, ErrorCategory.MISSING_FIELD}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_text(response: GenerationResponse, what: str) -> str:
    if not response.text:
        log.error("AI %s response was empty or blocked (candidates=%s, finish_reason=%s)",
                  what, response.candidates, response.finish_reason)
        raise EmptyResponseError(f"AI {what} response was empty or blocked.")
    return response.text


class Oracle:
    """Fachada de adquisición: reintento → extracción → normalización.

    Cada método devuelve un registro normalizado o lanza un único
    `ClassifiedError`; los reintentos son transparentes para el llamador.
    """

    def __init__(
        self,
        config: OracleConfig | None = None,
        client: Optional[GeminiClient] = None,
        catalog: Optional[AssetCatalog] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config or load_oracle_config()
        self.client = client or GeminiClient(self.config)
        self.catalog = catalog or AssetCatalog()
        self._sleep = sleep
        self._rng = rng
        self._clock = clock

    def _generate(self, request: GenerationRequest) -> GenerationResponse:
        return execute_with_retry(
            lambda: self.client.generate(request),
            max_retries=self.config.max_retries,
            base_delay=self.config.base_delay,
            sleep=self._sleep,
            rng=self._rng,
            is_empty=GenerationResponse.is_empty,
        )

    def _classify(
        self,
        operation: str,
        error: Exception,
        subject: str,
        response: Optional[GenerationResponse] = None,
    ) -> ClassifiedError:
        classified = classify_error(error, response, subject=subject)
        CLASSIFIED_ERRORS.labels(operation=operation, category=classified.category.value).inc()
        log.error("Error in %s (%s): %s", operation, classified.category.value, error)
        if response is not None and response.text and classified.category in _RAW_TEXT_CATEGORIES:
            log.error("Problematic AI response text for %s: %s", operation, response.text)
        return classified

    def request_briefing(self) -> str:
        request = GenerationRequest(model=self.config.briefing_model, contents=briefing_prompt(), web_search=True)
        response: Optional[GenerationResponse] = None
        try:
            response = self._generate(request)
            return normalize_text(_require_text(response, "market briefing"))
        except Exception as exc:
            raise self._classify("briefing", exc, "market briefing", response) from exc

    def request_signal(self, asset_name: str, profile: UserProfile | None = None) -> TradingSignal:
        profile = profile or UserProfile()
        category = self.catalog.category_of(asset_name)
        if category is None:
            log.debug("Asset %s not in catalog, requesting without category", asset_name)
        request = GenerationRequest(
            model=self.config.signal_model,
            contents=signal_prompt(asset_name, profile, category),
            web_search=True,
        )
        response: Optional[GenerationResponse] = None
        try:
            response = self._generate(request)
            payload = extract_structured(_require_text(response, "signal"))
            return normalize_signal(payload, asset_name, response.grounding_chunks, now=self._clock())
        except Exception as exc:
            raise self._classify("signal", exc, "analysis", response) from exc

    def request_news_batch(self, category: str = "All") -> List[NewsArticle]:
        request = GenerationRequest(
            model=self.config.news_model,
            contents=news_prompt(category, self.config.news_count),
            web_search=True,
        )
        response: Optional[GenerationResponse] = None
        try:
            response = self._generate(request)
            payload = extract_structured(_require_text(response, "news"))
            return normalize_news_batch(payload)
        except Exception as exc:
            raise self._classify("news", exc, "news", response) from exc

    def request_chat_reply(
        self,
        history: Sequence[ChatTurn],
        new_message: str,
        signal_context: TradingSignal,
    ) -> ChatTurn:
        contents = tuple(history) + (ChatTurn(role=ChatRole.USER, text=new_message),)
        request = GenerationRequest(
            model=self.config.chat_model,
            contents=contents,
            system_instruction=chat_instruction(signal_context),
            web_search=True,
        )
        response: Optional[GenerationResponse] = None
        try:
            response = self._generate(request)
            return normalize_chat_reply(_require_text(response, "chat"))
        except Exception as exc:
            raise self._classify("chat", exc, "chat response", response) from exc


_ORACLE_SINGLETON: Optional[Oracle] = None


def get_oracle() -> Oracle:
    global _ORACLE_SINGLETON
    if _ORACLE_SINGLETON is None:
        _ORACLE_SINGLETON = Oracle()
    return _ORACLE_SINGLETON
