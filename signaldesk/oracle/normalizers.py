"""Convierte payloads crudos del modelo en registros tipados.

El modelo no es de fiar para la marca temporal ni para el nombre del activo:
ambos los aporta el llamador. La dirección se fuerza a BUY/SELL.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from .errors import EmptyResponseError, MalformedPayloadError, MissingFieldError
from .models import (
    ChatRole,
    ChatTurn,
    Direction,
    MovingAverages,
    NewsArticle,
    PivotPoints,
    RsiInterpretation,
    RsiReading,
    Sentiment,
    SignalSource,
    TradingSignal,
)

log = logging.getLogger(__name__)

CONFIDENCE_MIN = 0
CONFIDENCE_MAX = 100
UNKNOWN_SOURCE_TITLE = "Unknown Source"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else {}


def collect_sources(grounding_chunks: Optional[Iterable[Any]]) -> List[SignalSource]:
    """Una fuente (título, uri) por chunk; los chunks sin uri se descartan."""
    sources: List[SignalSource] = []
    for chunk in grounding_chunks or []:
        if not isinstance(chunk, Mapping):
            continue
        web = chunk.get("web") if isinstance(chunk.get("web"), Mapping) else chunk
        uri = _text(web.get("uri"))
        if not uri:
            continue
        sources.append(SignalSource(title=_text(web.get("title")) or UNKNOWN_SOURCE_TITLE, uri=uri))
    return sources


def coerce_direction(raw: Any) -> Direction:
    direction = ("" if raw is None else str(raw)).upper()
    if direction not in (Direction.BUY.value, Direction.SELL.value):
        log.warning("Invalid direction received from AI: %r. Defaulting to BUY.", raw)
    return Direction.SELL if direction == Direction.SELL.value else Direction.BUY


def coerce_confidence(raw: Any) -> int:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        log.warning("Invalid confidence received from AI: %r. Using %s.", raw, CONFIDENCE_MIN)
        return CONFIDENCE_MIN
    if not math.isfinite(value):
        log.warning("Non-finite confidence received from AI: %r. Using %s.", raw, CONFIDENCE_MIN)
        return CONFIDENCE_MIN
    return int(round(max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, value))))


def _coerce_rsi(raw: Mapping[str, Any]) -> RsiReading:
    try:
        value = float(raw.get("value") or 0.0)
    except (TypeError, ValueError):
        value = 0.0
    if not math.isfinite(value):
        log.warning("Non-finite RSI value received from AI: %r. Using 0.0.", raw.get("value"))
        value = 0.0
    label = _text(raw.get("interpretation")).lower()
    interpretation = next((item for item in RsiInterpretation if item.value.lower() == label), None)
    if interpretation is None:
        if label:
            log.warning("Invalid RSI interpretation from AI: %r. Using Neutral.", raw.get("interpretation"))
        interpretation = RsiInterpretation.NEUTRAL
    return RsiReading(value=value, interpretation=interpretation)


def coerce_sentiment(raw: Any) -> Sentiment:
    label = _text(raw).lower()
    for item in Sentiment:
        if item.value.lower() == label:
            return item
    log.debug("Unknown sentiment %r, using Neutral", raw)
    return Sentiment.NEUTRAL


def normalize_signal(
    raw: Any,
    asset_name: str,
    grounding_chunks: Optional[Iterable[Any]] = None,
    now: Optional[datetime] = None,
) -> TradingSignal:
    if not isinstance(raw, Mapping):
        raise MalformedPayloadError("AI signal payload is not a JSON object.")
    pivots = _section(raw, "pivotPoints")
    sma = _section(raw, "sma")
    return TradingSignal(
        asset_name=asset_name,
        update_time=now or datetime.now(timezone.utc),
        direction=coerce_direction(raw.get("direction")),
        confidence=coerce_confidence(raw.get("confidence")),
        entry_price=_text(raw.get("entryPrice")),
        tp1=_text(raw.get("tp1")),
        tp2=_text(raw.get("tp2")),
        sl=_text(raw.get("sl")),
        pivot_points=PivotPoints(**{key: _text(pivots.get(key)) for key in ("r2", "r1", "pivot", "s1", "s2")}),
        rsi=_coerce_rsi(_section(raw, "rsi")),
        sma=MovingAverages(**{key: _text(sma.get(key)) for key in ("sma20", "sma50", "sma100")}),
        strategy_description=str(raw.get("strategyDescription") or ""),
        risk_tip=str(raw.get("riskTip") or ""),
        sources=tuple(collect_sources(grounding_chunks)),
    )


def normalize_article(raw: Mapping[str, Any]) -> NewsArticle:
    return NewsArticle(
        title=_text(raw.get("title")),
        snippet=_text(raw.get("snippet")),
        url=_text(raw.get("url")),
        source_name=_text(raw.get("sourceName")),
        sentiment=coerce_sentiment(raw.get("sentiment")),
        impact_summary=_text(raw.get("impactSummary")),
    )


def normalize_news_batch(raw: Any) -> List[NewsArticle]:
    articles = raw.get("articles") if isinstance(raw, Mapping) else None
    if not isinstance(articles, list):
        log.error("AI news payload is missing the articles array: %r", raw)
        raise MissingFieldError("articles", "AI response for news is missing 'articles' array.")
    batch: List[NewsArticle] = []
    for idx, item in enumerate(articles):
        if not isinstance(item, Mapping):
            log.warning("Skipping news item %s: expected object, got %s", idx, type(item).__name__)
            continue
        batch.append(normalize_article(item))
    return batch


def normalize_text(text: Any) -> str:
    cleaned = _text(text)
    if not cleaned:
        raise EmptyResponseError("AI returned an empty text response.")
    return cleaned


def normalize_chat_reply(text: Any) -> ChatTurn:
    return ChatTurn(role=ChatRole.MODEL, text=normalize_text(text))
