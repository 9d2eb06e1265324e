from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union


class Direction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class SignalStatus(str, Enum):
    LIVE = "Live"
    EXPIRED = "Expired"


class Sentiment(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class RsiInterpretation(str, Enum):
    OVERBOUGHT = "Overbought"
    OVERSOLD = "Oversold"
    NEUTRAL = "Neutral"


class AssetCategory(str, Enum):
    STOCKS = "Stocks"
    FOREX = "Forex"
    COMMODITIES = "Commodities"
    INDICES = "Indices"
    CRYPTO = "Crypto"


class TradingStyle(str, Enum):
    SCALPER = "Scalper"
    DAY_TRADER = "Day Trader"
    SWING_TRADER = "Swing Trader"
    POSITION_TRADER = "Position Trader"


class RiskTolerance(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_ts(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class Asset:
    name: str
    category: AssetCategory


@dataclass(frozen=True)
class UserProfile:
    trading_style: TradingStyle = TradingStyle.DAY_TRADER
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM

    def to_dict(self) -> dict:
        return {"tradingStyle": self.trading_style.value, "riskTolerance": self.risk_tolerance.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "UserProfile":
        data = data or {}
        return cls(
            trading_style=TradingStyle(data.get("tradingStyle") or TradingStyle.DAY_TRADER.value),
            risk_tolerance=RiskTolerance(data.get("riskTolerance") or RiskTolerance.MEDIUM.value),
        )


@dataclass(frozen=True)
class SignalSource:
    title: str
    uri: str

    def to_dict(self) -> dict:
        return {"title": self.title, "uri": self.uri}


@dataclass(frozen=True)
class PivotPoints:
    r2: str = ""
    r1: str = ""
    pivot: str = ""
    s1: str = ""
    s2: str = ""

    def to_dict(self) -> dict:
        return {"r2": self.r2, "r1": self.r1, "pivot": self.pivot, "s1": self.s1, "s2": self.s2}


@dataclass(frozen=True)
class RsiReading:
    value: float = 0.0
    interpretation: RsiInterpretation = RsiInterpretation.NEUTRAL

    def to_dict(self) -> dict:
        return {"value": self.value, "interpretation": self.interpretation.value}


@dataclass(frozen=True)
class MovingAverages:
    sma20: str = ""
    sma50: str = ""
    sma100: str = ""

    def to_dict(self) -> dict:
        return {"sma20": self.sma20, "sma50": self.sma50, "sma100": self.sma100}


@dataclass(frozen=True)
class TradingSignal:
    asset_name: str
    update_time: datetime
    direction: Direction
    confidence: int
    entry_price: str = ""
    tp1: str = ""
    tp2: str = ""
    sl: str = ""
    pivot_points: PivotPoints = field(default_factory=PivotPoints)
    rsi: RsiReading = field(default_factory=RsiReading)
    sma: MovingAverages = field(default_factory=MovingAverages)
    strategy_description: str = ""
    risk_tip: str = ""
    sources: Tuple[SignalSource, ...] = ()
    status: SignalStatus = SignalStatus.LIVE

    def with_status(self, status: SignalStatus) -> "TradingSignal":
        return replace(self, status=status)

    def is_stale(self, now: datetime | None = None, ttl: timedelta = timedelta(hours=24)) -> bool:
        now = now or _utc_now()
        return now - self.update_time > ttl

    def to_dict(self) -> dict:
        return {
            "assetName": self.asset_name,
            "updateTime": _iso(self.update_time),
            "direction": self.direction.value,
            "confidence": self.confidence,
            "entryPrice": self.entry_price,
            "tp1": self.tp1,
            "tp2": self.tp2,
            "sl": self.sl,
            "pivotPoints": self.pivot_points.to_dict(),
            "rsi": self.rsi.to_dict(),
            "sma": self.sma.to_dict(),
            "strategyDescription": self.strategy_description,
            "riskTip": self.risk_tip,
            "sources": [s.to_dict() for s in self.sources],
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TradingSignal":
        """Reconstruye una señal ya normalizada (p.ej. desde el historial)."""
        pivots = data.get("pivotPoints") or {}
        rsi = data.get("rsi") or {}
        sma = data.get("sma") or {}
        return cls(
            asset_name=str(data["assetName"]),
            update_time=_parse_ts(data["updateTime"]),
            direction=Direction(data.get("direction") or Direction.BUY.value),
            confidence=int(data.get("confidence") or 0),
            entry_price=str(data.get("entryPrice") or ""),
            tp1=str(data.get("tp1") or ""),
            tp2=str(data.get("tp2") or ""),
            sl=str(data.get("sl") or ""),
            pivot_points=PivotPoints(**{k: str(pivots.get(k) or "") for k in ("r2", "r1", "pivot", "s1", "s2")}),
            rsi=RsiReading(
                value=float(rsi.get("value") or 0.0),
                interpretation=RsiInterpretation(rsi.get("interpretation") or RsiInterpretation.NEUTRAL.value),
            ),
            sma=MovingAverages(**{k: str(sma.get(k) or "") for k in ("sma20", "sma50", "sma100")}),
            strategy_description=str(data.get("strategyDescription") or ""),
            risk_tip=str(data.get("riskTip") or ""),
            sources=tuple(
                SignalSource(title=str(s.get("title") or ""), uri=str(s.get("uri") or ""))
                for s in data.get("sources") or []
            ),
            status=SignalStatus(data.get("status") or SignalStatus.LIVE.value),
        )


@dataclass(frozen=True)
class NewsArticle:
    title: str
    snippet: str
    url: str
    source_name: str
    sentiment: Sentiment
    impact_summary: str

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "snippet": self.snippet,
            "url": self.url,
            "sourceName": self.source_name,
            "sentiment": self.sentiment.value,
            "impactSummary": self.impact_summary,
        }


@dataclass(frozen=True)
class ChatTurn:
    role: ChatRole
    text: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "text": self.text}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatTurn":
        return cls(role=ChatRole(data.get("role") or ChatRole.USER.value), text=str(data.get("text") or ""))


Contents = Union[str, Sequence[ChatTurn]]


@dataclass(frozen=True)
class GenerationRequest:
    """Una llamada al backend generativo."""

    model: str
    contents: Contents
    system_instruction: Optional[str] = None
    web_search: bool = False


@dataclass(frozen=True)
class GenerationResponse:
    text: str = ""
    grounding_chunks: Tuple[Dict[str, Any], ...] = ()
    candidates: int = 0
    finish_reason: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.text and not self.candidates
