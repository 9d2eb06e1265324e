from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from ..core.settings import get_settings
from .catalog import INITIAL_WATCHLIST, trading_view_symbol
from .errors import ClassifiedError, ErrorCategory
from .history import Preferences, SignalHistory, Watchlist
from .models import AssetCategory, ChatTurn, TradingSignal, UserProfile
from .service import get_oracle
from .store import get_state_store

oracle_router = APIRouter(prefix="/oracle", tags=["oracle"])

HTTP_STATUS = {
    ErrorCategory.PERMISSION_DENIED: 403,
    ErrorCategory.RATE_LIMITED: 429,
    ErrorCategory.EMPTY_RESPONSE: 502,
    ErrorCategory.MALFORMED_PAYLOAD: 502,
    ErrorCategory.MISSING_FIELD: 502,
    ErrorCategory.UNKNOWN: 503,
}


def _error_response(exc: ClassifiedError) -> JSONResponse:
    return JSONResponse(status_code=HTTP_STATUS.get(exc.category, 503), content=exc.as_dict())


def _history() -> SignalHistory:
    ttl = timedelta(hours=get_settings().signal_ttl_hours)
    return SignalHistory(get_state_store(), ttl=ttl)


def _parse_profile(raw: Any) -> UserProfile:
    try:
        return UserProfile.from_dict(raw)
    except (ValueError, AttributeError) as exc:
        raise HTTPException(status_code=400, detail=f"perfil no válido: {exc}")


@oracle_router.get("/briefing")
def oracle_briefing():
    try:
        text = get_oracle().request_briefing()
    except ClassifiedError as exc:
        return _error_response(exc)
    return {"briefing": text}


@oracle_router.post("/signal")
def oracle_signal(payload: Dict[str, Any]):
    asset_name = str(payload.get("assetName") or "").strip()
    if not asset_name:
        raise HTTPException(status_code=400, detail="assetName requerido")
    if payload.get("profile") is not None:
        profile = _parse_profile(payload["profile"])
    else:
        profile = Preferences(get_state_store()).profile()
    try:
        signal = get_oracle().request_signal(asset_name, profile)
    except ClassifiedError as exc:
        return _error_response(exc)
    stored = _history().add(signal)
    return stored.to_dict()


@oracle_router.get("/news")
def oracle_news(category: str = Query("All")):
    allowed = {"All"} | {item.value for item in AssetCategory}
    if category not in allowed:
        raise HTTPException(status_code=400, detail=f"categoría no válida: {category}")
    try:
        articles = get_oracle().request_news_batch(category)
    except ClassifiedError as exc:
        return _error_response(exc)
    return {"articles": [article.to_dict() for article in articles], "count": len(articles)}


@oracle_router.post("/chat")
def oracle_chat(payload: Dict[str, Any]):
    message = str(payload.get("message") or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="message requerido")
    try:
        signal = TradingSignal.from_dict(payload.get("signal") or {})
        history = [ChatTurn.from_dict(turn) for turn in payload.get("history") or []]
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise HTTPException(status_code=400, detail=f"payload no válido: {exc}")
    try:
        reply = get_oracle().request_chat_reply(history, message, signal)
    except ClassifiedError as exc:
        return _error_response(exc)
    return {"reply": reply.to_dict()}


@oracle_router.get("/history")
def oracle_history():
    rows = [signal.to_dict() for signal in _history().entries()]
    return {"rows": rows, "count": len(rows)}


@oracle_router.delete("/history")
def oracle_history_clear():
    _history().clear()
    return {"ok": True}


@oracle_router.get("/sources")
def oracle_sources():
    return {"sources": _history().featured_sources()}


@oracle_router.get("/watchlist")
def oracle_watchlist():
    return {"assets": Watchlist(get_state_store(), INITIAL_WATCHLIST).items()}


@oracle_router.post("/watchlist")
def oracle_watchlist_add(payload: Dict[str, Any]):
    asset_name = str(payload.get("assetName") or "").strip()
    if not asset_name:
        raise HTTPException(status_code=400, detail="assetName requerido")
    return {"assets": Watchlist(get_state_store(), INITIAL_WATCHLIST).add(asset_name)}


@oracle_router.delete("/watchlist")
def oracle_watchlist_remove(asset: str = Query(..., min_length=1)):
    return {"assets": Watchlist(get_state_store(), INITIAL_WATCHLIST).remove(asset)}


@oracle_router.get("/profile")
def oracle_profile():
    prefs = Preferences(get_state_store())
    return {"profile": prefs.profile().to_dict(), "theme": prefs.theme()}


@oracle_router.put("/profile")
def oracle_profile_update(payload: Dict[str, Any]):
    prefs = Preferences(get_state_store())
    if payload.get("profile") is not None:
        prefs.set_profile(_parse_profile(payload["profile"]))
    if payload.get("theme") is not None:
        try:
            prefs.set_theme(str(payload["theme"]))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
    return {"profile": prefs.profile().to_dict(), "theme": prefs.theme()}


@oracle_router.get("/assets")
def oracle_assets():
    catalog = get_oracle().catalog
    return {"assets": [{"name": asset.name, "category": asset.category.value} for asset in catalog]}


@oracle_router.get("/symbol")
def oracle_symbol(asset: str = Query(..., min_length=1)):
    return {"asset": asset, "symbol": trading_view_symbol(asset, get_oracle().catalog)}
