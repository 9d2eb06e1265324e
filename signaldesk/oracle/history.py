"""Estado del usuario: historial de señales, watchlist, fuentes y perfil.

No forma parte de la fachada del oráculo: consume los registros que ésta
produce y los guarda en el `StateStore`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from .models import SignalSource, SignalStatus, TradingSignal, UserProfile
from .store import FEATURED_SITES_KEY, HISTORY_KEY, PROFILE_KEY, THEME_KEY, WATCHLIST_KEY, StateStore

log = logging.getLogger(__name__)

DEFAULT_SIGNAL_TTL = timedelta(hours=24)
EXCLUDED_SOURCE_HOSTS = {"vertexaisearch.cloud.google.com"}
THEMES = ("light", "dark")


def _hostname(url: str) -> Optional[str]:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return parsed.hostname


def expire_signals(signals: Sequence[TradingSignal], now: datetime, ttl: timedelta = DEFAULT_SIGNAL_TTL) -> List[TradingSignal]:
    """Pasa a Expired las señales Live más viejas que `ttl`; nunca al revés."""
    updated = []
    for signal in signals:
        if signal.status == SignalStatus.LIVE and signal.is_stale(now, ttl):
            signal = signal.with_status(SignalStatus.EXPIRED)
        updated.append(signal)
    return updated


def merge_featured_sources(existing: Iterable[dict], sources: Iterable[SignalSource]) -> List[dict]:
    """Añade las fuentes nuevas, una por host (sin www.), en orden de llegada."""
    candidates = list(existing)
    for source in sources:
        host = _hostname(source.uri)
        if host is None or host in EXCLUDED_SOURCE_HOSTS:
            continue
        candidates.append({"name": source.title, "url": source.uri})

    merged: dict[str, dict] = {}
    for site in candidates:
        host = _hostname(str(site.get("url") or ""))
        if host is None:
            continue
        merged.setdefault(host.removeprefix("www."), site)
    return list(merged.values())


class SignalHistory:
    def __init__(
        self,
        store: StateStore,
        ttl: timedelta = DEFAULT_SIGNAL_TTL,
        clock=lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.ttl = ttl
        self._clock = clock

    @staticmethod
    def _parse(rows: Any) -> List[TradingSignal]:
        signals = []
        for row in rows or []:
            try:
                signals.append(TradingSignal.from_dict(row))
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("Dropping unreadable history entry: %s", exc)
        return signals

    def entries(self) -> List[TradingSignal]:
        now = self._clock()
        result: List[TradingSignal] = []

        def _expire(rows: Any) -> list:
            result[:] = expire_signals(self._parse(rows), now, self.ttl)
            return [signal.to_dict() for signal in result]

        self.store.update(HISTORY_KEY, _expire, [])
        return result

    def add(self, signal: TradingSignal) -> TradingSignal:
        live = signal.with_status(SignalStatus.LIVE)
        self.store.update(
            HISTORY_KEY,
            lambda rows: [live.to_dict()] + [s.to_dict() for s in self._parse(rows)],
            [],
        )
        self._record_sources(live.sources)
        return live

    def clear(self) -> None:
        self.store.delete(HISTORY_KEY)

    def featured_sources(self) -> List[dict]:
        return list(self.store.get(FEATURED_SITES_KEY, []) or [])

    def _record_sources(self, sources: Sequence[SignalSource]) -> None:
        self.store.update(FEATURED_SITES_KEY, lambda current: merge_featured_sources(current or [], sources), [])


class Watchlist:
    def __init__(self, store: StateStore, initial: Sequence[str] = ()) -> None:
        self.store = store
        self.initial = list(initial)

    def _current(self, stored: Any) -> List[str]:
        return list(self.initial) if stored is None else list(stored)

    def items(self) -> List[str]:
        return self.store.update(WATCHLIST_KEY, self._current)

    def add(self, asset_name: str) -> List[str]:
        def _add(stored: Any) -> List[str]:
            current = self._current(stored)
            if asset_name not in current:
                current.append(asset_name)
            return current

        return self.store.update(WATCHLIST_KEY, _add)

    def remove(self, asset_name: str) -> List[str]:
        return self.store.update(
            WATCHLIST_KEY,
            lambda stored: [name for name in self._current(stored) if name != asset_name],
        )


class Preferences:
    def __init__(self, store: StateStore) -> None:
        self.store = store

    def profile(self) -> UserProfile:
        try:
            return UserProfile.from_dict(self.store.get(PROFILE_KEY))
        except ValueError:
            log.warning("Invalid stored user profile, using defaults")
            return UserProfile()

    def set_profile(self, profile: UserProfile) -> UserProfile:
        self.store.set(PROFILE_KEY, profile.to_dict())
        return profile

    def theme(self) -> str:
        value = self.store.get(THEME_KEY)
        return value if value in THEMES else "dark"

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"tema no válido: {theme}")
        self.store.set(THEME_KEY, theme)
        return theme
