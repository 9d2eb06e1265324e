from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import closing
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

from ..core.settings import get_settings

log = logging.getLogger(__name__)

HISTORY_KEY = "signalHistory"
WATCHLIST_KEY = "watchlist"
FEATURED_SITES_KEY = "featuredSites"
PROFILE_KEY = "userProfile"
THEME_KEY = "theme"


class StateStore:
    """Blobs JSON bajo claves con nombre, persistidos en sqlite.

    `update` ejecuta lectura, transformación y escritura bajo el mismo lock;
    es la vía para cualquier cambio que dependa del valor anterior.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def _read(self, key: str, default: Any) -> Any:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            log.warning("Corrupted value for key %s in %s, using default", key, self.path)
            return default

    def _write(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False, allow_nan=False)
        with closing(self._connect()) as conn, conn:
            conn.execute("INSERT OR REPLACE INTO state(key, value) VALUES(?, ?)", (key, payload))

    def get(self, key: str, default: Any = None) -> Any:
        return self._read(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._write(key, value)

    def update(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Aplica `fn` al valor actual y guarda el resultado de forma atómica."""
        with self._lock:
            value = fn(self._read(key, default))
            self._write(key, value)
            return value

    def delete(self, key: str) -> None:
        with self._lock, closing(self._connect()) as conn, conn:
            conn.execute("DELETE FROM state WHERE key = ?", (key,))


@lru_cache()
def get_state_store() -> StateStore:
    return StateStore(get_settings().signaldesk_state)
