from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, TypeVar

from .errors import EmptyResponseError, is_rate_limited
from .metrics import ATTEMPT_FAILURES

log = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, rng: Callable[[], float] = random.random) -> float:
    """Backoff exponencial (base * 2^intento) más hasta 1s de jitter."""
    return base_delay * (2 ** attempt) + rng() * 1.0


def execute_with_retry(
    operation: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
    is_empty: Optional[Callable[[T], bool]] = None,
) -> T:
    """Ejecuta `operation` hasta `max_retries + 1` veces.

    Una respuesta sin texto ni candidatos cuenta como fallo y se reintenta.
    Agotados los intentos se relanza la última excepción tal cual, para que el
    clasificador pueda inspeccionarla.
    """
    attempts = max(0, int(max_retries)) + 1
    last_error: Optional[BaseException] = None
    for attempt in range(attempts):
        try:
            result = operation()
            if is_empty is not None and is_empty(result):
                raise EmptyResponseError()
            return result
        except Exception as exc:
            last_error = exc
            limited = is_rate_limited(exc)
            ATTEMPT_FAILURES.labels(rate_limited=str(limited).lower()).inc()
            log.warning("AI call attempt %s/%s failed (rate_limited=%s): %s", attempt + 1, attempts, limited, exc)
            if attempt < attempts - 1:
                delay = backoff_delay(attempt, base_delay, rng)
                log.warning("Retrying in %.2fs", delay)
                sleep(delay)
    assert last_error is not None
    raise last_error
