from __future__ import annotations

from prometheus_client import REGISTRY, Counter


def _get_or_create_counter(name: str, description: str, labels: tuple[str, ...] = ()) -> Counter:
    names_map = getattr(REGISTRY, "_names_to_collectors", None)
    if isinstance(names_map, dict):
        existing = names_map.get(name) or names_map.get(f"{name}_total")
        if isinstance(existing, Counter):
            return existing
    return Counter(name, description, labels)


ATTEMPT_FAILURES = _get_or_create_counter(
    "signaldesk_oracle_attempt_failures",
    "Intentos fallidos contra el backend generativo",
    ("rate_limited",),
)
CLASSIFIED_ERRORS = _get_or_create_counter(
    "signaldesk_oracle_errors",
    "Errores clasificados entregados a los llamadores",
    ("operation", "category"),
)
