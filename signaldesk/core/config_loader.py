from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)

CFG_PATH_IN_USE: Optional[str] = None

# cadenas JSON o comentarios // y /* */
_TOKEN_RE = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*(?=[}\]])")


def strip_trailing_commas(text: str) -> str:
    """Elimina comas finales antes de } o ]."""
    return _TRAILING_COMMA_RE.sub("", text)


def _strip_json_comments(text: str) -> str:
    """Elimina // y /* */ sin tocar contenido dentro de cadenas."""

    def _keep_strings(match: re.Match[str]) -> str:
        token = match.group(0)
        return token if token.startswith('"') else ""

    return _TOKEN_RE.sub(_keep_strings, text)


def _json_load_permissive(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if text and text[0] == "\ufeff":  # BOM
        text = text[1:]
    text = strip_trailing_commas(_strip_json_comments(text))
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path} no contiene un objeto JSON")
    return data


def _candidates() -> list[Path]:
    here = Path(__file__).resolve()
    return [
        here.parents[2] / "config" / "config.json",
        Path.cwd() / "config" / "config.json",
    ]


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Carga config.json (argumento, SIGNALDESK_CONFIG o rutas conocidas del proyecto).
    Acepta comentarios // y /* */ y comas finales. El archivo es opcional:
    sin archivo devuelve {} y se usan los valores de entorno.
    """
    global CFG_PATH_IN_USE

    explicit = path or os.getenv("SIGNALDESK_CONFIG")
    if explicit:
        p = Path(explicit)
        if not p.exists():
            raise FileNotFoundError(f"No se encontró el config indicado: {p}")
        CFG_PATH_IN_USE = str(p)
        return _json_load_permissive(p)

    for candidate in _candidates():
        if candidate.exists():
            CFG_PATH_IN_USE = str(candidate)
            return _json_load_permissive(candidate)

    log.debug("config.json not found, using environment defaults")
    CFG_PATH_IN_USE = None
    return {}
