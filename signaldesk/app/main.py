import logging
import os
import secrets
from datetime import date, datetime, timezone
from typing import List, NamedTuple, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from ..core import config_loader
from ..core.settings import Settings, get_settings
from ..oracle.router import oracle_router
from .models import Health

SETTINGS = get_settings()
logging.basicConfig(
    level=getattr(logging, str(SETTINGS.log_level).upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


class PanelToken(NamedTuple):
    value: str
    expires: Optional[date] = None

    def accepts(self, candidate: str, today: date) -> bool:
        if self.expires and today > self.expires:
            return False
        return secrets.compare_digest(candidate, self.value)


def parse_panel_tokens(raw: str) -> List[PanelToken]:
    """`token` o `token@YYYY-MM-DD`, separados por comas; una fecha inválida deja el token sin caducidad."""
    tokens: List[PanelToken] = []
    for chunk in (raw or "").split(","):
        value, _, exp_val = chunk.strip().partition("@")
        if not value.strip():
            continue
        expires = None
        if exp_val.strip():
            try:
                expires = datetime.strptime(exp_val.strip(), "%Y-%m-%d").date()
            except ValueError:
                log.warning("Ignoring invalid expiry for panel token: %s", exp_val)
        tokens.append(PanelToken(value.strip(), expires))
    return tokens


def _configured_tokens(settings: Settings) -> List[PanelToken]:
    raw = ",".join(filter(None, [settings.panel_api_tokens, settings.panel_api_token]))
    return parse_panel_tokens(raw)


PANEL_TOKENS = _configured_tokens(SETTINGS)


def require_panel_token(request: Request) -> None:
    """Sin tokens configurados la API del oráculo queda abierta."""
    if not PANEL_TOKENS:
        return
    header = request.headers.get("x-panel-token") or ""
    today = datetime.now(timezone.utc).date()
    if not any(token.accepts(header, today) for token in PANEL_TOKENS):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Panel-Token inválido",
        )


app = FastAPI(title="SignalDesk API", version="1.0.0")
Instrumentator().instrument(app).expose(app, include_in_schema=False)
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(oracle_router, dependencies=[Depends(require_panel_token)])


@app.get("/health", response_model=Health)
def health():
    return Health(
        ok=True,
        time=str(datetime.now(timezone.utc)),
        pid=os.getpid(),
        backend_configured=bool(get_settings().gemini_api_key),
        config_path=config_loader.CFG_PATH_IN_USE,
    )
