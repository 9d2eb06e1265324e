from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.config_loader import load_config
from ..core.settings import get_settings


@dataclass
class OracleConfig:
    api_key: Optional[str] = None
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 60.0
    signal_model: str = "gemini-2.5-flash"
    briefing_model: str = "gemini-2.5-pro"
    news_model: str = "gemini-2.5-pro"
    chat_model: str = "gemini-2.5-pro"
    max_retries: int = 3
    base_delay: float = 1.0
    news_count: int = 5

    @classmethod
    def from_dict(cls, data: dict | None, defaults: "OracleConfig | None" = None) -> "OracleConfig":
        base = defaults or cls()
        data = data or {}
        models = data.get("models") or {}
        return cls(
            api_key=data.get("api_key") or base.api_key,
            base_url=str(data.get("base_url") or base.base_url),
            timeout=float(data.get("timeout") or base.timeout),
            signal_model=str(models.get("signal") or base.signal_model),
            briefing_model=str(models.get("briefing") or base.briefing_model),
            news_model=str(models.get("news") or base.news_model),
            chat_model=str(models.get("chat") or base.chat_model),
            max_retries=int(data["max_retries"]) if data.get("max_retries") is not None else base.max_retries,
            base_delay=float(data["base_delay"]) if data.get("base_delay") is not None else base.base_delay,
            news_count=int(data.get("news_count") or base.news_count),
        )


def load_oracle_config() -> OracleConfig:
    settings = get_settings()
    backend = settings.backend
    defaults = OracleConfig(
        api_key=backend.api_key,
        base_url=backend.base_url,
        timeout=backend.timeout,
        signal_model=backend.flash_model,
        briefing_model=backend.pro_model,
        news_model=backend.pro_model,
        chat_model=backend.pro_model,
        max_retries=backend.max_retries,
        base_delay=backend.base_delay,
    )
    cfg = load_config(settings.signaldesk_config)
    oracle_dict = cfg.get("oracle") if isinstance(cfg, dict) else None
    return OracleConfig.from_dict(oracle_dict or {}, defaults=defaults)
