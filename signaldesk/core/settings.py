from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendDefaults(BaseModel):
    api_key: Optional[str]
    base_url: str
    timeout: float
    flash_model: str
    pro_model: str
    max_retries: int
    base_delay: float


class Settings(BaseSettings):
    gemini_api_key: Optional[str] = Field(None, validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"))
    gemini_base_url: str = Field("https://generativelanguage.googleapis.com/v1beta")
    gemini_timeout: float = Field(60.0)
    gemini_flash_model: str = Field("gemini-2.5-flash")
    gemini_pro_model: str = Field("gemini-2.5-pro")
    oracle_max_retries: int = Field(3)
    oracle_base_delay: float = Field(1.0)
    signal_ttl_hours: float = Field(24.0)
    signaldesk_config: Optional[Path] = Field(None)
    signaldesk_state: Path = Field(Path("./state/signaldesk.db"))
    log_level: str = Field("INFO")
    allowed_origins: str = Field("http://localhost:3000")
    panel_api_tokens: str = Field("")
    panel_api_token: str = Field("")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()] or ["http://localhost:3000"]

    @property
    def backend(self) -> BackendDefaults:
        return BackendDefaults(
            api_key=self.gemini_api_key,
            base_url=self.gemini_base_url,
            timeout=self.gemini_timeout,
            flash_model=self.gemini_flash_model,
            pro_model=self.gemini_pro_model,
            max_retries=self.oracle_max_retries,
            base_delay=self.oracle_base_delay,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
