"""Configuration loading for the player history service."""

import os
from functools import lru_cache
from typing import Any, Dict, List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "PHC_"


class Settings(BaseModel):
    search_url: str = "https://store.steampowered.com/api/storesearch/"
    history_url_template: str = "https://steamcharts.com/app/{app_id}/chart-data.json"
    players_url: str = "https://api.steampowered.com/ISteamUserStats/GetNumberOfCurrentPlayers/v1/"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    request_timeout: float = Field(10.0, gt=0.0)
    search_language: str = "english"
    search_country: str = "US"
    ws_chunk_size: int = Field(5000, ge=1)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in Settings.model_fields:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if name == "cors_origins":
            overrides[name] = [origin.strip() for origin in raw.split(",") if origin.strip()]
        else:
            overrides[name] = raw
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment (and a .env file if present)."""
    load_dotenv()
    return Settings(**_env_overrides())
