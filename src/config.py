from __future__ import annotations
from typing import Any

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    telegram_apikey: str = ""
    api_base_url: str = "https://api.mochi.pod.town"
    request_timeout: float | None = None   # seconds; None keeps httpx's default

    log_level: str = "INFO"
    log_file: str = "tokenbot.log"


def load_app_config(path: str = "config/config.yaml") -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f)


def lookup_config() -> dict[str, Any]:
    cfg = app_config.get("lookup", {})
    return {
        "debounce_delay": cfg.get("debounce_ms", 200) / 1000,
        "max_results": cfg.get("max_results", 20),
        "session_idle_seconds": cfg.get("session_idle_seconds", 600),
    }


settings = Settings()
app_config = load_app_config()
