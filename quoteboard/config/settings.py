from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


def _default_pacing() -> dict[str, float]:
    return {"kite": 0.25, "finnhub": 1.1, "coingecko": 1.1}


class AppSettings(BaseModel):
    app_name: str = "quoteboard"
    log_level: str = "INFO"
    kite_api_key: str = ""
    kite_base_url: str = "https://api.kite.trade"
    finnhub_api_key: str = ""
    finnhub_base_url: str = "https://finnhub.io/api/v1"
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    refresh_interval_seconds: float = Field(default=60.0, gt=0)
    request_timeout_seconds: float = Field(default=6.0, gt=0)
    pacing_seconds: dict[str, float] = Field(default_factory=_default_pacing)
    max_backoff_seconds: float = 30.0
    crypto_cache_ttl_seconds: float = 20.0
    llm_base_url: str = "http://localhost:3001"
    llm_model: str = "openai/gpt-oss-20b"
    gemini_bridge_url: str = "http://localhost:3002"


def _env(name: str, legacy_name: str | None = None) -> str | None:
    val = os.getenv(f"QUOTEBOARD_{name}")
    if val is not None:
        return val
    if legacy_name:
        return os.getenv(legacy_name)
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return payload if isinstance(payload, dict) else {}


def load_settings(path: Path | None = None) -> AppSettings:
    """Model defaults, overridden by the YAML file, overridden by environment."""
    base = Path(__file__).resolve().parents[2]
    source = path or Path(_env("CONFIG") or base / "config" / "settings.yaml")
    payload = _load_yaml(source)
    providers = payload.get("providers", {}) if isinstance(payload.get("providers"), dict) else {}
    kite_cfg = providers.get("kite", {}) or {}
    finnhub_cfg = providers.get("finnhub", {}) or {}
    gecko_cfg = providers.get("coingecko", {}) or {}
    sched_cfg = payload.get("scheduler", {}) or {}
    chat_cfg = payload.get("chat", {}) or {}

    values: dict[str, Any] = {
        "app_name": _env("APP_NAME") or payload.get("app_name"),
        "log_level": _env("LOG_LEVEL") or payload.get("log_level"),
        "kite_api_key": _env("KITE_API_KEY", "KITE_API_KEY") or kite_cfg.get("api_key"),
        "kite_base_url": _env("KITE_BASE_URL") or kite_cfg.get("base_url"),
        "finnhub_api_key": _env("FINNHUB_API_KEY", "FINNHUB_API_KEY") or finnhub_cfg.get("api_key"),
        "finnhub_base_url": _env("FINNHUB_BASE_URL") or finnhub_cfg.get("base_url"),
        "coingecko_base_url": _env("COINGECKO_BASE_URL") or gecko_cfg.get("base_url"),
        "refresh_interval_seconds": _env("REFRESH_INTERVAL_SECONDS") or sched_cfg.get("refresh_interval_seconds"),
        "request_timeout_seconds": _env("REQUEST_TIMEOUT_SECONDS") or sched_cfg.get("request_timeout_seconds"),
        "max_backoff_seconds": _env("MAX_BACKOFF_SECONDS") or sched_cfg.get("max_backoff_seconds"),
        "crypto_cache_ttl_seconds": _env("CRYPTO_CACHE_TTL_SECONDS") or gecko_cfg.get("cache_ttl_seconds"),
        "llm_base_url": _env("LLM_BASE_URL") or chat_cfg.get("local_base_url"),
        "llm_model": _env("LLM_MODEL") or chat_cfg.get("model"),
        "gemini_bridge_url": _env("GEMINI_BRIDGE_URL") or chat_cfg.get("gemini_base_url"),
    }

    pacing = _default_pacing()
    for name, cfg in (("kite", kite_cfg), ("finnhub", finnhub_cfg), ("coingecko", gecko_cfg)):
        raw = _env(f"{name.upper()}_PACING_SECONDS") or cfg.get("pacing_seconds")
        if raw is not None:
            pacing[name] = float(raw)
    values["pacing_seconds"] = pacing

    return AppSettings(**{k: v for k, v in values.items() if v is not None})


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
