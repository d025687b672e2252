"""
Configuration loader for spotproxy.

What it does:
- Reads static settings from `config/config.yaml` (defaults apply when the file
  is absent).
- Resolves API credentials from environment variables using an exchange/environment
  derived prefix: `{exchange.upper()}_{environment.replace('-', '_').upper()}`.
  Example: `BINANCE_SPOT_API_KEY`.
- Validates the resulting configuration using Pydantic models.

Where it is used:
- Called once by `spotproxy.main`; the resulting `Settings` is passed explicitly
  to `create_app` and `BinanceSpotClient`.
"""

import os
import pathlib
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from spotproxy.ledger.ledger import DEFAULT_QUOTE, DEFAULT_QUOTE_ASSETS

DEFAULT_BASE_URL = "https://api.binance.com"


class ServerConfig(BaseModel):
    """Bind address for the HTTP server."""
    host: str = "0.0.0.0"
    port: int = 3000


class Settings(BaseModel):
    """Runtime settings assembled from YAML + environment variables."""
    exchange: str = "binance"
    environment: str = "spot"
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    api_secret: str = ""
    recv_window_ms: int = 60_000
    trades_limit: int = 1000
    quote_assets: List[str] = Field(default_factory=lambda: list(DEFAULT_QUOTE_ASSETS))
    default_quote: str = DEFAULT_QUOTE
    quote_overrides: Dict[str, str] = Field(default_factory=dict)
    server: ServerConfig = Field(default_factory=ServerConfig)
    metrics_port: int = 8000

    @field_validator("base_url")
    @classmethod
    def strip_slash(cls, v):
        return v.rstrip("/")

    @field_validator("recv_window_ms")
    @classmethod
    def recv_window_range(cls, v):
        # Binance rejects recvWindow above 60s
        if not 0 < v <= 60_000:
            raise ValueError("recv_window_ms must be in (0, 60000]")
        return v

    @field_validator("quote_overrides")
    @classmethod
    def upper_overrides(cls, v):
        return {k.upper(): q.upper() for k, q in v.items()}

    @property
    def env_prefix(self) -> str:
        return env_prefix(self.exchange, self.environment)

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


def env_prefix(exchange: str, environment: str) -> str:
    return f"{exchange.upper()}_{environment.replace('-', '_').upper()}"


def load_settings(path: str = "config/config.yaml", environ: Optional[Dict[str, str]] = None) -> Settings:
    """Load YAML config, resolve env-var credentials, and return Settings.

    Env-var names follow the prefix convention using `exchange` and `environment`.
    `{PREFIX}_BASE_URL` and `PORT` override the YAML values when set.
    """
    env = os.environ if environ is None else environ
    config: Dict[str, Any] = {}
    p = pathlib.Path(path)
    if p.exists():
        with open(p, "r") as f:
            config = yaml.safe_load(f) or {}
    exchange = config.get("exchange", "binance")
    environment = config.get("environment", "spot")
    prefix = env_prefix(exchange, environment)
    config["api_key"] = env.get(f"{prefix}_API_KEY", "")
    config["api_secret"] = env.get(f"{prefix}_API_SECRET", "")
    base_url = env.get(f"{prefix}_BASE_URL")
    if base_url:
        config["base_url"] = base_url
    port = env.get("PORT")
    if port:
        server = dict(config.get("server") or {})
        server["port"] = int(port)
        config["server"] = server
    return Settings(**config)
