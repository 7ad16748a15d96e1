"""Configuration models and loading."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.exceptions import ConfigurationError

CONFIG_DIR = Path.home() / ".config" / "shopify-app-proxy"
CONFIG_FILE = CONFIG_DIR / "config.json"

ProxyMode = Literal["rewrite", "liquid"]


class ProxySettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    route_prefix: str = "/proxy"
    environment: str = "development"
    mode: ProxyMode = "rewrite"
    debug: bool = False

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        value = "/" + value.strip("/")
        if value == "/":
            raise ValueError("route_prefix must not be the root path")
        return value


class TargetSettings(BaseModel):
    base_url: str = "http://localhost:3003"
    timeout: float = 30.0
    max_redirects: int = 5

    @field_validator("base_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"target base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


class ShopifySettings(BaseModel):
    api_secret: str = ""
    proxy_prefix: str = "apps"
    proxy_subpath: str = "a"


class Config(BaseModel):
    model_config = {"frozen": True}

    proxy: ProxySettings = Field(default_factory=ProxySettings)
    target: TargetSettings = Field(default_factory=TargetSettings)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)

    @property
    def external_path(self) -> str:
        """Storefront-facing mount path, e.g. ``/apps/a``."""
        return f"/{self.shopify.proxy_prefix.strip('/')}/{self.shopify.proxy_subpath.strip('/')}"

    @property
    def enforce_signature(self) -> bool:
        return self.proxy.environment == "production"


# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "TARGET_DOMAIN": ("target", "base_url"),
    "SHOPIFY_API_SECRET": ("shopify", "api_secret"),
    "PROXY_PREFIX": ("shopify", "proxy_prefix"),
    "PROXY_SUBPATH": ("shopify", "proxy_subpath"),
    "PORT": ("proxy", "port"),
    "APP_ENV": ("proxy", "environment"),
    "NODE_ENV": ("proxy", "environment"),
    "PROXY_MODE": ("proxy", "mode"),
}


def apply_env_overrides(data: dict, environ: dict[str, str] | None = None) -> dict:
    """Overlay environment variables onto raw config data."""
    environ = os.environ if environ is None else environ
    merged = {section: dict(values) for section, values in data.items() if isinstance(values, dict)}
    for env_name, (section, field) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            merged.setdefault(section, {})[field] = value
    return merged


def build_config(data: dict, environ: dict[str, str] | None = None) -> Config:
    """Validate raw config data with environment overrides applied."""
    try:
        return Config.model_validate(apply_env_overrides(data, environ))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_config(environ: dict[str, str] | None = None) -> Config:
    """Load configuration from JSON file, creating default if needed."""
    if not CONFIG_FILE.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        CONFIG_FILE.write_text(Config().model_dump_json(indent=2))
        return build_config({}, environ)

    try:
        data = json.loads(CONFIG_FILE.read_text())
        Config.model_validate(data)
    except (json.JSONDecodeError, ValidationError):
        # Backup corrupted config and recreate default
        backup = CONFIG_FILE.with_suffix(".json.bak")
        CONFIG_FILE.rename(backup)
        CONFIG_FILE.write_text(Config().model_dump_json(indent=2))
        data = {}
    return build_config(data, environ)
