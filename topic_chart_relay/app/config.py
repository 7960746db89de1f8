"""
Environment-backed settings.

Rationale:
- Read the environment once, at the entry point, and pass Settings down.
- Keep the surface tiny: credential, model, port, timeout, strictness, log level.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_PORT = 3001
DEFAULT_PROVIDER_TIMEOUT = 120.0

# First match wins
API_KEY_VARS = ("GEMINI_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY", "LLM_API_KEY")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    model_name: str = DEFAULT_MODEL
    port: int = DEFAULT_PORT
    provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT
    strict_chart_validation: bool = False
    log_level: str = "INFO"

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(
                f"One of {', '.join(API_KEY_VARS)} must be set in environment"
            )
        return self.api_key


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None, use_dotenv: bool = True) -> Settings:
    """
    Build Settings from the process environment (after loading .env) or from
    an explicit mapping.
    """
    if env is None:
        if use_dotenv:
            load_dotenv()
        env = os.environ

    api_key = next((env[name] for name in API_KEY_VARS if env.get(name)), None)

    return Settings(
        api_key=api_key,
        model_name=env.get("GEMINI_MODEL") or DEFAULT_MODEL,
        port=_parse_number(env, "PORT", DEFAULT_PORT, int),
        provider_timeout=_parse_number(env, "PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT, float),
        strict_chart_validation=(env.get("STRICT_CHART_VALIDATION", "").strip().lower() in _TRUE_VALUES),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )
