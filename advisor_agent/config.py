"""Centralized configuration for the TeacherMada advisor agent.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/teachermada-agent/<VARIABLE_NAME>``.

Nothing is read at import time except the ``.env`` file: call
:func:`load_settings` to get an immutable :class:`Settings` snapshot.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from advisor_agent.errors import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

SSM_PREFIX = "/teachermada-agent"

DEFAULT_MODEL_NAME = "claude-sonnet-4-5"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1024
DEFAULT_HISTORY_LIMIT = 10
DEFAULT_RETAIN_COUNT = 4


# ── Secret resolution ────────────────────────────────────────────────

def _on_aws() -> bool:
    return bool(os.getenv("AWS_EXECUTION_ENV"))


def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy import to avoid boto3 dep in tests)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"{SSM_PREFIX}/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _get_secret(name: str) -> str | None:
    """Return a secret from env-var or SSM, or ``None`` if neither has it."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _on_aws():
        return _get_ssm_parameter(name)
    return None


def parse_credentials(raw: str | None) -> list[str]:
    """Split a comma-separated credential list, dropping blanks."""
    if not raw:
        return []
    return [key.strip() for key in raw.split(",") if key.strip()]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


# ── Settings ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Settings:
    """Everything needed to build an orchestrator and serve it."""

    api_keys: list[str]
    model_name: str = DEFAULT_MODEL_NAME
    summary_model_name: str = DEFAULT_MODEL_NAME
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    history_limit: int = DEFAULT_HISTORY_LIMIT
    retain_count: int = DEFAULT_RETAIN_COUNT
    max_sessions: int = 0
    request_log_size: int = 200
    server_host: str = "0.0.0.0"
    server_port: int = 8000


def load_settings() -> Settings:
    """Read the environment and return a :class:`Settings` snapshot.

    Raises :class:`ConfigurationError` when no API key is configured, since
    the agent has no way to reach the provider without one.
    """
    api_keys = parse_credentials(_get_secret("API_KEYS"))
    if not api_keys:
        raise ConfigurationError(
            "Missing required configuration: API_KEYS. "
            f"Set it in .env (local) or SSM Parameter Store {SSM_PREFIX}/API_KEYS (AWS)."
        )

    model_name = os.getenv("MODEL_NAME", DEFAULT_MODEL_NAME)
    settings = Settings(
        api_keys=api_keys,
        model_name=model_name,
        summary_model_name=os.getenv("SUMMARY_MODEL_NAME", model_name),
        temperature=_float_env("TEMPERATURE", DEFAULT_TEMPERATURE),
        max_tokens=_int_env("MAX_TOKENS", DEFAULT_MAX_TOKENS),
        history_limit=_int_env("HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
        retain_count=_int_env("RETAIN_COUNT", DEFAULT_RETAIN_COUNT),
        max_sessions=_int_env("MAX_SESSIONS", 0),
        request_log_size=_int_env("REQUEST_LOG_SIZE", 200),
        server_host=os.getenv("SERVER_HOST", "0.0.0.0"),
        server_port=_int_env("SERVER_PORT", 8000),
    )
    if settings.history_limit <= settings.retain_count:
        logger.warning(
            "HISTORY_LIMIT (%d) <= RETAIN_COUNT (%d): history compaction is disabled",
            settings.history_limit, settings.retain_count,
        )
    logger.debug(
        "Loaded settings: %d credential(s), model=%s, history_limit=%d, retain_count=%d",
        len(api_keys), model_name, settings.history_limit, settings.retain_count,
    )
    return settings


def cors_origins() -> list[str]:
    """Allowed browser origins (the web simulator), comma-separated."""
    return os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173",
    ).split(",")
