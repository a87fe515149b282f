from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_opt_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def consul_address() -> str:
    """Registry base address: CONSUL_ADDR, else CONSUL_HOST/CONSUL_PORT."""
    addr = os.getenv("CONSUL_ADDR")
    if addr:
        return addr.rstrip("/")
    host = os.getenv("CONSUL_HOST") or "consul"
    port = os.getenv("CONSUL_PORT") or "8500"
    return f"http://{host}:{port}"


@dataclass(frozen=True)
class Settings:
    # Core
    consul_addr: str = "http://consul:8500"
    timeout_s: int = 330
    wait_s: int | None = None
    strict_query: bool = False
    rewatch_terminated: bool = False

    # Retry schedule
    retry_seed_ms: int = 100
    retry_max_ms: int = 30_000
    retry_max_tries: int = 10

    # Optional sqlite event log
    events_db: str | None = None

    # Email alerting (optional)
    enable_email: bool = False
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str | None = None
    email_to: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            consul_addr=consul_address(),
            timeout_s=_env_int("DISCONSULATE_TIMEOUT_S", 330),
            wait_s=_env_opt_int("DISCONSULATE_WAIT_S"),
            strict_query=_env_bool("DISCONSULATE_STRICT_QUERY", False),
            rewatch_terminated=_env_bool("DISCONSULATE_REWATCH_TERMINATED", False),
            retry_seed_ms=_env_int("DISCONSULATE_RETRY_SEED_MS", 100),
            retry_max_ms=_env_int("DISCONSULATE_RETRY_MAX_MS", 30_000),
            retry_max_tries=_env_int("DISCONSULATE_RETRY_MAX_TRIES", 10),
            events_db=os.getenv("DISCONSULATE_EVENTS_DB") or None,
            enable_email=_env_bool("DISCONSULATE_ENABLE_EMAIL", False),
            smtp_host=os.getenv("DISCONSULATE_SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_env_int("DISCONSULATE_SMTP_PORT", 587),
            smtp_user=os.getenv("DISCONSULATE_SMTP_USER"),
            smtp_password=os.getenv("DISCONSULATE_SMTP_PASSWORD"),
            email_from=os.getenv("DISCONSULATE_EMAIL_FROM"),
            email_to=os.getenv("DISCONSULATE_EMAIL_TO"),
        )
