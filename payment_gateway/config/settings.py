from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_RPC_URLS = (
    "https://bsc-dataseed1.binance.org/",
    "https://bsc-dataseed2.binance.org/",
)


_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


def _env_raw(name: str) -> str | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_raw(name)
    return default if raw is None else raw.lower() in _TRUTHY


def _env_number(name: str, default, cast, min_value=None):
    """Read a numeric env var with ``cast``; blank means ``default``, values clamp to ``min_value``."""
    raw = _env_raw(name)
    value = default if raw is None else cast(raw)
    return value if min_value is None else max(min_value, value)


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = _env_raw(name)
    if raw is None:
        return default
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or default


@dataclass(frozen=True)
class Settings:
    rpc_urls: tuple[str, ...]
    rpc_timeout_seconds: float
    db_path: str
    invoice_tree: str
    poll_interval_seconds: int
    data_dir: str
    log_level: str
    events_enabled: bool


def load_settings(env_file: str | None = None) -> Settings:
    load_dotenv(env_file)
    return Settings(
        rpc_urls=_env_list("RPC_URLS", DEFAULT_RPC_URLS),
        rpc_timeout_seconds=_env_number("RPC_TIMEOUT_SECONDS", 10.0, float, min_value=1.0),
        db_path=os.environ.get("DB_PATH", "/data/gateway.sqlite3"),
        invoice_tree=os.environ.get("INVOICE_TREE", "invoices").strip() or "invoices",
        poll_interval_seconds=_env_number("POLL_INTERVAL_SECONDS", 10, int, min_value=1),
        data_dir=os.environ.get("DATA_DIR", "/data"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        events_enabled=_env_bool("EVENTS_ENABLED", True),
    )
