from __future__ import annotations

import time
from dataclasses import dataclass


def unix_time_millis() -> int:
    return time.time_ns() // 1_000_000


def unix_time_seconds() -> int:
    return time.time_ns() // 1_000_000_000


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Invoice:
    """Expected payment of ``amount`` base units to ``to``.

    ``token_address`` names the ERC-20 contract the payment is made in;
    ``None`` means the chain's native currency.
    """

    to: str
    amount: int
    token_address: str | None = None
    created_at: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.to, str) or not self.to:
            raise ValueError("invoice recipient must be a non-empty str")
        if self.token_address is not None and not isinstance(self.token_address, str):
            raise ValueError(f"token address must be a str or None, got {type(self.token_address).__name__}")
        if not _is_int(self.amount):
            raise ValueError(f"invoice amount must be an int, got {type(self.amount).__name__}")
        if self.amount <= 0:
            raise ValueError(f"invoice amount must be positive, got {self.amount}")
        if not _is_int(self.created_at) or self.created_at < 0:
            raise ValueError(f"created_at must be a non-negative int, got {self.created_at!r}")

    @property
    def is_native(self) -> bool:
        return self.token_address is None
