from __future__ import annotations

import json
from typing import Protocol, TypeVar

from payment_gateway.domain import Invoice

T = TypeVar("T")


class Codec(Protocol[T]):
    """Byte encoding for one value type. ``from_bytes(to_bytes(v)) == v`` must hold."""

    def to_bytes(self, value: T) -> bytes: ...

    def from_bytes(self, data: bytes) -> T: ...


class InvoiceCodec:
    """Compact JSON. ``amount`` is written as a decimal string so any width survives."""

    def to_bytes(self, value: Invoice) -> bytes:
        if not isinstance(value, Invoice):
            raise TypeError(f"expected Invoice, got {type(value).__name__}")
        payload = {
            "to": value.to,
            "amount": str(value.amount),
            "token_address": value.token_address,
            "created_at": value.created_at,
        }
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True).encode("utf-8")

    def from_bytes(self, data: bytes) -> Invoice:
        raw = json.loads(data.decode("utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("invoice payload is not an object")
        amount = raw["amount"]
        if not isinstance(amount, str) or not amount.isdigit():
            raise ValueError(f"invalid invoice amount {amount!r}")
        to = raw["to"]
        if not isinstance(to, str):
            raise ValueError(f"invalid invoice recipient {to!r}")
        token_address = raw.get("token_address")
        if token_address is not None and not isinstance(token_address, str):
            raise ValueError(f"invalid token address {token_address!r}")
        created_at = raw.get("created_at", 0)
        if isinstance(created_at, bool) or not isinstance(created_at, int):
            raise ValueError(f"invalid created_at {created_at!r}")
        return Invoice(
            to=to,
            amount=int(amount),
            token_address=token_address,
            created_at=created_at,
        )
