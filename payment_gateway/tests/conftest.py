from __future__ import annotations

from pathlib import Path

import pytest

from payment_gateway.chain import TransportError
from payment_gateway.data import open_invoice_repository


class FakeOracle:
    """Scripted balances keyed by (address, token). An Exception value is raised."""

    def __init__(self):
        self.balances: dict[tuple[str, str | None], object] = {}
        self.queries: list[tuple[str, str | None]] = []
        self.hooks: dict[tuple[str, str | None], object] = {}

    def set(self, address: str, value, token: str | None = None) -> None:
        self.balances[(address, token)] = value

    async def query(self, address: str, token_contract: str | None = None) -> int:
        self.queries.append((address, token_contract))
        hook = self.hooks.get((address, token_contract))
        if hook is not None:
            hook()
        value = self.balances.get((address, token_contract), 0)
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("connection refused")


@pytest.fixture
def repo(tmp_path: Path):
    engine, repository = open_invoice_repository(str(tmp_path / "gateway.sqlite3"))
    yield repository
    engine.close()
