from __future__ import annotations

import asyncio
import logging
import secrets

from payment_gateway.chain import BalanceOracle
from payment_gateway.data import InvoiceRepository
from payment_gateway.domain import Invoice, unix_time_millis, unix_time_seconds
from payment_gateway.infra import RuntimeEventLogger
from payment_gateway.poller import CallbackSink, InvoicePoller
from payment_gateway.poller.reconciler import Sleep


def new_invoice_key() -> str:
    """Time-ordered key: byte order of keys follows creation order."""
    return f"{unix_time_millis():016d}-{secrets.token_hex(4)}"


class PaymentGateway:
    """Invoice intake plus the background poller that settles them."""

    def __init__(
        self,
        repository: InvoiceRepository,
        oracle: BalanceOracle,
        sink: CallbackSink,
        poll_interval_seconds: int,
        *,
        log: logging.Logger | None = None,
        events: RuntimeEventLogger | None = None,
        sleep: Sleep | None = None,
    ):
        self.repository = repository
        self.oracle = oracle
        self.sink = sink
        self.log = log or logging.getLogger("payment-gateway")
        self._stop = asyncio.Event()
        self.poller = InvoicePoller(
            repository,
            oracle,
            sink,
            poll_interval_seconds,
            log=self.log,
            events=events,
            sleep=sleep,
            stop_event=self._stop,
        )
        self._task: asyncio.Task | None = None

    async def new_invoice(self, to: str, amount: int, token_address: str | None = None) -> tuple[str, Invoice]:
        invoice = Invoice(to=to, amount=amount, token_address=token_address, created_at=unix_time_seconds())
        key = new_invoice_key()
        await self.repository.set(key, invoice)
        self.log.info("invoice created key=%s to=%s amount=%s token=%s", key, to, amount, token_address)
        return key, invoice

    async def get_invoice(self, key: str) -> Invoice:
        return await self.repository.get(key)

    async def pending_invoices(self) -> list[tuple[str, Invoice]]:
        return await self.repository.get_all()

    async def last_invoice(self) -> tuple[str, Invoice]:
        return await self.repository.get_last()

    async def cancel_invoice(self, key: str) -> None:
        await self.repository.delete(key)
        self.log.info("invoice cancelled key=%s", key)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            raise RuntimeError("invoice poller already running")
        self._stop.clear()
        self._task = asyncio.create_task(self.poller.run(), name="invoice-poller")
        return self._task

    def request_stop(self) -> None:
        self._stop.set()

    async def stop(self) -> None:
        self.request_stop()
        if self._task is not None:
            await self._task
            self._task = None
