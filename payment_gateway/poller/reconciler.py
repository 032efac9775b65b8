from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from payment_gateway.chain import BalanceOracle, OracleError
from payment_gateway.data import InvoiceRepository, StoreError
from payment_gateway.domain import Invoice
from payment_gateway.infra import RuntimeEventLogger
from payment_gateway.poller.sink import CallbackSink

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class CycleReport:
    read_ok: bool = True
    checked: int = 0
    settled: list[str] = field(default_factory=list)
    check_errors: list[str] = field(default_factory=list)
    delete_errors: list[str] = field(default_factory=list)
    callback_errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        if not self.read_ok:
            return "read=failed"
        return (
            f"checked={self.checked} settled={len(self.settled)} "
            f"check_errors={len(self.check_errors)} delete_errors={len(self.delete_errors)}"
        )


class InvoicePoller:
    """Periodic full-scan reconciliation of pending invoices against chain balances.

    Each cycle reads every invoice, asks the oracle for the recipient's balance
    and, when ``balance >= amount``, deletes the invoice and only then hands it
    to the sink. Every failure is logged and left for the next cycle; there is
    no backoff and no retry limit. Cycles never overlap because the sleep
    happens after a scan completes.
    """

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
        stop_event: asyncio.Event | None = None,
    ):
        if int(poll_interval_seconds) <= 0:
            raise ValueError(f"poll_interval_seconds must be positive, got {poll_interval_seconds}")
        self.repository = repository
        self.oracle = oracle
        self.sink = sink
        self.poll_interval_seconds = int(poll_interval_seconds)
        self.log = log or logging.getLogger("payment-gateway.poller")
        self.events = events
        self.sleep = sleep or asyncio.sleep
        self.stop_event = stop_event
        self.cycles = 0

    def _emit(self, event: str, **fields) -> None:
        if self.events is not None:
            self.events.emit(event, **fields)

    def _stopping(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    async def is_settled(self, key: str, invoice: Invoice) -> bool:
        try:
            balance = await self.oracle.query(invoice.to, invoice.token_address)
        except OracleError as exc:
            self.log.warning("failed to check balance key=%s to=%s err=%s", key, invoice.to, exc)
            self._emit("invoice.check_error", key=key, error=str(exc))
            raise
        return balance >= invoice.amount

    async def run_once(self) -> CycleReport:
        report = CycleReport()
        try:
            pending = await self.repository.get_all()
        except StoreError as exc:
            self.log.error("could not get all invoices, did not callback: %s", exc)
            self._emit("poll.read_error", error=str(exc))
            report.read_ok = False
            return report

        for key, invoice in pending:
            if self._stopping():
                break
            report.checked += 1
            try:
                settled = await self.is_settled(key, invoice)
            except OracleError:
                report.check_errors.append(key)
                continue
            if not settled:
                continue

            try:
                await self.repository.delete(key)
            except StoreError as exc:
                self.log.error("could not remove paid invoice key=%s, did not callback: %s", key, exc)
                self._emit("invoice.delete_error", key=key, error=str(exc))
                report.delete_errors.append(key)
                continue

            report.settled.append(key)
            self.log.info("invoice settled key=%s to=%s amount=%s", key, invoice.to, invoice.amount)
            self._emit("invoice.settled", key=key, to=invoice.to, amount=str(invoice.amount))
            try:
                await self.sink(invoice)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self.log.exception("settlement callback failed key=%s: %s", key, exc)
                self._emit("callback.error", key=key, error=str(exc))
                report.callback_errors.append(key)
        return report

    async def _wait_interval(self) -> None:
        if self.stop_event is None:
            await self.sleep(self.poll_interval_seconds)
            return
        sleeper = asyncio.ensure_future(self.sleep(self.poll_interval_seconds))
        waiter = asyncio.ensure_future(self.stop_event.wait())
        try:
            await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            sleeper.cancel()
            waiter.cancel()

    async def run(self, max_cycles: int | None = None) -> None:
        """Scan, sleep, repeat until stopped, cancelled or ``max_cycles`` is reached."""
        self.log.info("invoice poller started interval=%ss", self.poll_interval_seconds)
        while not self._stopping():
            report = await self.run_once()
            self.cycles += 1
            self.log.debug("poll cycle=%s %s", self.cycles, report.summary())
            self._emit("poll.cycle", cycle=self.cycles, checked=report.checked, settled=len(report.settled))
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            await self._wait_interval()
        self.log.info("invoice poller stopped after %s cycles", self.cycles)
