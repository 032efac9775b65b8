from __future__ import annotations

import asyncio
import signal

from payment_gateway.chain import Web3BalanceOracle, connect_rpc
from payment_gateway.config import Settings, load_settings
from payment_gateway.data import SqliteEngine, open_invoice_repository
from payment_gateway.domain import Invoice
from payment_gateway.gateway import PaymentGateway
from payment_gateway.infra import RuntimeEventLogger, get_logger
from payment_gateway.poller import CallbackSink
from payment_gateway.runtime.supervisor import LoopSupervisor


class App:
    """Wires settings into a running gateway: sqlite repository, web3 oracle, logging sink."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.log = get_logger("payment-gateway", settings.log_level)

    async def on_settled(self, invoice: Invoice) -> None:
        self.log.info(
            "payment received to=%s amount=%s token=%s",
            invoice.to,
            invoice.amount,
            invoice.token_address or "native",
        )

    async def build_gateway(self) -> tuple[SqliteEngine, PaymentGateway]:
        s = self.settings
        engine, repository = open_invoice_repository(s.db_path, s.invoice_tree, log=self.log)
        loop = asyncio.get_running_loop()
        try:
            w3 = await loop.run_in_executor(
                None, lambda: connect_rpc(s.rpc_urls, timeout=s.rpc_timeout_seconds, log=self.log)
            )
        except BaseException:
            engine.close()
            raise
        events = RuntimeEventLogger(s.data_dir) if s.events_enabled else None
        return engine, PaymentGateway(
            repository,
            Web3BalanceOracle(w3),
            CallbackSink(self.on_settled),
            s.poll_interval_seconds,
            log=self.log,
            events=events,
        )

    async def run(self) -> None:
        self.log.info(
            "starting payment gateway db=%s tree=%s interval=%ss rpcs=%s",
            self.settings.db_path,
            self.settings.invoice_tree,
            self.settings.poll_interval_seconds,
            len(self.settings.rpc_urls),
        )
        engine, gateway = await self.build_gateway()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, gateway.request_stop)
            except (NotImplementedError, RuntimeError):
                self.log.debug("signal handler unavailable for %s", sig)
        try:
            await LoopSupervisor().run_forever("invoice-poller", gateway.poller.run, self.log)
        finally:
            engine.close()
            self.log.info("payment gateway stopped db=%s", self.settings.db_path)


def run_main(settings: Settings) -> None:
    asyncio.run(App(settings).run())


def main() -> None:
    run_main(load_settings())
