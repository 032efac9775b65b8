import asyncio

import pytest

from payment_gateway.chain import ContractCallError
from payment_gateway.data import EngineError, InvoiceCodec, TypedStore
from payment_gateway.domain import Invoice
from payment_gateway.infra import RuntimeEventLogger
from payment_gateway.poller import CallbackSink, InvoicePoller


class UnreadableTree:
    def __init__(self):
        self.reads = 0

    def iter(self):
        self.reads += 1
        raise EngineError("database is locked")


class FakeClock:
    def __init__(self):
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def _poller(repo, oracle, received, **kwargs) -> InvoicePoller:
    return InvoicePoller(repo, oracle, CallbackSink(received.append), 5, **kwargs)


def test_settles_native_invoice(repo, oracle) -> None:
    inv = Invoice(to="0xAAA", amount=100)
    oracle.set("0xAAA", 150)
    received = []

    async def scenario():
        await repo.set("inv1", inv)
        report = await _poller(repo, oracle, received).run_once()
        return report, await repo.get_all()

    report, remaining = asyncio.run(scenario())
    assert received == [inv]
    assert report.settled == ["inv1"]
    assert remaining == []
    assert oracle.queries == [("0xAAA", None)]


def test_exact_balance_settles(repo, oracle) -> None:
    inv = Invoice(to="0xAAA", amount=100)
    oracle.set("0xAAA", 100)
    received = []

    async def scenario():
        await repo.set("inv1", inv)
        await _poller(repo, oracle, received).run_once()

    asyncio.run(scenario())
    assert received == [inv]


def test_underfunded_token_invoice_stays(repo, oracle) -> None:
    inv = Invoice(to="0xBBB", amount=100, token_address="0xTOKEN")
    oracle.set("0xBBB", 50, token="0xTOKEN")
    oracle.set("0xBBB", 10**30)
    received = []

    async def scenario():
        await repo.set("inv2", inv)
        poller = _poller(repo, oracle, received)
        await poller.run_once()
        await poller.run_once()
        return await repo.get_all()

    assert asyncio.run(scenario()) == [("inv2", inv)]
    assert received == []
    assert oracle.queries == [("0xBBB", "0xTOKEN"), ("0xBBB", "0xTOKEN")]


def test_oracle_failure_does_not_stop_cycle(repo, oracle, transport_error) -> None:
    failing = Invoice(to="0xCCC", amount=100)
    paid = Invoice(to="0xDDD", amount=100, token_address="0xTOKEN")
    oracle.set("0xCCC", transport_error)
    oracle.set("0xDDD", 100, token="0xTOKEN")
    received = []

    async def scenario():
        await repo.set("inv3", failing)
        await repo.set("inv5", paid)
        report = await _poller(repo, oracle, received).run_once()
        return report, await repo.get_all()

    report, remaining = asyncio.run(scenario())
    assert report.check_errors == ["inv3"]
    assert report.settled == ["inv5"]
    assert remaining == [("inv3", failing)]
    assert received == [paid]


def test_contract_call_failure_is_retried_next_cycle(repo, oracle) -> None:
    inv = Invoice(to="0xCCC", amount=100, token_address="0xTOKEN")
    oracle.set("0xCCC", ContractCallError("execution reverted"), token="0xTOKEN")
    received = []

    async def scenario():
        await repo.set("inv3", inv)
        poller = _poller(repo, oracle, received)
        await poller.run_once()
        oracle.set("0xCCC", 1000, token="0xTOKEN")
        await poller.run_once()

    asyncio.run(scenario())
    assert received == [inv]


def test_delete_race_skips_callback(repo, oracle) -> None:
    inv = Invoice(to="0xEEE", amount=100)
    oracle.set("0xEEE", 500)
    oracle.hooks[("0xEEE", None)] = lambda: repo.tree.remove(b"inv4")
    received = []

    async def scenario():
        await repo.set("inv4", inv)
        return await _poller(repo, oracle, received).run_once()

    report = asyncio.run(scenario())
    assert received == []
    assert report.delete_errors == ["inv4"]
    assert report.settled == []


def test_read_failure_skips_cycle_and_retries() -> None:
    tree = UnreadableTree()
    store = TypedStore(tree, InvoiceCodec())
    clock = FakeClock()
    received = []

    class NeverCalled:
        async def query(self, address, token_contract=None):
            raise AssertionError("oracle must not be queried")

    poller = InvoicePoller(store, NeverCalled(), CallbackSink(received.append), 7, sleep=clock.sleep)
    asyncio.run(poller.run(max_cycles=3))
    assert tree.reads == 3
    assert clock.sleeps == [7, 7]
    assert received == []
    assert poller.cycles == 3


def test_callback_fires_once_across_cycles(repo, oracle) -> None:
    inv = Invoice(to="0xAAA", amount=100)
    oracle.set("0xAAA", 150)
    clock = FakeClock()
    received = []

    async def scenario():
        await repo.set("inv1", inv)
        await _poller(repo, oracle, received, sleep=clock.sleep).run(max_cycles=4)

    asyncio.run(scenario())
    assert received == [inv]
    assert clock.sleeps == [5, 5, 5]


def test_invoice_removed_externally_is_dropped(repo, oracle) -> None:
    inv = Invoice(to="0xAAA", amount=100)
    received = []

    async def scenario():
        await repo.set("inv1", inv)
        poller = _poller(repo, oracle, received)
        await poller.run_once()
        await repo.delete("inv1")
        oracle.set("0xAAA", 1000)
        return await poller.run_once()

    report = asyncio.run(scenario())
    assert report.checked == 0
    assert received == []


def test_handler_error_is_logged_and_loop_continues(repo, oracle) -> None:
    first = Invoice(to="0xAAA", amount=1)
    second = Invoice(to="0xBBB", amount=1)
    oracle.set("0xAAA", 1)
    oracle.set("0xBBB", 1)
    seen = []

    def handler(invoice):
        seen.append(invoice)
        if invoice == first:
            raise RuntimeError("webhook down")

    async def scenario():
        await repo.set("a", first)
        await repo.set("b", second)
        poller = InvoicePoller(repo, oracle, CallbackSink(handler), 5)
        return await poller.run_once(), await repo.get_all()

    report, remaining = asyncio.run(scenario())
    assert seen == [first, second]
    assert report.callback_errors == ["a"]
    assert report.settled == ["a", "b"]
    assert remaining == []


def test_async_handler_is_awaited(repo, oracle) -> None:
    inv = Invoice(to="0xAAA", amount=100)
    oracle.set("0xAAA", 100)
    received = []

    async def handler(invoice):
        await asyncio.sleep(0)
        received.append(invoice)

    async def scenario():
        await repo.set("inv1", inv)
        await InvoicePoller(repo, oracle, CallbackSink(handler), 5).run_once()

    asyncio.run(scenario())
    assert received == [inv]


def test_sink_serialises_invocations() -> None:
    active = 0
    peak = 0

    async def handler(invoice):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    async def scenario():
        sink = CallbackSink(handler, asyncio.Lock())
        await asyncio.gather(*(sink(Invoice(to="0xAAA", amount=i + 1)) for i in range(5)))

    asyncio.run(scenario())
    assert peak == 1


def test_stop_event_ends_run(repo, oracle) -> None:
    async def scenario():
        stop = asyncio.Event()
        poller = InvoicePoller(repo, oracle, CallbackSink(lambda inv: None), 3600, stop_event=stop)
        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.05)
        stop.set()
        await asyncio.wait_for(task, timeout=5)
        return poller.cycles

    assert asyncio.run(scenario()) == 1


def test_events_are_recorded(tmp_path, repo, oracle, transport_error) -> None:
    events = RuntimeEventLogger(str(tmp_path))
    oracle.set("0xAAA", 100)
    oracle.set("0xBBB", transport_error)
    clock = FakeClock()

    async def scenario():
        await repo.set("a", Invoice(to="0xAAA", amount=100))
        await repo.set("b", Invoice(to="0xBBB", amount=100))
        poller = InvoicePoller(repo, oracle, CallbackSink(lambda inv: None), 5, events=events, sleep=clock.sleep)
        await poller.run(max_cycles=1)

    asyncio.run(scenario())
    names = [row["event"] for row in events.read()]
    assert names == ["invoice.settled", "invoice.check_error", "poll.cycle"]


def test_rejects_non_positive_interval(repo, oracle) -> None:
    with pytest.raises(ValueError):
        InvoicePoller(repo, oracle, CallbackSink(lambda inv: None), 0)
