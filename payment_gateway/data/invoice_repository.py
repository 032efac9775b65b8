from __future__ import annotations

import logging

from payment_gateway.data.codec import InvoiceCodec
from payment_gateway.data.engine import SqliteEngine
from payment_gateway.data.errors import CommunicateError, EngineError
from payment_gateway.data.typed_store import TypedStore
from payment_gateway.domain import Invoice

InvoiceRepository = TypedStore[Invoice]


def open_invoice_repository(
    db_path: str,
    tree: str = "invoices",
    *,
    log: logging.Logger | None = None,
) -> tuple[SqliteEngine, InvoiceRepository]:
    """Open the sqlite file at ``db_path`` and return it with the invoice tree."""
    try:
        engine = SqliteEngine(db_path)
        kv_tree = engine.tree(tree)
    except EngineError as exc:
        raise CommunicateError(None, str(exc)) from exc
    return engine, TypedStore(kv_tree, InvoiceCodec(), log=log)
