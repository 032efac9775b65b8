from .codec import Codec, InvoiceCodec
from .engine import KVTree, SqliteEngine, SqliteTree
from .errors import (
    CommunicateError,
    DeleteError,
    DeserializeError,
    EngineError,
    GetError,
    NotFoundError,
    SerializeError,
    SetError,
    StoreError,
)
from .invoice_repository import InvoiceRepository, open_invoice_repository
from .typed_store import TypedStore

__all__ = [
    "Codec",
    "InvoiceCodec",
    "KVTree",
    "SqliteEngine",
    "SqliteTree",
    "CommunicateError",
    "DeleteError",
    "DeserializeError",
    "EngineError",
    "GetError",
    "NotFoundError",
    "SerializeError",
    "SetError",
    "StoreError",
    "InvoiceRepository",
    "open_invoice_repository",
    "TypedStore",
]
