from __future__ import annotations

import asyncio
import logging
from typing import Callable, Generic, TypeVar

from payment_gateway.data.codec import Codec
from payment_gateway.data.engine import KVTree
from payment_gateway.data.errors import (
    DeleteError,
    DeserializeError,
    EngineError,
    GetError,
    NotFoundError,
    SerializeError,
    SetError,
    StoreError,
)

T = TypeVar("T")
R = TypeVar("R")


class TypedStore(Generic[T]):
    """Typed get/get_all/get_last/set/delete over a byte-oriented KV tree.

    Every call runs the blocking engine operation in the event loop's default
    executor, so each one is a suspension point for the caller. Single-key
    operations are atomic; nothing spans more than one key.

    Enumeration order is whatever the engine yields. ``SqliteEngine`` yields
    byte-lexicographic key order.
    """

    def __init__(self, tree: KVTree, codec: Codec[T], log: logging.Logger | None = None):
        self.tree = tree
        self.codec = codec
        self.log = log or logging.getLogger("payment-gateway.store")

    async def _run(self, fn: Callable[[], R]) -> R:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn)

    def _decode(self, key: str, data: bytes) -> T:
        try:
            return self.codec.from_bytes(data)
        except Exception as exc:
            self.log.error("db interaction error: decode key=%s err=%s", key, exc)
            raise DeserializeError(key, str(exc)) from exc

    def _decode_key(self, raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            self.log.error("db interaction error: key is not utf-8 raw=%r", raw)
            raise DeserializeError(None, f"non utf-8 key {raw!r}") from exc

    def _encode_key(self, key: str, error: type[StoreError]) -> bytes:
        try:
            return key.encode("utf-8")
        except UnicodeEncodeError as exc:
            self.log.error("db interaction error: key is not utf-8 key=%r", key)
            raise error(key, "key is not valid utf-8") from exc

    async def get(self, key: str) -> T:
        raw_key = self._encode_key(key, GetError)
        try:
            data = await self._run(lambda: self.tree.get(raw_key))
        except EngineError as exc:
            self.log.error("db interaction error: get key=%s err=%s", key, exc)
            raise GetError(key, str(exc)) from exc
        if data is None:
            raise NotFoundError(key)
        return self._decode(key, data)

    async def get_all(self) -> list[tuple[str, T]]:
        """Every entry in engine order. One undecodable entry fails the whole call."""
        try:
            rows = await self._run(self.tree.iter)
        except EngineError as exc:
            self.log.error("db interaction error: iterate err=%s", exc)
            raise GetError(None, str(exc)) from exc
        out: list[tuple[str, T]] = []
        for raw_key, data in rows:
            key = self._decode_key(raw_key)
            out.append((key, self._decode(key, data)))
        return out

    async def get_last(self) -> tuple[str, T]:
        try:
            row = await self._run(self.tree.last)
        except EngineError as exc:
            self.log.error("db interaction error: last err=%s", exc)
            raise GetError(None, str(exc)) from exc
        if row is None:
            raise NotFoundError(None, "tree is empty")
        key = self._decode_key(row[0])
        return key, self._decode(key, row[1])

    async def set(self, key: str, value: T) -> None:
        raw_key = self._encode_key(key, SerializeError)
        try:
            data = self.codec.to_bytes(value)
        except Exception as exc:
            self.log.error("db interaction error: encode key=%s err=%s", key, exc)
            raise SerializeError(key, str(exc)) from exc
        try:
            await self._run(lambda: self.tree.insert(raw_key, data))
        except EngineError as exc:
            self.log.error("db interaction error: set key=%s err=%s", key, exc)
            raise SetError(key, str(exc)) from exc

    async def delete(self, key: str) -> None:
        raw_key = self._encode_key(key, DeleteError)
        try:
            removed = await self._run(lambda: self.tree.remove(raw_key))
        except EngineError as exc:
            self.log.error("db interaction error: delete key=%s err=%s", key, exc)
            raise DeleteError(key, str(exc)) from exc
        if removed is None:
            raise NotFoundError(key)
