from __future__ import annotations


class EngineError(Exception):
    """Raised by a KV engine when a single operation fails at the I/O level."""


class StoreError(Exception):
    message = "store error"

    def __init__(self, key: str | None = None, detail: str = ""):
        self.key = key
        self.detail = detail
        parts = [self.message]
        if key is not None:
            parts.append(f"key={key!r}")
        if detail:
            parts.append(detail)
        super().__init__(" ".join(parts))


class NotFoundError(StoreError):
    message = "no matches found"


class GetError(StoreError):
    message = "could not get from database"


class SetError(StoreError):
    message = "could not set to database"


class DeleteError(StoreError):
    message = "could not delete from database"


class SerializeError(StoreError):
    message = "could not serialize binary data"


class DeserializeError(StoreError):
    message = "could not deserialize binary data"


class CommunicateError(StoreError):
    message = "could not communicate with database"
