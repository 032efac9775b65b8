from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


class RuntimeEventLogger:
    """Append-only JSONL trail of poller events.

    Every row carries ``ts``, ``event`` and ``key`` (the invoice key, or null for
    cycle-level events such as ``poll.cycle``), so one invoice's history can be
    grepped out of the file.
    """

    def __init__(self, data_dir: str, filename: str = "runtime_events.jsonl"):
        self.path = Path(data_dir) / filename
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, event: str, key: str | None = None, **fields: Any) -> None:
        row = {"ts": round(time.time(), 3), "event": event, "key": key}
        row.update({name: _plain(value) for name, value in fields.items()})
        line = json.dumps(row, separators=(",", ":"), ensure_ascii=True)
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def read(self, key: str | None = None) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        with self._lock:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        rows = [json.loads(line) for line in lines if line.strip()]
        if key is not None:
            rows = [r for r in rows if r.get("key") == key]
        return rows
