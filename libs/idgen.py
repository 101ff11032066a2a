from __future__ import annotations

import os
import threading
import time
from typing import ClassVar


def _default_node_id() -> int:
    # Each web/worker process sets ID_NODE so concurrent writers never collide.
    raw = os.getenv("ID_NODE", "1")
    try:
        return int(raw) % 1024
    except ValueError:
        return 1


class SnowflakeGenerator:
    """Sortable 64-bit ids: 41 bits ms timestamp, 10 bits node, 12 bits sequence."""

    _epoch: ClassVar[int] = 1_704_067_200_000  # 2024-01-01T00:00:00Z

    def __init__(self, node_id: int = 1) -> None:
        if not 0 <= node_id < 1024:
            raise ValueError("node_id must be between 0 and 1023")
        self.node_id = node_id
        self._lock = threading.Lock()
        self._last_ts = -1
        self._sequence = 0

    @staticmethod
    def _timestamp() -> int:
        return time.time_ns() // 1_000_000

    def get_id(self) -> int:
        with self._lock:
            ts = self._timestamp()
            if ts < self._last_ts:
                ts = self._wait_next(self._last_ts - 1)

            if ts == self._last_ts:
                self._sequence = (self._sequence + 1) & 0xFFF
                if self._sequence == 0:
                    ts = self._wait_next(ts)
            else:
                self._sequence = 0

            self._last_ts = ts
            return ((ts - self._epoch) << 22) | (self.node_id << 12) | self._sequence

    def _wait_next(self, last_ts: int) -> int:
        ts = self._timestamp()
        while ts <= last_ts:
            time.sleep(0.0001)
            ts = self._timestamp()
        return ts


_GENERATORS: dict[int, SnowflakeGenerator] = {}
_REGISTRY_LOCK = threading.Lock()


def generate_id(node_id: int | None = None) -> int:
    node = _default_node_id() if node_id is None else node_id
    with _REGISTRY_LOCK:
        generator = _GENERATORS.get(node)
        if generator is None:
            generator = SnowflakeGenerator(node_id=node)
            _GENERATORS[node] = generator
    return generator.get_id()
