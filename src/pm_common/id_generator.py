"""Snowflake-style ID generator for business IDs.

Every record this service creates (commitments, resolutions, payouts,
transactions) gets a time-ordered string id, optionally prefixed with a
short entity tag: ``res_6791047139921920``.
Single-process generator; the machine id separates replicas.
"""

import threading
import time

_EPOCH_MS = 1_700_000_000_000  # 2023-11-14 approx
_MACHINE_BITS = 10
_SEQUENCE_BITS = 12
_MAX_MACHINE_ID = (1 << _MACHINE_BITS) - 1
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1


class SnowflakeIdGenerator:
    """41-bit ms timestamp | 10-bit machine id | 12-bit per-ms sequence."""

    def __init__(self, machine_id: int = 0) -> None:
        if not 0 <= machine_id <= _MAX_MACHINE_ID:
            raise ValueError(f"machine_id must be 0-{_MAX_MACHINE_ID}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now_ms = _now_ms()
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    # sequence exhausted for this millisecond; spin to the next one
                    while now_ms <= self._last_ms:
                        now_ms = _now_ms()
            else:
                self._sequence = 0
            self._last_ms = now_ms
            return (
                ((now_ms - _EPOCH_MS) << (_MACHINE_BITS + _SEQUENCE_BITS))
                | (self._machine_id << _SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self, prefix: str | None = None) -> str:
        raw = str(self.next_int())
        return f"{prefix}_{raw}" if prefix else raw


def _now_ms() -> int:
    return int(time.time() * 1000)


_default_generator = SnowflakeIdGenerator()


def generate_id(prefix: str | None = None) -> str:
    """Generate a unique id from the module-level default generator."""
    return _default_generator.next_id(prefix)
