"""Business ids: snowflake-style strings for orders, payouts, withdrawals,
returns, disputes and refund instructions, plus human-facing invoice numbers.

Ids sort by creation time, which the cursor pagination of every list
endpoint relies on (``WHERE id < :cursor ORDER BY id DESC``).
"""

import threading
import time
from datetime import datetime

from config.settings import settings

# 41 bits ms since _EPOCH_MS | 10 bits machine | 12 bits sequence
_EPOCH_MS = 1_700_000_000_000
_MACHINE_BITS = 10
_SEQUENCE_BITS = 12
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1
MAX_MACHINE_ID = (1 << _MACHINE_BITS) - 1


class SnowflakeIdGenerator:
    def __init__(self, machine_id: int = 0) -> None:
        if not 0 <= machine_id <= MAX_MACHINE_ID:
            raise ValueError(f"machine_id must be 0-{MAX_MACHINE_ID}, got {machine_id}")
        self._machine_bits = machine_id << _SEQUENCE_BITS
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = _clock_ms()
            if now_ms < self._last_ms:
                # Wall clock stepped back; keep issuing from the last tick.
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    now_ms = self._next_tick(now_ms)
            else:
                self._sequence = 0
            self._last_ms = now_ms
            elapsed = now_ms - _EPOCH_MS
            return str((elapsed << (_MACHINE_BITS + _SEQUENCE_BITS)) | self._machine_bits | self._sequence)

    @staticmethod
    def _next_tick(last_ms: int) -> int:
        now_ms = _clock_ms()
        while now_ms <= last_ms:
            now_ms = _clock_ms()
        return now_ms


def _clock_ms() -> int:
    return time.time_ns() // 1_000_000


_generator = SnowflakeIdGenerator(settings.ID_MACHINE_ID)


def generate_id() -> str:
    return _generator.next_id()


def generate_invoice_number(now: datetime) -> str:
    """INV-YYYYMMDD-<snowflake>; one per checkout, shared by all its orders."""
    return f"INV-{now:%Y%m%d}-{generate_id()}"
