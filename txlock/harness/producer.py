"""
txlock/harness/producer.py - Timed tick producers for stress runs
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import asyncio
import itertools
import logging
import random as _random
import time

logger = logging.getLogger("txlock.harness.producer")

PRODUCER = "PRODUCER"
CONSUMER = "CONSUMER"

_sequence = itertools.count()


@dataclass(order=True)
class TickRecord:
    """One produced or consumed tick. Records order by time, then creation."""

    timestamp: float
    sequence: int
    role: str = field(compare=False)
    identifier: int = field(compare=False)
    action: str = field(compare=False)
    note: Optional[str] = field(default=None, compare=False)

    @classmethod
    def now(cls, role: str, identifier: int, action: str, note: Optional[str] = None) -> "TickRecord":
        return cls(time.perf_counter(), next(_sequence), role, identifier, action, note)

    def __str__(self) -> str:
        parts = [f"{self.timestamp:.6f}", self.role, str(self.identifier), self.action]
        if self.note:
            parts.append(self.note)
        return " - ".join(parts)


class Producer:
    """
    Emits ``times`` ticks, each after a delay.

    With ``random`` set, each delay is drawn uniformly from [0, delay_ms);
    otherwise every delay is exactly ``delay_ms``. A zero delay emits all
    ticks back to back.
    """

    def __init__(
        self,
        identifier: int,
        action: str,
        delay_ms: int = 0,
        times: int = 1,
        random: bool = False,
        rng: Optional[_random.Random] = None,
    ):
        self.identifier = identifier
        self.action = action
        self.delay_ms = delay_ms
        self.times = times
        self.random = random
        self.records: List[TickRecord] = []
        self._rng = rng or _random.Random()

    def next_delay(self) -> float:
        """Delay before the next tick, in seconds."""
        if not self.delay_ms:
            return 0
        if not self.random:
            return self.delay_ms / 1000
        return self._rng.uniform(0, self.delay_ms) / 1000

    async def run(self, emit: Callable[[TickRecord], None]) -> List[TickRecord]:
        """Produce every tick, handing each record to ``emit`` as it happens."""
        for count in range(1, self.times + 1):
            await asyncio.sleep(self.next_delay())
            record = TickRecord.now(
                PRODUCER,
                self.identifier,
                self.action,
                note=f"{count}/{self.times}",
            )
            self.records.append(record)
            emit(record)
        logger.debug(f"Producer {self.identifier} done after {self.times} ticks")
        return self.records
