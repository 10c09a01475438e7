"""
txlock/harness/repository.py - In-memory transactional repositories

Small record stores used by the stress command and the test-suite to
exercise nested transactional calls, super calls and queued submissions.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import asyncio
import itertools
import logging
import random as _random

from ..transactions import transactional, transactional_super_call

logger = logging.getLogger("txlock.harness.repository")


class RecordNotFoundError(LookupError):
    pass


class RamRepository:
    """Dictionary backed store whose writes are transactional."""

    def __init__(self):
        self.ram: Dict[Any, Any] = {}

    @transactional()
    async def create(self, key: Any, record: Any) -> Any:
        if key in self.ram:
            raise ValueError(f"Record with key {key} already exists")
        self.ram[key] = record
        return record

    @transactional()
    async def update(self, key: Any, record: Any) -> Any:
        if key not in self.ram:
            raise RecordNotFoundError(f"{key} not found")
        self.ram[key] = record
        return record

    @transactional()
    async def delete(self, key: Any) -> Any:
        if key not in self.ram:
            raise RecordNotFoundError(f"{key} not found")
        return self.ram.pop(key)

    async def read(self, key: Any) -> Any:
        if key not in self.ram:
            raise RecordNotFoundError(f"{key} not found")
        return self.ram[key]


class DelayedRepository(RamRepository):
    """
    RamRepository whose writes hold their transaction for ``delay_ms``.

    With ``random`` set, each hold lasts a random time below ``delay_ms``.
    """

    def __init__(self, delay_ms: int = 0, random: bool = False, rng: Optional[_random.Random] = None):
        super().__init__()
        self.delay_ms = delay_ms
        self.random = random
        self._rng = rng or _random.Random()
        self._keys = itertools.count()

    def next_delay(self) -> float:
        if not self.random:
            return self.delay_ms / 1000
        return self._rng.uniform(0, self.delay_ms) / 1000

    @transactional()
    async def create(self, key: Any, record: Any) -> Any:
        result = await transactional_super_call(super().create, key, record)
        await asyncio.sleep(self.next_delay())
        return result

    @transactional()
    async def update(self, key: Any, record: Any) -> Any:
        result = await transactional_super_call(super().update, key, record)
        await asyncio.sleep(self.next_delay())
        return result

    @transactional()
    async def delete(self, key: Any) -> Any:
        result = await transactional_super_call(super().delete, key)
        await asyncio.sleep(self.next_delay())
        return result

    @transactional("tick")
    async def record_tick(self, identifier: int) -> Any:
        """Store one tick for ``identifier``; the nested create joins this transaction."""
        key = f"{identifier}-{next(self._keys)}"
        return await self.create(key, {"identifier": identifier})
