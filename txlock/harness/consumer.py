"""
txlock/harness/consumer.py - Producer/consumer ordering checks

Runs several producers concurrently, hands every produced tick to a handler
and records when the handler finishes. Comparing both logs tells whether the
handler completed work in the order it was produced.

Usage:
    runner = ConsumerRunner("save", repository.save_tick)
    result = await runner.run(count=5, delay_ms=50, times=10, random=True)
    assert result.matched, result.error
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
import asyncio
import logging
import time

from ..utils import resolve
from .producer import CONSUMER, Producer, TickRecord

logger = logging.getLogger("txlock.harness.consumer")

Handler = Callable[..., Union[Any, Awaitable[Any]]]

# rows shown after the first diverging record
MISMATCH_WINDOW = 15


@dataclass
class ComparisonResult:
    """Outcome of comparing consumer and producer logs."""

    matched: bool
    consumer: List[TickRecord] = field(default_factory=list)
    producer: List[TickRecord] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_s: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": self.matched,
            "produced": len(self.producer),
            "consumed": len(self.consumer),
            "elapsed_s": round(self.elapsed_s, 4),
            "error": self.error,
        }


def _flatten(records: Union[Dict[Any, List[TickRecord]], List[TickRecord]]) -> List[TickRecord]:
    if isinstance(records, dict):
        records = [record for group in records.values() for record in group]
    return sorted(records)


def default_comparer(
    consumer: Union[Dict[Any, List[TickRecord]], List[TickRecord]],
    producer: Union[Dict[Any, List[TickRecord]], List[TickRecord]],
) -> ComparisonResult:
    """
    Sort both logs by time and check they list the same ticks in the same order.

    Both arguments may be flat lists or mappings of identifier -> records.
    """
    consumed = _flatten(consumer)
    produced = _flatten(producer)

    if len(consumed) != len(produced):
        return ComparisonResult(
            False,
            consumed,
            produced,
            error="Producer data and consumer data does not match in length",
        )

    for index, (p, c) in enumerate(zip(produced, consumed)):
        if p.identifier != c.identifier or p.action != c.action:
            return ComparisonResult(False, consumed, produced, error=_mismatch_table(index, consumed, produced))

    return ComparisonResult(True, consumed, produced)


def _mismatch_table(index: int, consumed: List[TickRecord], produced: List[TickRecord]) -> str:
    lines = [
        f"Producer data and consumer data do not sort the same way as of record {index}:",
        "    |             CONSUMER            |              PRODUCER            |",
        "    | id | action    | timestamp      | id | action    | timestamp       |",
    ]
    for i in range(index, min(len(produced), index + MISMATCH_WINDOW + 1)):
        c, p = consumed[i], produced[i]
        lines.append(
            f"  {i:02d}|  {c.identifier} | {c.action}    | {c.timestamp:.6f}  "
            f"| {p.identifier}  | {p.action}    | {p.timestamp:.6f}   |"
        )
    return "\n".join(lines)


class ConsumerRunner:
    """
    Drives ``count`` concurrent producers against ``handler``.

    Args:
        action: Label written into every tick
        handler: Called as ``handler(identifier, *args)`` for each produced
            tick; may be a coroutine function
        comparer: Compares consumer and producer logs, defaults to
            default_comparer
    """

    def __init__(
        self,
        action: str,
        handler: Handler,
        comparer: Callable[..., ComparisonResult] = default_comparer,
        args: tuple = (),
    ):
        self.action = action
        self.args = args
        self._handler = handler
        self._comparer = comparer
        self._reset()

    def _reset(self) -> None:
        self._producer_results: Dict[int, List[TickRecord]] = {}
        self._consumer_results: Dict[int, List[TickRecord]] = {}
        self._pending: List[asyncio.Task] = []

    def _store(self, record: TickRecord) -> None:
        self._producer_results.setdefault(record.identifier, []).append(record)
        self._pending.append(asyncio.ensure_future(self._consume(record.identifier)))

    async def _consume(self, identifier: int) -> None:
        await resolve(self._handler(identifier, *self.args))
        self._tick(identifier)

    def _tick(self, identifier: int) -> None:
        record = TickRecord.now(CONSUMER, identifier, self.action)
        self._consumer_results.setdefault(identifier, []).append(record)

    @property
    def produced(self) -> int:
        return sum(len(records) for records in self._producer_results.values())

    @property
    def consumed(self) -> int:
        return sum(len(records) for records in self._consumer_results.values())

    async def run(self, count: int, delay_ms: int = 0, times: int = 1, random: bool = False) -> ComparisonResult:
        """
        Run ``count`` producers of ``times`` ticks each and compare the logs.

        Handler failures propagate once every producer has finished.
        """
        self._reset()
        started = time.perf_counter()

        producers = [Producer(i, self.action, delay_ms, times, random) for i in range(count)]
        logger.info(f"Starting {count} producers x {times} ticks of '{self.action}' (delay {delay_ms}ms, random={random})")
        await asyncio.gather(*(producer.run(self._store) for producer in producers))
        await asyncio.gather(*self._pending)

        result = self._comparer(self._consumer_results, self._producer_results)
        result.elapsed_s = time.perf_counter() - started
        if result.matched:
            logger.info(f"Consumed {self.consumed} ticks in production order in {result.elapsed_s:.3f}s")
        else:
            logger.warning(result.error)
        return result
