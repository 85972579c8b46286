"""Staged disclosure of already-drawn gacha results.

The sequence is ``pulling`` (fixed pause), ``reveal`` (one item per interval,
in draw order) and ``summary`` (terminal, entered once after the last item).
It runs as an async generator so the consumer owns its lifetime: closing the
generator, or cancelling the task returned by :meth:`RevealSequencer.start`,
drops every pending step.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from points_forest.config import get_settings
from points_forest.engine.gacha import best_rarity, total_value


class RevealState(str, Enum):
    IDLE = "idle"
    PULLING = "pulling"
    REVEAL = "reveal"
    SUMMARY = "summary"


@dataclass(frozen=True)
class RevealTiming:
    """Delays in seconds."""

    pull_duration: float = 2.0
    interval: float = 0.6
    summary_delay: float = 1.0

    @classmethod
    def from_settings(cls) -> "RevealTiming":
        settings = get_settings()
        return cls(
            pull_duration=settings.reveal_pull_duration_ms / 1000,
            interval=settings.reveal_interval_ms / 1000,
            summary_delay=settings.reveal_summary_delay_ms / 1000,
        )


@dataclass(frozen=True)
class RevealEvent:
    """A state transition (``item is None``) or an item being revealed."""

    state: RevealState
    offset_ms: int
    index: int | None = None
    item: Any = None

    @property
    def is_item(self) -> bool:
        return self.index is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "item" if self.is_item else "state",
            "state": self.state.value,
            "offset_ms": self.offset_ms,
        }
        if self.is_item:
            data["index"] = self.index
            data["item"] = self.item
        return data


Sleep = Callable[[float], Awaitable[Any]]


class RevealSequencer:
    """One-shot reveal run over a fixed list of items."""

    def __init__(
        self,
        items: Sequence[Any],
        timing: RevealTiming | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.items = list(items)
        self.timing = timing or RevealTiming.from_settings()
        self._sleep = sleep
        self._state = RevealState.IDLE
        self._started = False
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> RevealState:
        return self._state

    @property
    def finished(self) -> bool:
        return self._state is RevealState.SUMMARY

    async def events(self) -> AsyncIterator[RevealEvent]:
        """Yield the reveal sequence, sleeping between steps.

        Raises:
            RuntimeError: If this sequencer has already been run
        """
        if self._started:
            raise RuntimeError("RevealSequencer can only run once")
        self._started = True

        offset = 0.0

        self._state = RevealState.PULLING
        yield RevealEvent(RevealState.PULLING, 0)

        await self._sleep(self.timing.pull_duration)
        offset += self.timing.pull_duration

        self._state = RevealState.REVEAL
        yield RevealEvent(RevealState.REVEAL, _ms(offset))

        for index, item in enumerate(self.items):
            if index > 0:
                await self._sleep(self.timing.interval)
                offset += self.timing.interval
            yield RevealEvent(RevealState.REVEAL, _ms(offset), index=index, item=item)

        await self._sleep(self.timing.summary_delay)
        offset += self.timing.summary_delay

        self._state = RevealState.SUMMARY
        yield RevealEvent(RevealState.SUMMARY, _ms(offset))

    def start(self, on_event: Callable[[RevealEvent], Any]) -> asyncio.Task:
        """Run the sequence in a task, handing each event to ``on_event``.

        ``on_event`` may be a plain function or a coroutine function.
        """

        async def _run() -> None:
            stream = self.events()
            try:
                async for event in stream:
                    result = on_event(event)
                    if inspect.isawaitable(result):
                        await result
            finally:
                await stream.aclose()

        self._task = asyncio.create_task(_run())
        return self._task

    def cancel(self) -> bool:
        """Stop a running task; returns False when nothing was pending."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()


def _ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def build_summary(items: Sequence[dict[str, Any]], cost_paid: int) -> dict[str, Any]:
    """Totals shown once the reveal reaches ``summary``."""
    return {
        "items_count": len(items),
        "total_value": total_value(items),
        "cost_paid": cost_paid,
        "best_rarity": best_rarity(item.get("rarity", "common") for item in items),
    }
