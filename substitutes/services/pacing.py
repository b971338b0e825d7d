# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Pause policy between remote insert batches."""
import asyncio
from typing import Awaitable, Callable


class BatchPacer:
    async def pause(self) -> None:
        raise NotImplementedError


class FixedDelayPacer(BatchPacer):
    """Unconditional fixed delay; not a retry or backoff."""

    def __init__(self, seconds: float, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.seconds = seconds
        self._sleep = sleep

    async def pause(self) -> None:
        if self.seconds > 0:
            await self._sleep(self.seconds)


class NoDelayPacer(BatchPacer):
    async def pause(self) -> None:
        return None
