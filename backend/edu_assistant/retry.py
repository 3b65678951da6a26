from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def exponential_backoff(
	operation: Callable[[], Awaitable[T]],
	max_retries: int = 3,
	initial_delay: int = 1000,
	*,
	max_delay: Optional[int] = None,
	sleep: Sleep = asyncio.sleep,
) -> T:
	"""Await ``operation`` until it succeeds or ``max_retries`` retries are spent.

	Delays are in milliseconds and double after every failed attempt, so the
	defaults wait 1000, 2000 and 4000 ms before retries one to three. When
	``max_delay`` is set each wait is capped at that value. The last failure is
	re-raised unchanged.
	"""
	retries = 0
	delay = initial_delay
	while True:
		try:
			return await operation()
		except Exception:
			if retries >= max_retries:
				raise
		retries += 1
		wait = delay if max_delay is None else min(delay, max_delay)
		await sleep(wait / 1000)
		delay *= 2
