"""
Palette Sniffer Source Resolver
Runs the URL strategies in order with retry and exponential backoff.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from loguru import logger

from .colors.palette import Palette, sanitize_palette
from .fallback import generate_fallback_palette
from .reliability import StrategyExhausted, backoff_delay, is_non_retryable_error
from .strategies import Strategy


Sleep = Callable[[float], Awaitable[None]]


class SourceResolver:
    """
    Strategy chain for webpage palettes.

    Every strategy gets up to ``max_retries + 1`` attempts. Before retry ``i``
    the resolver sleeps ``backoff_base ** i`` seconds. A non-retryable error
    skips straight to the next strategy. The first result that sanitizes to a
    palette is returned; when every strategy fails a deterministic fallback
    palette is returned instead, so ``resolve`` never raises for extraction
    failures.
    """

    def __init__(self, strategies: Sequence[Strategy], max_retries: int = 2,
                 backoff_base: float = 2.0, sleep: Sleep = asyncio.sleep):
        self.strategies = tuple(strategies)
        self.max_retries = max(0, max_retries)
        self.backoff_base = backoff_base
        self._sleep = sleep

    async def resolve(self, url: str) -> Palette:
        try:
            return await self._run_strategies(url)
        except StrategyExhausted as e:
            logger.warning(f"{e}; returning fallback palette for {url}")
            return generate_fallback_palette(url)

    async def _run_strategies(self, url: str) -> Palette:
        total = len(self.strategies)
        last_error: Optional[BaseException] = None

        for index, strategy in enumerate(self.strategies, start=1):
            for attempt in range(self.max_retries + 1):
                if attempt > 0:
                    await self._sleep(backoff_delay(attempt, self.backoff_base))

                logger.debug(f"Trying strategy {index}/{total} {strategy.name} (attempt {attempt + 1})")
                try:
                    result = await strategy.execute(url)
                except Exception as e:
                    last_error = e
                    logger.warning(f"Strategy {strategy.name} failed (attempt {attempt + 1}): {e}")
                    if is_non_retryable_error(e):
                        break
                    if attempt == self.max_retries:
                        logger.error(f"Strategy {strategy.name} failed after "
                                     f"{self.max_retries + 1} attempts")
                    continue

                palette = sanitize_palette(result) if result else None
                if palette is not None:
                    logger.info(f"Extracted colors for {url} using strategy {strategy.name}")
                    return palette

        raise StrategyExhausted(
            f"All {total} strategies failed"
            + (f"; last error: {last_error}" if last_error is not None else "")
        )
