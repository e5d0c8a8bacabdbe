"""
Palette Sniffer Extraction Channel
Offloads sampling and clustering to a worker executor with id-matched replies.
"""
import asyncio
import itertools
from concurrent.futures import BrokenExecutor, Executor, Future, ProcessPoolExecutor
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
from loguru import logger

from .colors.extraction import OffloadRequest, OffloadResponse, handle_offload_request
from .colors.kmeans import DEFAULT_MAX_ITERATIONS
from .colors.palette import PRIMARY_MIN_FREQUENCY, ColorRecord
from .colors.sampling import DEFAULT_ALPHA_THRESHOLD, DEFAULT_SAMPLE_STEP
from .reliability import ChannelError


ExecutorFactory = Callable[[], Executor]
PendingEntry = Tuple[asyncio.Future, Executor]


class ExtractionChannel:
    """
    Message-passing front end to the extraction workers.

    Each call gets a fresh monotonically increasing id and a pending future.
    Replies are routed back to the event loop and matched by id, so they may
    complete in any order. A broken executor rejects every request still
    pending on it and is rebuilt lazily on the next call.
    """

    def __init__(self, executor_factory: Optional[ExecutorFactory] = None,
                 worker_count: int = 1,
                 worker: Callable[[OffloadRequest], OffloadResponse] = handle_offload_request):
        self._executor_factory = executor_factory or (
            lambda: ProcessPoolExecutor(max_workers=max(1, worker_count))
        )
        self._worker = worker
        self._executor: Optional[Executor] = None
        self._pending: Dict[int, PendingEntry] = {}
        self._ids = itertools.count(1)
        self._closed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        return self._executor is not None

    async def analyze(self, buffer, width: int, height: int,
                      k: int = 32,
                      alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
                      sample_step: int = DEFAULT_SAMPLE_STEP,
                      min_frequency: float = PRIMARY_MIN_FREQUENCY,
                      max_iterations: int = DEFAULT_MAX_ITERATIONS,
                      rng_seed: Optional[int] = None) -> List[ColorRecord]:
        """
        Run extraction on a worker.

        Ownership of ``buffer`` moves to the channel: a ``bytearray`` is left
        empty and a ``memoryview`` is released once the request is built.

        Raises:
            ChannelError: The worker could not be reached, failed fatally, or
                reported an error for this request
        """
        if self._closed:
            raise ChannelError("Extraction channel is closed")

        loop = asyncio.get_running_loop()
        executor = self._ensure_executor()

        request_id = next(self._ids)
        request = OffloadRequest(
            request_id=request_id,
            buffer=self._transfer(buffer),
            width=width,
            height=height,
            k=k,
            alpha_threshold=alpha_threshold,
            sample_step=sample_step,
            min_frequency=min_frequency,
            max_iterations=max_iterations,
            rng_seed=rng_seed,
        )

        future = loop.create_future()
        self._pending[request_id] = (future, executor)

        try:
            submitted = executor.submit(self._worker, request)
        except Exception as e:
            self._pending.pop(request_id, None)
            logger.warning(f"Failed to submit extraction request {request_id}: {e}")
            if isinstance(e, RuntimeError):
                self._fail_executor(executor, e)
            raise ChannelError(f"Failed to submit extraction request: {e}") from e

        submitted.add_done_callback(
            lambda done: loop.call_soon_threadsafe(self._on_done, request_id, executor, done)
        )

        response: OffloadResponse = await future
        return [ColorRecord(**color) for color in response.colors]

    def close(self) -> None:
        """Reject pending work and shut the executor down."""
        self._closed = True
        for request_id in list(self._pending):
            future, _ = self._pending.pop(request_id)
            self._reject(future, ChannelError("Extraction channel closed"))

        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
            logger.info("Extraction channel closed")

    def _ensure_executor(self) -> Executor:
        if self._executor is None:
            try:
                self._executor = self._executor_factory()
            except Exception as e:
                logger.warning(f"Failed to start extraction workers: {e}")
                raise ChannelError(f"Failed to start extraction workers: {e}") from e
            logger.debug("Extraction workers started")
        return self._executor

    def _on_done(self, request_id: int, executor: Executor, done: Future) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            # already rejected by a fatal error or close()
            return
        future, _ = entry

        if done.cancelled():
            self._reject(future, ChannelError(f"Extraction request {request_id} was cancelled"))
            return

        error = done.exception()
        if error is not None:
            self._reject(future, ChannelError(f"Extraction worker failed: {error}"))
            if isinstance(error, BrokenExecutor):
                self._fail_executor(executor, error)
            return

        response = done.result()
        if response.request_id != request_id:
            self._reject(future, ChannelError(
                f"Mismatched reply {response.request_id} for request {request_id}"))
        elif not response.ok:
            logger.warning(f"Extraction request {request_id} failed in worker: {response.error}")
            self._reject(future, ChannelError(response.error or "Extraction failed"))
        elif not future.done():
            future.set_result(response)

    def _fail_executor(self, executor: Executor, error: BaseException) -> None:
        stale = [rid for rid, (_, owner) in self._pending.items() if owner is executor]
        logger.error(f"Extraction workers failed: {error}; rejecting {len(stale)} pending requests")

        for request_id in stale:
            future, _ = self._pending.pop(request_id)
            self._reject(future, ChannelError(f"Extraction workers failed: {error}"))

        if self._executor is executor:
            self._executor = None
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _reject(future: asyncio.Future, error: ChannelError) -> None:
        if not future.done():
            future.set_exception(error)

    @staticmethod
    def _transfer(buffer) -> bytes:
        if isinstance(buffer, bytearray):
            data = bytes(buffer)
            buffer.clear()
            return data
        if isinstance(buffer, memoryview):
            data = buffer.tobytes()
            buffer.release()
            return data
        if isinstance(buffer, np.ndarray):
            return buffer.tobytes()
        return bytes(buffer)
