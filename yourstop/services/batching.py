"""
RequestBatcher - Groups requests issued within a short window into one call.

Requests are collected per batch key. A key's batch is dispatched when it
reaches ``max_batch_size`` or when ``max_wait_time`` passes without the batch
filling up. The dispatch is a single POST to the batch endpoint:

    {"requests": [{"id", "url", "method", "headers", "body"}, ...]}

and the endpoint answers with a same-length, same-order list of
``{"success": bool, "data": ..., "error": ...}``. Callers are resolved strictly
by array position.
"""

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

import httpx
from loguru import logger

from yourstop.services.errors import BatchItemError, BatchTransportError


@dataclass
class BatchRequestOptions:
    """Per-request options forwarded to the batch endpoint."""

    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None


@dataclass
class BatchedRequest:
    """A logical request waiting in a batch window."""

    id: str
    url: str
    options: BatchRequestOptions
    future: asyncio.Future[Any]
    timestamp: float

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "method": self.options.method,
            "headers": self.options.headers,
            "body": self.options.body,
        }


class RequestBatcher:
    """
    Batching queue in front of a batch endpoint.

    Usage:
        batcher = RequestBatcher(
            batch_url="http://localhost:8000/api/batch",
            http_client=httpx.AsyncClient(),
        )

        data = await batcher.enqueue("/api/restaurants?area=Soho")
    """

    def __init__(
        self,
        batch_url: str,
        http_client: httpx.AsyncClient,
        max_batch_size: int = 10,
        max_wait_time: timedelta = timedelta(milliseconds=100),
        headers: dict[str, str] | None = None,
        debug: bool = False,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        self._batch_url = batch_url
        self._http_client = http_client
        self._max_batch_size = max_batch_size
        self._max_wait_time = max_wait_time
        self._headers = headers or {}
        self._debug = debug

        self._pending: dict[str, list[BatchedRequest]] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._dispatches: set[asyncio.Task[None]] = set()
        self._ids = itertools.count(1)
        self._stats = BatcherStats()

    @staticmethod
    def default_batch_key(endpoint: str, method: str = "GET") -> str:
        """``METHOD:path`` with the query string stripped."""
        return f"{method.upper()}:{endpoint.split('?', 1)[0]}"

    def enqueue(
        self,
        endpoint: str,
        options: BatchRequestOptions | None = None,
        batch_key: str | None = None,
    ) -> asyncio.Future[Any]:
        """
        Add a request to its batch and return a future for its result.

        Args:
            endpoint: Path (with query) the batch endpoint should execute
            options: Method, headers and body for the request
            batch_key: Grouping key (defaults to ``METHOD:path``)

        Returns:
            Future resolved with the entry's ``data`` or rejected with
            BatchItemError / BatchTransportError
        """
        loop = asyncio.get_running_loop()
        options = options or BatchRequestOptions()
        key = batch_key or self.default_batch_key(endpoint, options.method)

        request = BatchedRequest(
            id=f"req_{next(self._ids)}_{int(time.time() * 1000)}",
            url=endpoint,
            options=options,
            future=loop.create_future(),
            timestamp=time.time(),
        )
        batch = self._pending.setdefault(key, [])
        batch.append(request)
        self._stats.enqueued += 1
        self._log(f"ENQUEUE: {endpoint} -> {key} ({len(batch)} pending)")

        if len(batch) >= self._max_batch_size:
            self._stats.size_triggered += 1
            self._start_dispatch(key)
        else:
            self._restart_timer(key, loop)

        return request.future

    def pending_count(self, batch_key: str | None = None) -> int:
        """Number of requests still collecting (for one key or all keys)."""
        if batch_key is not None:
            return len(self._pending.get(batch_key, []))
        return sum(len(batch) for batch in self._pending.values())

    async def flush(self, batch_key: str) -> None:
        """Dispatch a key's batch now and wait for it to settle."""
        task = self._start_dispatch(batch_key)
        if task is not None:
            await task

    async def flush_all(self) -> None:
        """Dispatch every collecting batch and wait for all dispatches."""
        for key in list(self._pending):
            self._start_dispatch(key)
        if self._dispatches:
            await asyncio.gather(*list(self._dispatches), return_exceptions=True)

    async def close(self) -> None:
        """Flush outstanding work; the HTTP client is owned by the caller."""
        await self.flush_all()

    def _restart_timer(self, key: str, loop: asyncio.AbstractEventLoop) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._timers[key] = loop.call_later(
            self._max_wait_time.total_seconds(), self._on_timer, key
        )

    def _on_timer(self, key: str) -> None:
        self._timers.pop(key, None)
        if not self._pending.get(key):
            return
        self._stats.timeout_triggered += 1
        self._start_dispatch(key)

    def _start_dispatch(self, key: str) -> asyncio.Task[None] | None:
        """Atomically take the key's batch out of collecting state and send it."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        batch = self._pending.pop(key, [])
        if not batch:
            return None

        task = asyncio.get_running_loop().create_task(self._dispatch(key, batch))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)
        return task

    async def _dispatch(self, key: str, batch: list[BatchedRequest]) -> None:
        self._stats.batches += 1
        self._log(f"DISPATCH: {key} with {len(batch)} requests")

        try:
            response = await self._http_client.post(
                self._batch_url,
                json={"requests": [request.to_payload() for request in batch]},
                headers={"Content-Type": "application/json", **self._headers},
            )
            response.raise_for_status()
            results = response.json()
            if not isinstance(results, list):
                raise ValueError("Batch response is not a list")
        except Exception as e:
            self._stats.transport_failures += 1
            logger.warning(f"Batch request for '{key}' failed: {e}")
            error = BatchTransportError(
                f"Batch request failed: {e}", batch_key=key, size=len(batch)
            )
            for request in batch:
                self._reject(request, error)
            return

        if len(results) != len(batch):
            logger.warning(
                f"Batch response for '{key}' has {len(results)} entries, "
                f"expected {len(batch)}"
            )

        for index, request in enumerate(batch):
            if index >= len(results):
                self._reject(
                    request,
                    BatchItemError("No response for batched request", request.id),
                )
                continue

            result = results[index]
            if isinstance(result, dict) and result.get("success"):
                if not request.future.done():
                    request.future.set_result(result.get("data"))
            else:
                message = (
                    result.get("error") if isinstance(result, dict) else None
                ) or "Batch request failed"
                self._reject(request, BatchItemError(str(message), request.id))

    def _reject(self, request: BatchedRequest, error: Exception) -> None:
        self._stats.rejected += 1
        if not request.future.done():
            request.future.set_exception(error)

    def get_stats(self) -> "BatcherStats":
        self._stats.pending = self.pending_count()
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Batcher] {message}")


@dataclass
class BatcherStats:
    """Batching statistics."""

    enqueued: int = 0
    batches: int = 0
    size_triggered: int = 0
    timeout_triggered: int = 0
    transport_failures: int = 0
    rejected: int = 0
    pending: int = 0

    @property
    def average_batch_size(self) -> float:
        if self.batches == 0:
            return 0.0
        return (self.enqueued - self.pending) / self.batches

    def to_dict(self) -> dict[str, Any]:
        return {
            "enqueued": self.enqueued,
            "batches": self.batches,
            "size_triggered": self.size_triggered,
            "timeout_triggered": self.timeout_triggered,
            "transport_failures": self.transport_failures,
            "rejected": self.rejected,
            "pending": self.pending,
            "average_batch_size": round(self.average_batch_size, 2),
        }
