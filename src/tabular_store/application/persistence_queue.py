"""Persistence Queue - single-writer FIFO of snapshot writes.

Every mutation of a table enqueues a full snapshot of its database. A single
background worker drains the queue in arrival order, so at most one snapshot
write is in flight at any time.

Failure handling:
    - A failed write is retried after ``backoff_base * attempt`` seconds.
    - The retried job goes back to the FRONT of the queue, ahead of newer
      snapshots, so writes for a destination are never reordered.
    - After ``max_retries`` retries (``max_retries + 1`` failed attempts) the
      job is dropped and an error is logged. The worker moves on.
    - A successful write resets the destination's retry counter.

Usage:
    queue = PersistenceQueue(FileSnapshotStore("data"))
    queue.enqueue(PersistenceJob("default", snapshot.to_dict()))
    queue.flush(timeout=5.0)
    queue.close()

Thread Safety:
    enqueue/clear/flush may be called from any thread. The worker thread
    is started lazily on the first enqueue and exits on close().
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any

from tabular_store.infrastructure.logging import get_logger
from tabular_store.infrastructure.metrics import MetricsRegistry, get_metrics
from tabular_store.infrastructure.tracing import trace_span
from tabular_store.ports.outbound.snapshot_store import SnapshotStore


logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.1


@dataclass(frozen=True)
class PersistenceJob:
    """One pending snapshot write.

    Attributes:
        destination: Snapshot key (the database name).
        payload: Snapshot document, already detached from live table data.
    """

    destination: str
    payload: dict[str, Any]


class PersistenceQueue:
    """FIFO of snapshot writes drained by one worker thread."""

    def __init__(
        self,
        store: SnapshotStore,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Initialize the queue.

        Args:
            store: Where snapshots are written.
            max_retries: Retries per job before it is dropped.
            backoff_base: Seconds; the n-th retry waits ``backoff_base * n``.
            metrics: Metrics registry (defaults to the global one).
        """
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        if backoff_base < 0:
            raise ValueError("backoff_base must be non-negative")

        self._store = store
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._metrics = metrics or get_metrics()

        self._pending: deque[PersistenceJob] = deque()
        self._retry_counts: dict[str, int] = {}
        self._cond = threading.Condition()
        self._stop = threading.Event()
        self._processing = False
        self._closed = False
        self._worker: threading.Thread | None = None

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def is_processing(self) -> bool:
        """Whether a job is being written or waiting out its backoff."""
        with self._cond:
            return self._processing

    @property
    def is_closed(self) -> bool:
        return self._closed

    def enqueue(self, job: PersistenceJob) -> None:
        """Append a job and make sure the worker is running.

        Jobs enqueued after close() are discarded with a warning.
        """
        with self._cond:
            if self._closed:
                logger.warning("snapshot_enqueue_after_close", destination=job.destination)
                return
            self._pending.append(job)
            self._metrics.persistence_queue_length.set(len(self._pending))
            self._ensure_worker()
            self._cond.notify_all()

    def clear(self) -> None:
        """Drop all pending jobs and retry counters.

        A job already being written is not interrupted.
        """
        with self._cond:
            dropped = len(self._pending)
            self._pending.clear()
            self._retry_counts.clear()
            self._metrics.persistence_queue_length.set(0)
            self._cond.notify_all()
        if dropped:
            logger.info("persistence_queue_cleared", dropped=dropped)

    def get_queue_length(self) -> int:
        """Number of jobs waiting (excluding the one in flight)."""
        with self._cond:
            return len(self._pending)

    def retry_count(self, destination: str) -> int:
        """Consecutive failed attempts recorded for destination."""
        with self._cond:
            return self._retry_counts.get(destination, 0)

    def get_status(self) -> dict[str, Any]:
        with self._cond:
            return {
                "queueLength": len(self._pending),
                "isProcessing": self._processing,
                "retrying": dict(self._retry_counts),
                "closed": self._closed,
            }

    def flush(self, timeout: float | None = None) -> bool:
        """Block until the queue is empty and no job is in flight.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely.

        Returns:
            True if the queue drained, False on timeout or if the worker
            has been stopped with work left over.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._pending or self._processing:
                if self._stop.is_set() and not self._processing:
                    return False
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
            return True

    def close(self, timeout: float | None = None) -> None:
        """Stop the worker.

        Pending jobs are not written; call flush() first to drain them.
        A job waiting out its backoff is put back on the queue and the
        wait is cancelled.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._stop.set()
            self._cond.notify_all()
            worker = self._worker

        if worker is not None:
            worker.join(timeout)

        left = self.get_queue_length()
        if left:
            logger.warning("persistence_queue_closed_with_pending", pending=left)

    def __enter__(self) -> PersistenceQueue:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Worker
    # =========================================================================

    def _worker_alive(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def _ensure_worker(self) -> None:
        # Caller holds self._cond
        if self._worker_alive():
            return
        self._worker = threading.Thread(
            target=self._run,
            name="tabular-store-persistence",
            daemon=True,
        )
        self._worker.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._pending and not self._stop.is_set():
                    self._cond.wait()
                if self._stop.is_set():
                    return
                job = self._pending.popleft()
                self._processing = True
                self._metrics.persistence_queue_length.set(len(self._pending))

            try:
                self._process(job)
            finally:
                with self._cond:
                    self._processing = False
                    self._cond.notify_all()

    def _process(self, job: PersistenceJob) -> None:
        try:
            location = self._store.location(job.destination)
            self._write(job)
        except Exception as e:
            self._handle_failure(job, e)
            return

        with self._cond:
            self._retry_counts.pop(job.destination, None)
        logger.info("snapshot_saved", destination=job.destination, location=location)

    def _write(self, job: PersistenceJob) -> None:
        start = time.perf_counter()
        with trace_span("snapshot.write", {"snapshot.destination": job.destination}):
            try:
                self._store.write(job.destination, job.payload)
            except Exception:
                self._metrics.snapshot_writes_total.labels(status="failure").inc()
                raise
        self._metrics.snapshot_writes_total.labels(status="success").inc()
        self._metrics.snapshot_write_latency_seconds.observe(time.perf_counter() - start)

    def _handle_failure(self, job: PersistenceJob, error: Exception) -> None:
        with self._cond:
            attempts = self._retry_counts.get(job.destination, 0)
            if attempts >= self._max_retries:
                self._retry_counts.pop(job.destination, None)
                dropped = True
            else:
                attempts += 1
                self._retry_counts[job.destination] = attempts
                dropped = False

        if dropped:
            self._metrics.snapshot_dropped_total.inc()
            logger.error(
                "snapshot_write_dropped",
                destination=job.destination,
                attempts=attempts + 1,
                error=str(error),
            )
            return

        delay = self._backoff_base * attempts
        self._metrics.snapshot_retries_total.inc()
        logger.warning(
            "snapshot_write_retry",
            destination=job.destination,
            attempt=attempts,
            max_retries=self._max_retries,
            delay_seconds=delay,
            error=str(error),
        )

        cancelled = self._stop.wait(delay)
        with self._cond:
            self._pending.appendleft(job)
            self._metrics.persistence_queue_length.set(len(self._pending))
        if cancelled:
            logger.info("snapshot_retry_cancelled", destination=job.destination)
