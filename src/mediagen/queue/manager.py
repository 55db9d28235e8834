"""In-process queue manager: admission, item states and the single worker loop."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable

from mediagen.queue.models import (
    QueueItem,
    QueueItemStatus,
    QueueItemView,
    QueueSnapshot,
    SubmitResult,
    clean_units,
)
from mediagen.queue.ports import RecordStore
from mediagen.queue.processor import JobProcessor
from mediagen.queue.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class QueueManager:
    """Owns the in-memory queue and runs at most one worker at a time.

    Items waiting out a retry delay leave the active list and sit in
    ``_scheduled`` until their timer appends them to the tail again; they
    still count as in flight for de-duplication. Terminal items are kept in
    a short history so the status snapshot can report them.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        processor: JobProcessor,
        record_store: RecordStore,
        scheduler: Scheduler,
        item_delay_seconds: float = 10.0,
        history_limit: int = 50,
        background: bool = True,
    ) -> None:
        self.processor = processor
        self.record_store = record_store
        self.scheduler = scheduler
        self.item_delay_seconds = item_delay_seconds
        self.background = background
        self._lock = threading.RLock()
        self._changed = threading.Condition(self._lock)
        self._items: list[QueueItem] = []
        self._scheduled: dict[str, tuple[QueueItem, TimerHandle]] = {}
        self._history: deque[QueueItem] = deque(maxlen=history_limit)
        self._is_processing = False
        self._closed = False
        self._worker_thread: threading.Thread | None = None

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._is_processing

    def submit(self, job_ids: Iterable[str]) -> SubmitResult:
        """Admit jobs that are not already in flight and make sure a worker runs."""

        requested = list(dict.fromkeys(job_ids))
        with self._lock:
            if self._closed:
                logger.warning("Queue is closed, ignoring %d job(s)", len(requested))
                return SubmitResult(
                    queue_length=self._queue_length(),
                    admitted=0,
                    skipped=tuple(requested),
                )

        admitted = 0
        skipped: list[str] = []
        for job_id in requested:
            if self._is_tracked(job_id):
                logger.info("Job %s already in queue, skipping", job_id)
                skipped.append(job_id)
                continue
            try:
                units = clean_units(self.record_store.fetch_units(job_id))
            except Exception as error:  # noqa: BLE001
                logger.warning("Could not load units for job %s: %s", job_id, error)
                skipped.append(job_id)
                continue
            if not units:
                logger.info("No units found for job %s, skipping", job_id)
                skipped.append(job_id)
                continue
            with self._lock:
                if self._closed or self._is_tracked(job_id):
                    skipped.append(job_id)
                    continue
                self._items.append(
                    QueueItem(job_id=job_id, units=units, enqueued_at=self.scheduler.now()),
                )
                self._changed.notify_all()
            admitted += 1
            logger.info("Added job %s to queue with %d unit(s)", job_id, len(units))

        self._ensure_worker()
        with self._lock:
            queue_length = self._queue_length()
        return SubmitResult(queue_length=queue_length, admitted=admitted, skipped=tuple(skipped))

    def status(self) -> QueueSnapshot:
        """Read-only view of tracked and recently finished items."""

        with self._lock:
            items = [_view(item) for item in self._items]
            items.extend(_view(item, scheduled=True) for item, _ in self._scheduled.values())
            recent = tuple(_view(item) for item in self._history)
            return QueueSnapshot(
                queue_length=self._queue_length(),
                is_processing=self._is_processing,
                items=tuple(items),
                recent=recent,
            )

    def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Block until nothing is queued, running or scheduled for retry."""

        with self._changed:
            return self._changed.wait_for(self._drained, timeout=timeout)

    def close(self, timeout: float | None = 15.0) -> None:
        """Stop accepting work, fail everything not yet running and wait for the worker.

        The item in flight, if any, finishes normally; a retry it asks for is
        dropped.
        """

        with self._lock:
            self._closed = True
            for item, handle in self._scheduled.values():
                handle.cancel()
                self._drop(item, reason="scheduled retry")
            self._scheduled.clear()
            pending = [item for item in self._items if item.status == QueueItemStatus.PENDING]
            self._items = [item for item in self._items if item.status != QueueItemStatus.PENDING]
            for item in pending:
                self._drop(item, reason="queued item")
            thread = self._worker_thread
            self._changed.notify_all()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def run_worker(self) -> None:
        """Process pending items until none remain. Used by the worker thread."""

        try:
            self._worker_loop()
        except Exception:
            logger.exception("Queue worker stopped unexpectedly")
            with self._lock:
                self._is_processing = False
                self._changed.notify_all()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._closed or self._is_processing or self._next_pending() is None:
                return
            self._is_processing = True
            self._changed.notify_all()
            logger.info("Starting queue processing, %d item(s) in queue", len(self._items))
            if self.background:
                self._worker_thread = threading.Thread(
                    target=self.run_worker,
                    daemon=True,
                    name="mediagen-worker",
                )
                self._worker_thread.start()
                return
        self.run_worker()

    def _worker_loop(self) -> None:
        while True:
            with self._lock:
                item = self._next_pending()
                if item is None or self._closed:
                    self._is_processing = False
                    self._changed.notify_all()
                    logger.info("Queue processing complete")
                    return
                item.status = QueueItemStatus.PROCESSING

            try:
                self.processor.process(item)
            except Exception:
                logger.exception("Processor raised for job %s", item.job_id)
                item.status = QueueItemStatus.FAILED

            with self._lock:
                self._settle(item)
                has_more = self._next_pending() is not None
            if has_more and self.item_delay_seconds > 0:
                logger.debug("Waiting %.1fs before next queue item", self.item_delay_seconds)
                self.scheduler.sleep(self.item_delay_seconds)

    def _settle(self, item: QueueItem) -> None:
        self._items = [queued for queued in self._items if queued is not item]
        retry_requested = (
            item.status == QueueItemStatus.PENDING and item.next_retry_delay_ms is not None
        )
        if retry_requested and self._closed:
            self._drop(item, reason="retry")
        elif retry_requested:
            delay_seconds = (item.next_retry_delay_ms or 0) / 1000.0
            handle = self.scheduler.call_later(delay_seconds, lambda: self._reenqueue(item))
            self._scheduled[item.job_id] = (item, handle)
            logger.info(
                "Job %s will be re-enqueued in %.1fs (retry %d)",
                item.job_id,
                delay_seconds,
                item.retry_count,
            )
        else:
            self._history.append(item)
        self._changed.notify_all()

    def _drop(self, item: QueueItem, *, reason: str) -> None:
        item.status = QueueItemStatus.FAILED
        self._history.append(item)
        logger.info("Dropped %s for job %s on shutdown", reason, item.job_id)

    def _reenqueue(self, item: QueueItem) -> None:
        with self._lock:
            entry = self._scheduled.pop(item.job_id, None)
            if entry is None or entry[0] is not item or self._closed:
                return
            item.status = QueueItemStatus.PENDING
            item.enqueued_at = self.scheduler.now()
            item.unit_results = []
            self._items.append(item)
            self._changed.notify_all()
            logger.info("Re-enqueued job %s (retry %d)", item.job_id, item.retry_count)
        self._ensure_worker()

    def _next_pending(self) -> QueueItem | None:
        for item in self._items:
            if item.status == QueueItemStatus.PENDING:
                return item
        return None

    def _is_tracked(self, job_id: str) -> bool:
        with self._lock:
            if job_id in self._scheduled:
                return True
            return any(item.job_id == job_id and item.in_flight for item in self._items)

    def _queue_length(self) -> int:
        return len(self._items) + len(self._scheduled)

    def _drained(self) -> bool:
        return not self._is_processing and not self._items and not self._scheduled


def _view(item: QueueItem, *, scheduled: bool = False) -> QueueItemView:
    return QueueItemView(
        job_id=item.job_id,
        status=item.status,
        unit_count=len(item.units),
        retry_count=item.retry_count,
        enqueued_at=item.enqueued_at,
        scheduled=scheduled,
    )
