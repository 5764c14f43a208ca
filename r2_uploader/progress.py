"""
Progress accounting for uploads.

The transfer engine adds a part's bytes to the job's ``ProgressTracker`` only
after the backend has accepted that part, so the percentage follows what has
actually gone over the network. Emission is throttled: an event fires when
the whole percentage has advanced by at least one point or when the interval
has passed since the last event.
"""

import logging
import threading
import time
from typing import BinaryIO, Callable, Optional

from shared.constants import DEFAULT_PROGRESS_INTERVAL_SECONDS, PROGRESS_MIN_PERCENT_STEP
from shared.models import ProgressState, UploadJob

logger = logging.getLogger(__name__)


def notify_observer(callback, *args) -> None:
    """Call an observer hook; failures are logged and never reach the transfer."""
    try:
        callback(*args)
    except Exception:
        logger.warning("Progress observer failed; continuing transfer", exc_info=True)


class ProgressObserver:
    """Receives progress events. Subclasses override what they need."""

    def on_start(self, job: UploadJob) -> None:
        pass

    def on_progress(self, job_id: str, percent: int, bytes_read: int, total_bytes: int) -> None:
        pass

    def on_complete(self, job_id: str) -> None:
        pass


class NullObserver(ProgressObserver):
    pass


class LoggingObserver(ProgressObserver):
    """Writes progress events to the module logger."""

    def on_start(self, job: UploadJob) -> None:
        logger.info("Starting upload of %s (%.2f MB)", job.source_path, job.size / (1024 * 1024))

    def on_progress(self, job_id: str, percent: int, bytes_read: int, total_bytes: int) -> None:
        logger.info("%s: %d%% (%d/%d MB)", job_id, percent,
                    bytes_read // (1024 * 1024), total_bytes // (1024 * 1024))

    def on_complete(self, job_id: str) -> None:
        logger.info("Finished %s", job_id)


class ProgressTracker:
    """
    Accumulates bytes for one job and forwards throttled events to an observer.

    Bytes are added once the backend has acknowledged the request that carried
    them. The throttle decision happens under the state lock; the observer is
    called after it is released, so a slow observer never holds up a worker.
    """

    def __init__(self, job: UploadJob, observer: Optional[ProgressObserver] = None,
                 interval: float = DEFAULT_PROGRESS_INTERVAL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.observer = observer or NullObserver()
        self.interval = interval
        self._clock = clock
        self._lock = threading.Lock()
        self._emit_lock = threading.Lock()
        self._last_delivered = -1
        self.state = ProgressState(
            job_id=job.job_id,
            bytes_read=0,
            total_bytes=job.size,
            last_emitted_timestamp=clock(),
        )

    @property
    def percent(self) -> int:
        with self._lock:
            return self.state.percent

    def add(self, n: int) -> None:
        """Record ``n`` more bytes and emit if the throttle allows it."""
        if n <= 0:
            return
        with self._lock:
            state = self.state
            state.bytes_read = min(state.bytes_read + n, state.total_bytes)
            percent = state.percent
            now = self._clock()
            advanced = percent - state.last_emitted_percent >= PROGRESS_MIN_PERCENT_STEP
            stale = now - state.last_emitted_timestamp >= self.interval
            if not (advanced or stale):
                return
            # Never report a lower value than what was already shown
            percent = max(percent, state.last_emitted_percent)
            state.last_emitted_percent = percent
            state.last_emitted_timestamp = now
            bytes_read, total_bytes = state.bytes_read, state.total_bytes
        self._emit(percent, bytes_read, total_bytes, wait=False)

    def finish(self) -> None:
        """Emit the final 100% event if it has not been shown yet."""
        with self._lock:
            state = self.state
            state.bytes_read = state.total_bytes
            pending = state.last_emitted_percent < 100
            if pending:
                state.last_emitted_percent = 100
                state.last_emitted_timestamp = self._clock()
        if pending:
            self._emit(100, state.total_bytes, state.total_bytes, wait=True)
        notify_observer(self.observer.on_complete, state.job_id)

    def _emit(self, percent: int, bytes_read: int, total_bytes: int, wait: bool) -> None:
        # A worker that finds another one mid-delivery skips its event; the
        # next event (or finish) carries a value at least as high.
        if not self._emit_lock.acquire(blocking=wait):
            return
        try:
            if percent < self._last_delivered:
                return
            self._last_delivered = percent
            notify_observer(self.observer.on_progress, self.state.job_id,
                            percent, bytes_read, total_bytes)
        finally:
            self._emit_lock.release()


class ChunkReader:
    """
    Positional reads over one open file.

    Reads are serialized so concurrent chunk workers never interleave a seek
    and a read on the shared handle.
    """

    def __init__(self, fileobj: BinaryIO):
        self._file = fileobj
        self._lock = threading.Lock()

    def read_at(self, offset: int, length: int) -> bytes:
        with self._lock:
            self._file.seek(offset)
            return self._file.read(length)

    def read_all(self) -> bytes:
        with self._lock:
            self._file.seek(0)
            return self._file.read()
