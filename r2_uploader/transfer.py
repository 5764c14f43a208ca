"""
Chunked, concurrent upload of a single file.

Files that fit in one part go up in a single PUT. Larger files use the
multipart protocol: initiate, upload every part through a bounded thread
pool, then complete with the part manifest in part-number order. If any part
fails the multipart upload is aborted, so the key never holds a partially
assembled object.
"""

import logging
import threading
import concurrent.futures
from concurrent.futures import ThreadPoolExecutor
from typing import List, Dict, Any, Optional

from shared.exceptions import TransferError
from shared.models import ChunkTask, StoredObjectRef, TransferConfig, UploadJob
from .progress import ChunkReader, ProgressObserver, ProgressTracker, notify_observer
from .storage_provider import S3StorageProvider

logger = logging.getLogger(__name__)


class _Stopped(Exception):
    """Raised inside a worker that was told to stop before it started."""


def plan_chunks(job: UploadJob, part_size: int) -> List[ChunkTask]:
    """
    Split a job into part-sized byte ranges.

    Always returns at least one chunk; the last one may be shorter than
    ``part_size`` (and is empty for an empty file).
    """
    if part_size <= 0:
        raise ValueError("part_size must be positive")
    count = max(1, -(-job.size // part_size))
    chunks = []
    for index in range(count):
        offset = index * part_size
        length = max(0, min(part_size, job.size - offset))
        chunks.append(ChunkTask(job=job, index=index, byte_offset=offset, byte_length=length))
    return chunks


class TransferEngine:
    """Uploads one file at a time to an S3-compatible backend."""

    def __init__(self, storage: S3StorageProvider, config: Optional[TransferConfig] = None,
                 observer: Optional[ProgressObserver] = None):
        self.storage = storage
        self.config = config or TransferConfig()
        self.observer = observer

    def upload(self, bucket: str, job: UploadJob) -> StoredObjectRef:
        """
        Upload ``job`` to ``bucket``, overwriting any object at the same key.

        Raises:
            TransferError: the file could not be read, or any part or the
                final assembly failed
        """
        if bucket != job.bucket:
            logger.debug("Job bucket %s overridden by %s", job.bucket, bucket)
        chunks = plan_chunks(job, self.config.part_size)
        tracker = ProgressTracker(job, self.observer, interval=self.config.progress_interval_seconds)
        if self.observer is not None:
            notify_observer(self.observer.on_start, job)

        try:
            with open(job.source_path, 'rb') as f:
                reader = ChunkReader(f)
                if len(chunks) == 1:
                    self._upload_single(bucket, job, reader, tracker)
                else:
                    self._upload_multipart(bucket, job, chunks, reader, tracker)
        except TransferError:
            raise
        except Exception as e:
            raise TransferError(job.source_path, e, key=job.destination_key) from e

        tracker.finish()
        logger.info("Uploaded %s as %s", job.source_path, job.destination_key)
        return StoredObjectRef(bucket=bucket, key=job.destination_key)

    def _upload_single(self, bucket: str, job: UploadJob, reader: ChunkReader,
                       tracker: ProgressTracker) -> None:
        body = reader.read_all()
        self.storage.put_object(bucket, job.destination_key, body)
        tracker.add(len(body))

    def _upload_multipart(self, bucket: str, job: UploadJob, chunks: List[ChunkTask],
                          reader: ChunkReader, tracker: ProgressTracker) -> None:
        key = job.destination_key
        upload_id = self.storage.create_multipart_upload(bucket, key)
        logger.debug("Started multipart upload %s for %s (%d parts)", upload_id, key, len(chunks))

        stop = threading.Event()
        parts: Dict[int, str] = {}
        failure: Optional[BaseException] = None

        def send(chunk: ChunkTask) -> str:
            if stop.is_set():
                raise _Stopped()
            body = reader.read_at(chunk.byte_offset, chunk.byte_length)
            if len(body) != chunk.byte_length:
                raise IOError(
                    f"short read at offset {chunk.byte_offset}: expected "
                    f"{chunk.byte_length} bytes, got {len(body)}"
                )
            if stop.is_set():
                raise _Stopped()
            etag = self.storage.upload_part(bucket, key, upload_id, chunk.part_number, body)
            tracker.add(len(body))
            return etag

        with ThreadPoolExecutor(max_workers=self.config.concurrency) as executor:
            future_to_chunk = {executor.submit(send, chunk): chunk for chunk in chunks}

            for future in concurrent.futures.as_completed(future_to_chunk):
                chunk = future_to_chunk[future]
                if future.cancelled():
                    continue
                try:
                    parts[chunk.part_number] = future.result()
                except _Stopped:
                    continue
                except Exception as e:
                    if failure is None:
                        failure = e
                        logger.error("Part %d of %s failed: %s", chunk.part_number, key, e)
                        stop.set()
                        for pending in future_to_chunk:
                            pending.cancel()

        if failure is not None:
            self._abort(bucket, key, upload_id)
            raise TransferError(job.source_path, failure, key=key) from failure

        manifest: List[Dict[str, Any]] = [
            {'PartNumber': number, 'ETag': parts[number]} for number in sorted(parts)
        ]
        if len(manifest) != len(chunks):
            self._abort(bucket, key, upload_id)
            raise TransferError(job.source_path, IOError("missing parts"), key=key)

        try:
            self.storage.complete_multipart_upload(bucket, key, upload_id, manifest)
        except Exception as e:
            self._abort(bucket, key, upload_id)
            raise TransferError(job.source_path, e, key=key) from e

    def _abort(self, bucket: str, key: str, upload_id: str) -> None:
        try:
            self.storage.abort_multipart_upload(bucket, key, upload_id)
        except Exception as e:
            logger.warning("Could not abort multipart upload %s for %s: %s", upload_id, key, e)
