"""
Upload engine for running a whole batch: discover, confirm, transfer, link.
"""

import os
import logging
from typing import Callable, List, Optional

from shared.models import (
    BatchResult,
    CloudflareCredentials,
    FileDescriptor,
    TransferConfig,
    UploadJob,
    transfer_config_summary,
)
from shared.exceptions import ConfigurationError, TransferError
from .enumerator import FileEnumerator, is_directory_input, normalize_path
from .keys import KeyResolver, base_directory_for
from .links import LinkIssuer
from .progress import LoggingObserver, ProgressObserver
from .provider_factory import StorageProviderFactory
from .storage_provider import S3StorageProvider
from .transfer import TransferEngine

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[List[FileDescriptor]], bool]


class UploadEngine:
    """
    Runs one upload batch against a single bucket.

    Jobs are processed one at a time in enumeration order. The first
    ``TransferError`` stops the batch: files after it are never attempted and
    the error propagates to the caller. Links are only issued once every file
    is stored.
    """

    def __init__(self, storage: S3StorageProvider, bucket: str,
                 config: Optional[TransferConfig] = None,
                 observer: Optional[ProgressObserver] = None,
                 preserve_structure: bool = False):
        self.storage = storage
        self.bucket = bucket
        self.config = config or TransferConfig()
        self.enumerator = FileEnumerator()
        self.transfer = TransferEngine(storage, self.config, observer or LoggingObserver())
        self.links = LinkIssuer(storage, self.config.link_expiry_seconds)
        self.preserve_structure = preserve_structure
        logger.debug("Transfer settings: %s", transfer_config_summary(self.config))

    @classmethod
    def from_credentials(cls, credentials: CloudflareCredentials,
                         config: Optional[TransferConfig] = None,
                         observer: Optional[ProgressObserver] = None,
                         preserve_structure: bool = False) -> 'UploadEngine':
        config = config or TransferConfig()
        storage = StorageProviderFactory.create(credentials, config)
        return cls(storage, credentials.bucket_name, config, observer, preserve_structure)

    def verify_bucket(self) -> None:
        """Fail early with ConfigurationError if the bucket cannot be reached."""
        try:
            self.storage.verify_access(self.bucket)
        except Exception as e:
            raise ConfigurationError(f"cannot access bucket {self.bucket}: {e}") from e

    def scan(self, source_path: str) -> List[FileDescriptor]:
        return self.enumerator.enumerate(source_path)

    def build_jobs(self, source_path: str, files: List[FileDescriptor]) -> List[UploadJob]:
        resolver = self._resolver_for(source_path)
        return [
            UploadJob(
                source_path=f.absolute_path,
                destination_key=resolver.resolve(f.absolute_path),
                size=f.size,
                bucket=self.bucket,
            )
            for f in files
        ]

    def run(self, source_path: str, confirm: Optional[ConfirmCallback] = None,
            files: Optional[List[FileDescriptor]] = None) -> Optional[BatchResult]:
        """
        Execute the upload process.

        Args:
            source_path: File or directory the user asked to upload
            confirm: Called with the discovered files; returning False
                cancels the batch before anything is sent
            files: Already enumerated descriptors, to skip a second walk

        Returns:
            BatchResult, or None when the batch was cancelled

        Raises:
            PathAccessError, TraversalError: discovery failed
            TransferError: a file failed to upload; later files were skipped
        """
        # 1. Scan files
        if files is None:
            files = self.scan(source_path)

        if confirm is not None and not confirm(files):
            logger.info("Upload of %s cancelled", source_path)
            return None

        # 2. Upload sequentially, stop at the first failure
        jobs = self.build_jobs(source_path, files)
        result = BatchResult(source_path=source_path)
        for i, job in enumerate(jobs, 1):
            logger.info("[%d/%d] Uploading %s", i, len(jobs), job.source_path)
            try:
                result.stored.append(self.transfer.upload(self.bucket, job))
            except TransferError as e:
                e.completed = list(result.stored)
                raise

        # 3. Presign every stored object
        result.links, result.link_failures = self.links.issue_all(result.stored)
        return result

    def _resolver_for(self, source_path: str) -> KeyResolver:
        root, _ = normalize_path(source_path)
        if not is_directory_input(root):
            return KeyResolver()
        # The prefix is the directory name as the user typed it, even when
        # it is a symlink to a differently named directory
        typed = os.path.normpath(os.path.expanduser(source_path.strip()))
        return KeyResolver(
            base_directory=base_directory_for(typed) or base_directory_for(root),
            preserve_structure=self.preserve_structure,
            root=root,
        )
