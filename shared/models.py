"""
Data models for upload jobs, progress, stored objects, and credentials.

This module defines the core data structures passed between the file
enumerator, the transfer engine, the progress tracker, and the link issuer.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any
from datetime import datetime

from shared.constants import (
    DEFAULT_PART_SIZE,
    MIN_PART_SIZE,
    DEFAULT_CONCURRENCY,
    MAX_CONCURRENCY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_LINK_EXPIRY_SECONDS,
    MAX_LINK_EXPIRY_SECONDS,
    DEFAULT_PROGRESS_INTERVAL_SECONDS,
    CLOUDFLARE_R2_ENDPOINT_TEMPLATE,
)
from shared.exceptions import ConfigurationError


@dataclass(frozen=True)
class FileDescriptor:
    """A transferable file found by the enumerator."""
    absolute_path: str
    size: int


@dataclass(frozen=True)
class UploadJob:
    """
    One file scheduled for upload.

    Attributes:
        source_path: Absolute path of the local file
        destination_key: Object key in the bucket
        size: File size in bytes at enumeration time
        bucket: Target bucket name
    """
    source_path: str
    destination_key: str
    size: int
    bucket: str

    @property
    def job_id(self) -> str:
        return self.destination_key


@dataclass(frozen=True)
class ChunkTask:
    """A contiguous byte range of one job, the unit of concurrent transfer."""
    job: UploadJob
    index: int
    byte_offset: int
    byte_length: int

    @property
    def part_number(self) -> int:
        """Backend part numbers start at 1."""
        return self.index + 1


@dataclass
class ProgressState:
    """Running byte counter for one active job."""
    job_id: str
    bytes_read: int
    total_bytes: int
    last_emitted_percent: int = -1
    last_emitted_timestamp: float = 0.0

    @property
    def percent(self) -> int:
        if self.total_bytes <= 0:
            return 0
        value = (self.bytes_read * 100) // self.total_bytes
        return max(0, min(100, value))


@dataclass(frozen=True)
class StoredObjectRef:
    """Location of an object that finished uploading."""
    bucket: str
    key: str


@dataclass(frozen=True)
class PresignedLink:
    ref: StoredObjectRef
    url: str
    expires_at: datetime


@dataclass(frozen=True)
class LinkFailure:
    ref: StoredObjectRef
    error: Exception


@dataclass
class BatchResult:
    """Outcome of one batch run: what was stored and which links were issued."""
    source_path: str
    stored: List[StoredObjectRef] = field(default_factory=list)
    links: List[PresignedLink] = field(default_factory=list)
    link_failures: List[LinkFailure] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return len(self.stored)


@dataclass
class TransferConfig:
    """
    Tunables for the transfer engine and link issuer.

    Attributes:
        part_size: Bytes per multipart chunk (last chunk may be smaller)
        concurrency: Maximum in-flight chunk uploads per job
        max_attempts: Transport-level attempts per request (retries + 1)
        link_expiry_seconds: Validity window of presigned retrieval URLs
        progress_interval_seconds: Maximum quiet time between progress events
    """
    part_size: int = DEFAULT_PART_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    link_expiry_seconds: int = DEFAULT_LINK_EXPIRY_SECONDS
    progress_interval_seconds: float = DEFAULT_PROGRESS_INTERVAL_SECONDS

    def __post_init__(self):
        if self.part_size < MIN_PART_SIZE:
            raise ConfigurationError(
                f"part_size must be at least {MIN_PART_SIZE} bytes, got {self.part_size}"
            )
        if not 1 <= self.concurrency <= MAX_CONCURRENCY:
            raise ConfigurationError(
                f"concurrency must be between 1 and {MAX_CONCURRENCY}, got {self.concurrency}"
            )
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not 0 < self.link_expiry_seconds <= MAX_LINK_EXPIRY_SECONDS:
            raise ConfigurationError(
                f"link_expiry_seconds must be in (0, {MAX_LINK_EXPIRY_SECONDS}], "
                f"got {self.link_expiry_seconds}"
            )
        if self.progress_interval_seconds <= 0:
            raise ConfigurationError("progress_interval_seconds must be positive")


@dataclass
class CloudflareCredentials:
    """
    Static key pair and addressing details for an R2 account.

    The JSON form uses the same field names as the profile files written by
    earlier releases of the tool.
    """
    account_id: str
    access_key: str
    secret_key: str
    bucket_name: str
    api_token: str = ""

    @property
    def endpoint_url(self) -> str:
        return CLOUDFLARE_R2_ENDPOINT_TEMPLATE.format(account_id=self.account_id)

    def is_complete(self) -> bool:
        return all([self.account_id, self.access_key, self.secret_key, self.bucket_name])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "APIToken": self.api_token,
            "AccessKey": self.access_key,
            "SecretKey": self.secret_key,
            "AccountID": self.account_id,
            "BucketName": self.bucket_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CloudflareCredentials':
        return cls(
            account_id=data.get("AccountID", ""),
            access_key=data.get("AccessKey", ""),
            secret_key=data.get("SecretKey", ""),
            bucket_name=data.get("BucketName", ""),
            api_token=data.get("APIToken", ""),
        )


@dataclass
class Profile:
    """A named set of credentials saved in the profile store."""
    name: str
    credentials: CloudflareCredentials

    def to_dict(self) -> Dict[str, Any]:
        return {"Name": self.name, "Credentials": self.credentials.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Profile':
        return cls(
            name=data.get("Name", ""),
            credentials=CloudflareCredentials.from_dict(data.get("Credentials") or {}),
        )


def transfer_config_summary(config: TransferConfig) -> Dict[str, Any]:
    """Plain dict view of a config, for logging."""
    return asdict(config)


def optional_int(value: Optional[str]) -> Optional[int]:
    """Parse an optional integer setting, treating blank strings as unset."""
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"expected an integer, got {value!r}") from e
