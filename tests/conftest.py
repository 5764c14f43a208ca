"""Shared pytest fixtures for all tests."""

import sys
import threading
from pathlib import Path

import pytest
from botocore.exceptions import ClientError

# Make the top-level packages importable without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from shared.constants import MIB
from shared.models import CloudflareCredentials, TransferConfig
from r2_uploader.cloudflare_r2 import CloudflareR2Provider


def _client_error(code, operation):
    return ClientError({'Error': {'Code': code, 'Message': code}}, operation)


class FakeS3Client:
    """
    In-memory stand-in for the boto3 S3 client.

    Records every call, assembles multipart uploads on completion, and can be
    told to fail specific part numbers or keys.
    """

    def __init__(self):
        self.objects = {}
        self.uploads = {}
        self.calls = []
        self.fail_parts = set()
        self.fail_put_keys = set()
        self.fail_presign_keys = set()
        self.fail_complete = False
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self._next_id = 0

    def _record(self, name, **kwargs):
        with self._lock:
            self.calls.append((name, kwargs))

    def call_names(self):
        return [name for name, _ in self.calls]

    def head_bucket(self, Bucket):
        self._record('head_bucket', Bucket=Bucket)
        return {}

    def put_object(self, Bucket, Key, Body):
        self._record('put_object', Bucket=Bucket, Key=Key)
        if Key in self.fail_put_keys:
            raise _client_error('InternalError', 'PutObject')
        self.objects[(Bucket, Key)] = bytes(Body)
        return {'ETag': '"single"'}

    def create_multipart_upload(self, Bucket, Key):
        with self._lock:
            self._next_id += 1
            upload_id = f"upload-{self._next_id}"
            self.uploads[upload_id] = {'bucket': Bucket, 'key': Key, 'parts': {}}
        self._record('create_multipart_upload', Bucket=Bucket, Key=Key)
        return {'UploadId': upload_id}

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self._record('upload_part', Bucket=Bucket, Key=Key, UploadId=UploadId,
                         PartNumber=PartNumber, Size=len(Body))
            if PartNumber in self.fail_parts:
                raise _client_error('InternalError', 'UploadPart')
            with self._lock:
                self.uploads[UploadId]['parts'][PartNumber] = bytes(Body)
            return {'ETag': f'"etag-{PartNumber}"'}
        finally:
            with self._lock:
                self.in_flight -= 1

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        parts = MultipartUpload['Parts']
        self._record('complete_multipart_upload', Bucket=Bucket, Key=Key,
                     UploadId=UploadId, Parts=parts)
        if self.fail_complete:
            raise _client_error('InvalidPart', 'CompleteMultipartUpload')
        stored = self.uploads.pop(UploadId)['parts']
        numbers = [p['PartNumber'] for p in parts]
        if numbers != sorted(numbers):
            raise _client_error('InvalidPartOrder', 'CompleteMultipartUpload')
        self.objects[(Bucket, Key)] = b''.join(stored[n] for n in numbers)
        return {}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self._record('abort_multipart_upload', Bucket=Bucket, Key=Key, UploadId=UploadId)
        self.uploads.pop(UploadId, None)
        return {}

    def head_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise _client_error('404', 'HeadObject')
        return {'ContentLength': len(self.objects[(Bucket, Key)]), 'ETag': '"x"'}

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self._record('generate_presigned_url', ClientMethod=ClientMethod,
                     ExpiresIn=ExpiresIn, **Params)
        if Params['Key'] in self.fail_presign_keys:
            raise _client_error('AccessDenied', 'GetObject')
        return f"https://example.invalid/{Params['Bucket']}/{Params['Key']}?X-Amz-Expires={ExpiresIn}"


@pytest.fixture
def credentials():
    return CloudflareCredentials(
        account_id="0123456789abcdef",
        access_key="AKIDEXAMPLE",
        secret_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        bucket_name="uploads",
    )


@pytest.fixture
def small_parts_config():
    """Smallest legal part size so multipart paths run on small files."""
    return TransferConfig(part_size=5 * MIB, concurrency=3)


@pytest.fixture
def fake_client():
    return FakeS3Client()


@pytest.fixture
def storage(credentials, small_parts_config, fake_client):
    return CloudflareR2Provider(credentials, small_parts_config, client=fake_client)


def write_file(path: Path, size: int) -> Path:
    """Write ``size`` bytes whose 4 KiB blocks differ, so misordered parts show up."""
    path.parent.mkdir(parents=True, exist_ok=True)
    blocks = size // 4096 + 1
    data = b"".join(bytes([i % 251]) * 4096 for i in range(blocks))[:size]
    path.write_bytes(data)
    return path


@pytest.fixture
def make_file(tmp_path):
    def _make(relative: str, size: int) -> Path:
        return write_file(tmp_path / relative, size)
    return _make
