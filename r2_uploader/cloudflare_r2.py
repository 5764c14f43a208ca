"""
Cloudflare R2 storage backend.

R2 is S3-compatible: requests go to ``https://<account_id>.r2.cloudflarestorage.com``
with the pseudo-region ``auto`` and SigV4 signing.
"""

import logging
from typing import Optional, Dict, Any, List

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from shared.constants import CLOUDFLARE_R2_REGION
from shared.models import CloudflareCredentials, TransferConfig
from .storage_provider import S3StorageProvider

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def build_client_config(config: TransferConfig) -> Config:
    """
    botocore settings for R2.

    Path-style addressing keeps the configured hostname untouched (no bucket
    subdomain and no region-based endpoint rewriting). Transient failures are
    retried by the transport, up to ``config.max_attempts`` attempts.
    """
    return Config(
        region_name=CLOUDFLARE_R2_REGION,
        signature_version="s3v4",
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
        max_pool_connections=max(10, config.concurrency * 2),
        s3={"addressing_style": "path"},
    )


class CloudflareR2Provider(S3StorageProvider):
    """R2 backend using a boto3 S3 client."""

    def __init__(self, credentials: CloudflareCredentials,
                 config: Optional[TransferConfig] = None, client=None):
        self.credentials = credentials
        self.config = config or TransferConfig()
        self.endpoint_url = credentials.endpoint_url
        self.s3_client = client or boto3.client(
            's3',
            endpoint_url=self.endpoint_url,
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            region_name=CLOUDFLARE_R2_REGION,
            config=build_client_config(self.config),
        )

    def verify_access(self, bucket: str) -> None:
        """Raise the backend error if ``bucket`` is not reachable with these keys."""
        self.s3_client.head_bucket(Bucket=bucket)

    def put_object(self, bucket: str, key: str, body: bytes) -> None:
        self.s3_client.put_object(Bucket=bucket, Key=key, Body=body)

    def create_multipart_upload(self, bucket: str, key: str) -> str:
        response = self.s3_client.create_multipart_upload(Bucket=bucket, Key=key)
        return response['UploadId']

    def upload_part(self, bucket: str, key: str, upload_id: str,
                    part_number: int, body: bytes) -> str:
        response = self.s3_client.upload_part(
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
        )
        return response['ETag']

    def complete_multipart_upload(self, bucket: str, key: str, upload_id: str,
                                  parts: List[Dict[str, Any]]) -> None:
        self.s3_client.complete_multipart_upload(
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={'Parts': parts},
        )

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        self.s3_client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)

    def head_object(self, bucket: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.s3_client.head_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in _NOT_FOUND_CODES:
                return None
            raise
        return {
            'size': response['ContentLength'],
            'etag': response.get('ETag', '').strip('"'),
            'modified': response.get('LastModified'),
        }

    def generate_presigned_get(self, bucket: str, key: str, expires_in: int) -> str:
        return self.s3_client.generate_presigned_url(
            'get_object',
            Params={'Bucket': bucket, 'Key': key},
            ExpiresIn=expires_in,
        )
