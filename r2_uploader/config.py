"""
Credentials and transfer settings from R2_* environment variables.

A .env file in the working directory is loaded on import; variables already
set in the environment take precedence.
"""

import os
from typing import Optional

from dotenv import load_dotenv

from shared.constants import (
    MIB,
    ENV_ACCOUNT_ID,
    ENV_ACCESS_KEY_ID,
    ENV_SECRET_ACCESS_KEY,
    ENV_BUCKET_NAME,
    ENV_PART_SIZE_MB,
    ENV_CONCURRENCY,
    ENV_MAX_ATTEMPTS,
)
from shared.models import CloudflareCredentials, TransferConfig, optional_int

# Values from a .env in the working directory fill in unset variables
load_dotenv()


def credentials_from_env(bucket: Optional[str] = None) -> Optional[CloudflareCredentials]:
    """
    Build credentials from R2_* environment variables.

    Returns None unless the account ID, both keys and a bucket are all present.
    """
    creds = CloudflareCredentials(
        account_id=os.getenv(ENV_ACCOUNT_ID, "").strip(),
        access_key=os.getenv(ENV_ACCESS_KEY_ID, "").strip(),
        secret_key=os.getenv(ENV_SECRET_ACCESS_KEY, "").strip(),
        bucket_name=(bucket or os.getenv(ENV_BUCKET_NAME, "")).strip(),
    )
    if not creds.is_complete():
        return None
    return creds


def transfer_config_from_env(part_size_mb: Optional[int] = None,
                             concurrency: Optional[int] = None,
                             max_attempts: Optional[int] = None) -> TransferConfig:
    """
    TransferConfig from explicit overrides, then R2_* variables, then defaults.

    Raises:
        ConfigurationError: a value is not an integer or fails validation
    """
    if part_size_mb is None:
        part_size_mb = optional_int(os.getenv(ENV_PART_SIZE_MB))
    if concurrency is None:
        concurrency = optional_int(os.getenv(ENV_CONCURRENCY))
    if max_attempts is None:
        max_attempts = optional_int(os.getenv(ENV_MAX_ATTEMPTS))

    kwargs = {}
    if part_size_mb is not None:
        kwargs['part_size'] = part_size_mb * MIB
    if concurrency is not None:
        kwargs['concurrency'] = concurrency
    if max_attempts is not None:
        kwargs['max_attempts'] = max_attempts
    return TransferConfig(**kwargs)
