"""
Shared constants used across the uploader.
"""

MIB = 1024 * 1024

# Multipart settings
DEFAULT_PART_SIZE = 64 * MIB
MIN_PART_SIZE = 5 * MIB  # backend minimum for every part except the last
DEFAULT_CONCURRENCY = 3
MAX_CONCURRENCY = 16
DEFAULT_MAX_ATTEMPTS = 3

# Presigned links
DEFAULT_LINK_EXPIRY_SECONDS = 24 * 60 * 60
MAX_LINK_EXPIRY_SECONDS = 7 * 24 * 60 * 60  # SigV4 hard limit

# Progress emission
PROGRESS_MIN_PERCENT_STEP = 1
DEFAULT_PROGRESS_INTERVAL_SECONDS = 3.0

# Characters that are swapped for "_" in object keys
UNSAFE_KEY_CHARACTERS = "[]() "
KEY_REPLACEMENT_CHARACTER = "_"

# S3 Provider endpoints
CLOUDFLARE_R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"
CLOUDFLARE_R2_REGION = "auto"

# Configuration paths
DEFAULT_CONFIG_DIR = "~/.r2uploader"
PROFILES_FILENAME = "profiles.json"
CONFIG_DIR_MODE = 0o700
PROFILES_FILE_MODE = 0o600

# Environment variables
ENV_ACCOUNT_ID = "R2_ACCOUNT_ID"
ENV_ACCESS_KEY_ID = "R2_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "R2_SECRET_ACCESS_KEY"
ENV_BUCKET_NAME = "R2_BUCKET_NAME"
ENV_PART_SIZE_MB = "R2_PART_SIZE_MB"
ENV_CONCURRENCY = "R2_CONCURRENCY"
ENV_MAX_ATTEMPTS = "R2_MAX_ATTEMPTS"
