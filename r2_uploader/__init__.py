"""
R2 Uploader

Uploads local files or directory trees to Cloudflare R2 (or any endpoint that
speaks the S3 multipart protocol with SigV4 signing) and hands back presigned
retrieval links valid for 24 hours.
"""

__version__ = "1.0.0"
