"""
Document storage utilities.
Handles upload to the private S3-compatible bucket, signed URL generation and validation.
"""

import logging
import time
from typing import Optional, Tuple

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    DOCUMENT_URL_EXPIRATION,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_BUCKET_NAME,
    STORAGE_ENDPOINT_URL,
    STORAGE_REGION,
    STORAGE_SECRET_ACCESS_KEY,
)
from .utils.sanitization import safe_storage_filename

logger = logging.getLogger(__name__)

# Document validation constants
MAX_DOCUMENT_SIZE_BYTES = 10 * 1024 * 1024  # 10MB
ALLOWED_DOCUMENT_MIME_TYPES = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
]


def get_storage_client():
    """Get configured boto3 client for the document bucket"""
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT_URL,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name=STORAGE_REGION,
    )


def validate_document_file(size_bytes: int, mime_type: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
    """
    Validate a document before upload.

    Returns:
        Tuple of (http_status, error_message); (None, None) when the file is acceptable
    """
    if size_bytes > MAX_DOCUMENT_SIZE_BYTES:
        return 413, f"File exceeds maximum size of {MAX_DOCUMENT_SIZE_BYTES // (1024 * 1024)}MB"

    if mime_type not in ALLOWED_DOCUMENT_MIME_TYPES:
        return 415, "File type not supported. Allowed formats: PDF, JPEG, PNG, WebP, HEIC"

    return None, None


def generate_document_key(user_id: str, request_id: str, filename: str) -> str:
    """
    Generate the storage key for an uploaded document.

    Format: {user_id}/{request_id}/{unix_ms}_{safe_filename}
    """
    unix_ms = int(time.time() * 1000)
    return f"{user_id}/{request_id}/{unix_ms}_{safe_storage_filename(filename)}"


def upload_document_file(
    file_content: bytes, key: str, mime_type: str, metadata: Optional[dict] = None
) -> bool:
    """
    Upload a document to the private bucket.

    Returns:
        True if successful, False otherwise
    """
    try:
        client = get_storage_client()
        extra_args = {"ContentType": mime_type}
        if metadata:
            extra_args["Metadata"] = metadata

        client.put_object(Bucket=STORAGE_BUCKET_NAME, Key=key, Body=file_content, **extra_args)
        logger.info(f"✅ Uploaded document to storage: {key} ({len(file_content)} bytes)")
        return True
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Error uploading document to storage: {e}")
        return False


def generate_presigned_url(key: str, expiration_seconds: int = DOCUMENT_URL_EXPIRATION) -> Optional[str]:
    """
    Generate a short-lived presigned URL for private document access.

    Returns:
        Presigned URL or None if error
    """
    try:
        client = get_storage_client()
        return client.generate_presigned_url(
            "get_object",
            Params={"Bucket": STORAGE_BUCKET_NAME, "Key": key},
            ExpiresIn=expiration_seconds,
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Error generating presigned URL for {key}: {e}")
        return None


def remove_document_file(key: str) -> bool:
    """
    Delete a document from the bucket.

    Returns:
        True if successful, False otherwise
    """
    try:
        client = get_storage_client()
        client.delete_object(Bucket=STORAGE_BUCKET_NAME, Key=key)
        logger.info(f"🗑️ Removed document from storage: {key}")
        return True
    except (ClientError, BotoCoreError) as e:
        logger.error(f"❌ Error deleting document from storage: {e}")
        return False
