"""Event image storage on an S3-compatible bucket."""

import uuid
import logging
from pathlib import Path
from typing import Tuple
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from fest.common.config import get_settings
from fest.common.exceptions import ServiceUnavailableError, ValidationError

settings = get_settings()
logger = logging.getLogger(__name__)


@lru_cache
def get_s3_client():
    """Get or create the S3 client."""
    if not settings.s3_key_id or not settings.s3_application_key:
        raise ValueError("Storage credentials not configured. Set S3_KEY_ID and S3_APPLICATION_KEY in environment.")

    return boto3.client(
        's3',
        endpoint_url=settings.s3_endpoint,
        aws_access_key_id=settings.s3_key_id,
        aws_secret_access_key=settings.s3_application_key,
        region_name=settings.s3_region,
    )


def _validate_image(file: UploadFile) -> None:
    """Validate uploaded image before saving."""
    if not file.filename:
        raise ValidationError("Missing filename")

    suffix = Path(file.filename).suffix.lower()
    if suffix not in settings.allowed_image_extensions:
        raise ValidationError(f"Unsupported file type: {suffix or 'unknown'}")
    if file.content_type and not file.content_type.startswith("image/"):
        raise ValidationError("Only image files allowed")

    file.file.seek(0, 2)
    file_size = file.file.tell()
    file.file.seek(0)

    if file_size > settings.max_upload_size_mb * 1024 * 1024:
        raise ValidationError(f"File too large. Maximum size: {settings.max_upload_size_mb}MB")


def public_url(object_key: str) -> str:
    base = (settings.s3_endpoint or "").rstrip("/")
    return f"{base}/{settings.s3_bucket_name}/{object_key}"


def save_event_image(file: UploadFile) -> Tuple[str, str]:
    """
    Upload an event image.

    Returns:
        Tuple of (object_key, public_url)

    Raises:
        ValidationError: If the file is not an acceptable image
        ServiceUnavailableError: If the bucket cannot be reached
    """
    _validate_image(file)

    suffix = Path(file.filename or "").suffix.lower()
    object_key = f"{settings.s3_key_prefix}{uuid.uuid4().hex}{suffix}"

    try:
        file.file.seek(0)
        get_s3_client().put_object(
            Bucket=settings.s3_bucket_name,
            Key=object_key,
            Body=file.file.read(),
            ContentType=file.content_type or 'application/octet-stream',
        )
    except (ClientError, BotoCoreError, ValueError) as e:
        logger.error(f"Failed to upload event image: {e}")
        raise ServiceUnavailableError("Failed to upload image to storage") from e
    finally:
        file.file.close()

    logger.info(f"Uploaded event image: {object_key}")
    return object_key, public_url(object_key)


def delete_file(object_key: str) -> bool:
    """
    Best-effort removal of a stored asset.

    Returns:
        True if deleted, False otherwise (the failure is logged, never raised)
    """
    try:
        get_s3_client().delete_object(
            Bucket=settings.s3_bucket_name,
            Key=object_key,
        )
        logger.info(f"Deleted asset from storage: {object_key}")
        return True
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to delete asset {object_key}: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error deleting asset {object_key}: {e}")
        return False


def ensure_dir(path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
