"""
S3 helpers for storing rendered reports.
"""

import logging
import random
import re
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from shared.errors import UploadError

logger = logging.getLogger(__name__)

# SigV4 presigned URLs are capped at seven days
LINK_EXPIRES_IN = 7 * 24 * 3600


def get_s3(region: str):
    """Return an S3 client (created on demand)."""
    return boto3.client("s3", region_name=region)


def render_filename_timestamp(date: datetime) -> str:
    return date.strftime("%Y-%m-%d_%H%M%S")


def generate_s3_key(
    filename: str,
    extension: str,
    prepend_to_path: str = "",
    now: Optional[datetime] = None,
) -> str:
    """
    Build an S3 key in the form 'prefix/YYYY/MM/DD/file_name_YYYY-MM-DD_HHMMSS_#####.ext'.
    Args:
        filename (str): Base name; anything but letters and digits becomes '_'.
        extension (str): File extension, e.g. 'csv'.
        prepend_to_path (str): Optional leading directory.
        now (datetime): Timestamp to use (UTC now by default).
    Returns:
        str: The key.
    """
    now = now or datetime.now(timezone.utc)
    safe_filename = re.sub(r"[^a-zA-Z0-9]", "_", filename)
    prefix = ""
    if prepend_to_path:
        prefix = re.sub(r"[^a-zA-Z0-9_/-]", "_", prepend_to_path).rstrip("/") + "/"
    number = random.randint(10000, 99999)
    return (
        f"{prefix}{now:%Y/%m/%d}/"
        f"{safe_filename}_{render_filename_timestamp(now)}_{number}.{extension}"
    )


def upload_report(s3, bucket: str, key: str, body: bytes, content_type: str) -> None:
    """
    Write a rendered report to S3.
    Raises:
        UploadError: If the put fails.
    """
    try:
        s3.put_object(Bucket=bucket, Key=key, Body=body, ContentType=content_type)
    except (BotoCoreError, ClientError) as e:
        raise UploadError(f"Could not upload s3://{bucket}/{key}: {e}") from e
    logger.info("Uploaded report to s3://%s/%s (%d bytes)", bucket, key, len(body))


def presigned_url(s3, bucket: str, key: str, expires_in: int = LINK_EXPIRES_IN) -> str:
    try:
        return s3.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
        )
    except (BotoCoreError, ClientError) as e:
        raise UploadError(f"Could not sign s3://{bucket}/{key}: {e}") from e
