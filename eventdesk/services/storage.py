"""
Cloudflare R2 storage for generated documents
"""

import logging

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import R2_ACCESS_KEY_ID, R2_ACCOUNT_ID, R2_BUCKET_NAME, R2_PUBLIC_URL, R2_SECRET_ACCESS_KEY

logger = logging.getLogger(__name__)

PRESIGNED_URL_EXPIRATION = 3600 * 24 * 7


class StorageError(Exception):
    """Raised when an upload to R2 fails"""


def get_r2_client():
    """Create and return an R2 client."""
    return boto3.client(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


def object_url(key: str) -> str:
    """Public URL when a public bucket domain is configured, otherwise a presigned GET"""
    if R2_PUBLIC_URL:
        return f"{R2_PUBLIC_URL.rstrip('/')}/{key}"
    return get_r2_client().generate_presigned_url(
        "get_object",
        Params={"Bucket": R2_BUCKET_NAME, "Key": key},
        ExpiresIn=PRESIGNED_URL_EXPIRATION,
    )


def upload_pdf(pdf_bytes: bytes, key: str) -> str:
    """Upload a PDF and return a URL for it"""
    try:
        get_r2_client().put_object(
            Bucket=R2_BUCKET_NAME,
            Key=key,
            Body=pdf_bytes,
            ContentType="application/pdf",
        )
        url = object_url(key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Failed to upload {key} to R2: {e}")
        raise StorageError(str(e)) from e

    logger.info(f"✅ Uploaded PDF to R2: {key}")
    return url
