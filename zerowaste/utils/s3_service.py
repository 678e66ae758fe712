import io
import logging
import os
import uuid
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image

from zerowaste.config import get_settings
from zerowaste.errors import NotFound


logger = logging.getLogger(__name__)

FOLDER = "donations"

CONTENT_TYPES = {"webp": "image/webp", "jpg": "image/jpeg"}


@lru_cache
def get_s3_client():
    settings = get_settings()

    return boto3.client(
        service_name="s3",
        endpoint_url=f"https://{settings.CLOUDFLARE_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name="auto",
    )


def compress_image(data: bytes, max_width=1400, quality=80) -> Tuple[io.BytesIO, str]:
    img = Image.open(io.BytesIO(data))
    img = img.convert("RGB")

    # Resize while keeping aspect ratio
    w, h = img.size
    if w > max_width:
        new_height = int(h * (max_width / w))
        img = img.resize((max_width, new_height), Image.LANCZOS)

    buffer = io.BytesIO()

    try:
        img.save(buffer, format="WEBP", quality=quality, method=6)
        ext = "webp"
    except (OSError, KeyError) as e:
        logger.warning("WebP encoding unavailable, falling back to JPEG: %s", e)

        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality, optimize=True)
        ext = "jpg"

    buffer.seek(0)
    return buffer, ext


def build_key(owner: str, original_name: str, ext: str) -> str:
    base = os.path.splitext(os.path.basename(original_name or "image"))[0] or "image"
    return f"{owner_prefix(owner)}{base}-{uuid.uuid4().hex}.{ext}"


def owner_prefix(owner: str) -> str:
    return f"{FOLDER}/{owner}/"


def upload_to_s3(buffer: io.BytesIO, ext: str, original_name: str, owner: str) -> str:
    key = build_key(owner, original_name, ext)
    get_s3_client().upload_fileobj(
        buffer, get_settings().R2_BUCKET, key, ExtraArgs={"ContentType": CONTENT_TYPES[ext]}
    )
    logger.info("Uploaded donation image %s", key)
    return key


def generate_signed_url(key: str, expires_in=3600) -> Optional[str]:
    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": get_settings().R2_BUCKET, "Key": key},
            ExpiresIn=expires_in,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Error generating signed URL for %s: %s", key, e)
        return None


def list_images(owner: str) -> List[Dict[str, Any]]:
    prefix = owner_prefix(owner)
    response = get_s3_client().list_objects_v2(Bucket=get_settings().R2_BUCKET, Prefix=prefix)

    return [
        {
            "key": obj["Key"],
            "file_name": obj["Key"][len(prefix):],
            "size": obj["Size"],
            "uploaded_at": obj.get("LastModified"),
        }
        for obj in response.get("Contents", [])
    ]


def get_image_info(owner: str, file_name: str) -> Dict[str, Any]:
    key = owner_prefix(owner) + os.path.basename(file_name)

    try:
        head = get_s3_client().head_object(Bucket=get_settings().R2_BUCKET, Key=key)
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
            raise NotFound("File not found")
        raise

    return {
        "key": key,
        "file_name": os.path.basename(file_name),
        "size": head["ContentLength"],
        "content_type": head.get("ContentType"),
        "uploaded_at": head.get("LastModified"),
    }


def delete_image(owner: str, file_name: str) -> str:
    # head first so a missing file is a 404, delete_object succeeds either way
    key = get_image_info(owner, file_name)["key"]
    get_s3_client().delete_object(Bucket=get_settings().R2_BUCKET, Key=key)
    logger.info("Deleted image %s", key)
    return key
