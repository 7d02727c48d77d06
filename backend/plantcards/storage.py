"""S3-compatible object storage for plant images."""
import logging
from functools import lru_cache
from typing import Iterable

import boto3
from botocore.exceptions import ClientError

from plantcards.config import get_settings

logger = logging.getLogger("plantcards.storage")


class StorageError(Exception):
    """An object store operation reported a failure without raising."""


@lru_cache(maxsize=1)
def get_s3_client():
    settings = get_settings()
    endpoint = settings.s3_endpoint or None
    if settings.s3_provider == "aws":
        endpoint = None

    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_access_key_id,
        aws_secret_access_key=settings.s3_secret_access_key,
    )


class ImageStorage:
    """Bucket-addressed upload/remove plus public URL construction."""

    def __init__(self, client, public_url: str, cache_seconds: int = 3600):
        self.client = client
        self.public_base = public_url.rstrip("/")
        self.cache_seconds = cache_seconds

    def ensure_bucket(self, bucket: str) -> None:
        try:
            self.client.head_bucket(Bucket=bucket)
            return
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code not in {"404", "NoSuchBucket", "NotFound"}:
                raise

        settings = get_settings()
        create_args = {"Bucket": bucket}
        if settings.s3_provider == "aws" and settings.s3_region != "us-east-1":
            create_args["CreateBucketConfiguration"] = {"LocationConstraint": settings.s3_region}
        self.client.create_bucket(**create_args)
        logger.info("Created bucket %s", bucket)

    def ping(self, bucket: str) -> None:
        self.client.head_bucket(Bucket=bucket)

    def upload(self, bucket: str, path: str, payload: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=bucket,
            Key=path,
            Body=payload,
            ContentType=content_type,
            CacheControl=f"max-age={self.cache_seconds}",
        )

    def remove(self, bucket: str, paths: Iterable[str]) -> None:
        keys = [{"Key": path} for path in paths]
        if not keys:
            return
        response = self.client.delete_objects(Bucket=bucket, Delete={"Objects": keys, "Quiet": True})
        # quiet mode reports per-key failures instead of raising
        errors = response.get("Errors") or []
        if errors:
            failed = ", ".join(f"{e.get('Key')} ({e.get('Code')})" for e in errors)
            raise StorageError(f"Could not delete {failed} from {bucket}")

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base}/{bucket}/{path}"


@lru_cache(maxsize=1)
def get_storage() -> ImageStorage:
    settings = get_settings()
    return ImageStorage(get_s3_client(), settings.storage_public_url, settings.image_cache_seconds)


def bucket_for(plant) -> str:
    """Admin plants live in the shared bucket, user plants in the per-user one."""
    settings = get_settings()
    return settings.admin_image_bucket if plant.is_admin_plant else settings.user_image_bucket
