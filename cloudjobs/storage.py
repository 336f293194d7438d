"""
GCS storage utilities: bucket registry, object store and the storage demo workflow.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog
from google.api_core import exceptions as core_exceptions

from cloudjobs.jobs.client import build_credentials

if TYPE_CHECKING:
    from google.cloud import storage

    from cloudjobs.config import Settings

logger = structlog.get_logger(__name__)

DEMO_OBJECT_PATH = "demo/hello.txt"
DEMO_OBJECT_CONTENT = b"Hello from cloudjobs"


def build_storage_client(settings: Settings) -> storage.Client:
    """Create a GCS client with service account credentials when configured."""
    from google.cloud import storage

    client = storage.Client(credentials=build_credentials(settings))
    logger.debug("gcs_client_initialized")
    return client


class ContainerRegistry:
    """Bucket create/list/delete. Deleting an absent bucket succeeds."""

    def __init__(self, client: storage.Client):
        self._client = client

    def create(self, name: str, location: str | None = None) -> bool:
        try:
            self._client.create_bucket(name, location=location)
        except Exception as e:
            logger.error(
                "gcs_bucket_create_failed",
                bucket_name=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.info("gcs_bucket_created", bucket_name=name, location=location)
        return True

    def list(self) -> list[str]:
        try:
            return [bucket.name for bucket in self._client.list_buckets()]
        except Exception as e:
            logger.error("gcs_bucket_list_failed", error=str(e), error_type=type(e).__name__)
            return []

    def delete(self, name: str) -> bool:
        try:
            self._client.bucket(name).delete()
        except core_exceptions.NotFound:
            logger.info("gcs_bucket_already_deleted", bucket_name=name)
            return True
        except Exception as e:
            logger.error(
                "gcs_bucket_delete_failed",
                bucket_name=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.info("gcs_bucket_deleted", bucket_name=name)
        return True


class ObjectStore:
    """Object put/get/list/delete within a bucket."""

    def __init__(self, client: storage.Client):
        self._client = client

    def put(self, bucket_name: str, path: str, content: bytes | str) -> bool:
        try:
            blob = self._client.bucket(bucket_name).blob(path)
            blob.upload_from_string(content, content_type="application/octet-stream")
        except Exception as e:
            logger.error(
                "gcs_upload_failed",
                bucket_name=bucket_name,
                gcs_path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.debug("file_uploaded_to_gcs", bucket_name=bucket_name, gcs_path=path, file_size=len(content))
        return True

    def get(self, bucket_name: str, path: str) -> bytes | None:
        """Object content, or None when the object does not exist or cannot be read.

        A failed read and a missing object both return None; the two are only
        told apart in the logs (``gcs_object_not_found`` vs ``gcs_download_failed``).
        This is the same ambiguity failed job listings have.
        """
        try:
            return self._client.bucket(bucket_name).blob(path).download_as_bytes()
        except core_exceptions.NotFound:
            logger.info("gcs_object_not_found", bucket_name=bucket_name, gcs_path=path)
            return None
        except Exception as e:
            logger.error(
                "gcs_download_failed",
                bucket_name=bucket_name,
                gcs_path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    def list(self, bucket_name: str, prefix: str | None = None, delimiter: str | None = None) -> list[str]:
        try:
            blobs = self._client.list_blobs(bucket_name, prefix=prefix, delimiter=delimiter)
            return [blob.name for blob in blobs]
        except Exception as e:
            logger.error(
                "gcs_list_failed",
                bucket_name=bucket_name,
                prefix=prefix,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

    def delete(self, bucket_name: str, path: str) -> bool:
        try:
            self._client.bucket(bucket_name).blob(path).delete()
        except core_exceptions.NotFound:
            logger.info("gcs_object_already_deleted", bucket_name=bucket_name, gcs_path=path)
            return True
        except Exception as e:
            logger.error(
                "gcs_delete_failed",
                bucket_name=bucket_name,
                gcs_path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.debug("gcs_object_deleted", bucket_name=bucket_name, gcs_path=path)
        return True


def random_bucket_name(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass
class StorageDemoResult:
    bucket_name: str
    steps: dict[str, bool] = field(default_factory=dict)
    listed: list[str] = field(default_factory=list)
    content: bytes | None = None


def run_storage_demo(
    registry: ContainerRegistry,
    store: ObjectStore,
    bucket_name: str | None = None,
    bucket_prefix: str = "cloudjobs-demo",
    location: str | None = None,
) -> StorageDemoResult:
    """Create a throwaway bucket, round-trip one object through it, then remove both.

    Each call is independent; a failed step is logged and the next one still runs.
    """
    bucket_name = bucket_name or random_bucket_name(bucket_prefix)
    result = StorageDemoResult(bucket_name=bucket_name)
    logger.info("storage_demo_started", bucket_name=bucket_name)

    result.steps["create_bucket"] = registry.create(bucket_name, location=location)
    result.steps["put"] = store.put(bucket_name, DEMO_OBJECT_PATH, DEMO_OBJECT_CONTENT)
    result.listed = store.list(bucket_name, prefix="demo/")
    result.content = store.get(bucket_name, DEMO_OBJECT_PATH)
    result.steps["get"] = result.content == DEMO_OBJECT_CONTENT
    result.steps["delete_object"] = store.delete(bucket_name, DEMO_OBJECT_PATH)
    result.steps["delete_bucket"] = registry.delete(bucket_name)

    logger.info("storage_demo_finished", bucket_name=bucket_name, **result.steps)
    return result
