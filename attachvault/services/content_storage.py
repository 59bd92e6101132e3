"""
Content storage backends for version bytes.

The core treats storage as an opaque key/value byte store with put, get
and delete. Two backends are provided:
- S3ContentBackend: any S3-compatible store (MinIO in development)
- LocalContentBackend: a directory on local disk

Every backend failure is raised as StorageError. Whether that is fatal is
the caller's decision: uploads surface it, retention purges log it.
"""

import asyncio
import logging
import mimetypes
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from attachvault.config import Settings, get_settings
from attachvault.core.exceptions import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """
    Reduce a display filename to something usable as a key segment.

    Args:
        filename: Original filename

    Returns:
        Filename with path separators and unusual characters replaced
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[:200] or "file"


def generate_storage_key(attachment_id: UUID, filename: str) -> str:
    """
    Generate a unique storage key for one version's bytes.

    Format: attachments/{attachment_id}/{random}/{filename}

    The random segment means keys are chosen before a version number is
    assigned, and no two versions ever share a key.

    Args:
        attachment_id: Attachment UUID
        filename: Display filename

    Returns:
        Storage key
    """
    return f"attachments/{attachment_id}/{uuid4().hex}/{safe_filename(filename)}"


def guess_content_type(filename: str) -> str:
    """Content type used when an upload does not declare one."""
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or "application/octet-stream"


class ContentBackend(ABC):
    """Opaque byte store addressed by storage key."""

    @abstractmethod
    async def put(self, key: str, content: bytes, content_type: str) -> None:
        """Store bytes under key, replacing anything already there."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Read the bytes stored under key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the bytes under key. Deleting a missing key is not an error."""


class S3ContentBackend(ContentBackend):
    """Content backend for S3-compatible object storage."""

    def __init__(self, settings: Settings | None = None):
        """
        Initialize S3 content backend.

        Args:
            settings: Application settings with S3 configuration.
                     Uses get_settings() if not provided.
        """
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def get_client(self) -> AsyncGenerator[Any, None]:
        """
        Get S3 client context manager.

        Yields:
            Async S3 client from aiobotocore

        Raises:
            StorageError: If S3 storage is not configured
        """
        if not self.settings.s3_configured:
            raise StorageError(
                "S3 storage not configured. "
                "Set ATTACHVAULT_S3_ACCESS_KEY and ATTACHVAULT_S3_SECRET_KEY environment variables."
            )

        from aiobotocore.session import get_session

        session = get_session()
        async with session.create_client(
            "s3",
            endpoint_url=self.settings.s3_endpoint,
            aws_access_key_id=self.settings.s3_access_key,
            aws_secret_access_key=self.settings.s3_secret_key,
            region_name=self.settings.s3_region,
        ) as client:
            yield client

    async def put(self, key: str, content: bytes, content_type: str) -> None:
        try:
            async with self.get_client() as s3:
                await s3.put_object(
                    Bucket=self.settings.s3_bucket,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to upload content to S3: {key}, error: {e}")
            raise StorageError(f"Failed to store content: {e}", key=key) from e

        logger.info(f"Uploaded content to S3: {key} ({len(content)} bytes)")

    async def get(self, key: str) -> bytes:
        try:
            async with self.get_client() as s3:
                response = await s3.get_object(Bucket=self.settings.s3_bucket, Key=key)
                async with response["Body"] as stream:
                    data: bytes = await stream.read()
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to read content from S3: {key}, error: {e}")
            raise StorageError(f"Failed to read content: {e}", key=key) from e
        return data

    async def delete(self, key: str) -> None:
        try:
            async with self.get_client() as s3:
                await s3.delete_object(Bucket=self.settings.s3_bucket, Key=key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete content: {e}", key=key) from e

        logger.info(f"Deleted content from S3: {key}")


class LocalContentBackend(ContentBackend):
    """Content backend storing each key as a file under a root directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise StorageError("Storage key escapes the storage root", key=key)
        return path

    async def put(self, key: str, content: bytes, content_type: str) -> None:
        path = self._path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(path.name + ".part")
            tmp.write_bytes(content)
            tmp.replace(path)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to write content: {key}, error: {e}")
            raise StorageError(f"Failed to store content: {e}", key=key) from e

        logger.debug(f"Stored content at {path} ({len(content)} bytes)")

    async def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read content: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete content: {e}", key=key) from e

        logger.debug(f"Deleted content at {path}")


# Module-level singleton for convenience
_content_backend: ContentBackend | None = None


def get_content_backend() -> ContentBackend:
    """
    Get the configured content backend singleton.

    Returns:
        S3ContentBackend or LocalContentBackend depending on settings.storage_backend
    """
    global _content_backend
    if _content_backend is None:
        settings = get_settings()
        if settings.storage_backend == "s3":
            _content_backend = S3ContentBackend(settings)
        else:
            settings.validate_paths()
            _content_backend = LocalContentBackend(settings.local_storage_path)
    return _content_backend


def reset_content_backend() -> None:
    """Reset the content backend (for testing)."""
    global _content_backend
    _content_backend = None
