import asyncio
import io
import logging
import mimetypes
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Final

import boto3
from botocore.client import Config
from botocore.exceptions import ClientError

from filerelay.core.config import Settings, StorageConfig
from filerelay.core.errors import InvalidInput, NotFound, StorageFailure
from filerelay.schemas import UploadResult

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE: Final[str] = "application/octet-stream"
DEFAULT_CHUNK_SIZE: Final[int] = 64 * 1024

_MISSING_KEY_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


@dataclass
class ObjectStream:
    """A stored object opened for reading, consumed once."""

    key: str
    content_type: str
    content_length: int | None
    chunks: Iterator[bytes]


class StorageService:
    """S3 bucket access: managed multipart uploads and streamed downloads."""

    scheme: Final[str] = "s3"

    def __init__(
        self,
        config: StorageConfig,
        client: Any | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.config = config
        self.bucket = config.bucket
        self.chunk_size = chunk_size
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                endpoint_url=config.endpoint_url,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
                config=Config(signature_version="s3v4"),
            )
        self.client = client
        logger.info("S3 storage ready for bucket %s", self.bucket)

    async def upload(
        self, key: str, data: bytes, content_type: str | None = None
    ) -> UploadResult:
        extra_args = {"ContentType": content_type} if content_type else None

        def _upload() -> None:
            # upload_fileobj picks part sizes and switches to multipart on its own
            self.client.upload_fileobj(
                io.BytesIO(data),
                self.bucket,
                key,
                ExtraArgs=extra_args,
            )

        try:
            await asyncio.to_thread(_upload)
        except Exception as exc:
            logger.exception("Error uploading %s to bucket %s", key, self.bucket)
            raise StorageFailure("Failed to upload file") from exc

        logger.info("Uploaded %s (%d bytes) to bucket %s", key, len(data), self.bucket)
        return UploadResult(key=key)

    async def download(self, key: str) -> ObjectStream:
        def _get() -> dict:
            return self.client.get_object(Bucket=self.bucket, Key=key)

        try:
            response = await asyncio.to_thread(_get)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in _MISSING_KEY_CODES:
                logger.warning("Object %s not found in bucket %s", key, self.bucket)
                raise NotFound() from exc
            logger.exception("Error downloading %s from bucket %s", key, self.bucket)
            raise StorageFailure("Failed to download file") from exc
        except Exception as exc:
            logger.exception("Error downloading %s from bucket %s", key, self.bucket)
            raise StorageFailure("Failed to download file") from exc

        body = response.get("Body")
        if body is None:
            logger.warning("Object %s in bucket %s has no body", key, self.bucket)
            raise NotFound()

        return ObjectStream(
            key=key,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            content_length=response.get("ContentLength"),
            chunks=self._iter_body(key, body),
        )

    def _iter_body(self, key: str, body: Any) -> Iterator[bytes]:
        try:
            for chunk in body.iter_chunks(chunk_size=self.chunk_size):
                if chunk:
                    yield chunk
        except Exception as exc:
            logger.exception("Error streaming %s from bucket %s", key, self.bucket)
            raise StorageFailure("Failed to download file") from exc
        finally:
            body.close()


class LocalStorageService(StorageService):
    """Local filesystem storage intended for development use."""

    scheme: Final[str] = "local"

    def __init__(  # type: ignore[override]
        self, base_path: str | Path, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.bucket = str(self.base_path)
        self.chunk_size = chunk_size
        logger.info("Local storage ready at %s", self.base_path)

    def _key_path(self, key: str) -> Path:
        # Keys must resolve to a file strictly inside base_path
        candidate = self.base_path.joinpath(*Path(key).parts).resolve()
        if candidate == self.base_path or not candidate.is_relative_to(self.base_path):
            raise InvalidInput("Invalid storage key")
        return candidate

    async def upload(  # type: ignore[override]
        self, key: str, data: bytes, content_type: str | None = None
    ) -> UploadResult:
        target = self._key_path(key)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            logger.exception("Error writing %s under %s", key, self.base_path)
            raise StorageFailure("Failed to upload file") from exc

        logger.info("Stored %s (%d bytes) under %s", key, len(data), self.base_path)
        return UploadResult(key=key)

    async def download(self, key: str) -> ObjectStream:  # type: ignore[override]
        path = self._key_path(key)
        if not path.is_file():
            logger.warning("Object %s not found under %s", key, self.base_path)
            raise NotFound()

        try:
            size = path.stat().st_size
            handle = await asyncio.to_thread(path.open, "rb")
        except OSError as exc:
            logger.exception("Error opening %s under %s", key, self.base_path)
            raise StorageFailure("Failed to download file") from exc

        content_type, _ = mimetypes.guess_type(path.name)
        return ObjectStream(
            key=key,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            content_length=size,
            chunks=self._iter_file(key, handle),
        )

    def _iter_file(self, key: str, handle: BinaryIO) -> Iterator[bytes]:
        try:
            while chunk := handle.read(self.chunk_size):
                yield chunk
        except OSError as exc:
            logger.exception("Error streaming %s under %s", key, self.base_path)
            raise StorageFailure("Failed to download file") from exc
        finally:
            handle.close()


def build_storage(settings: Settings) -> StorageService:
    if settings.storage_backend == "local":
        return LocalStorageService(
            settings.local_storage_dir, chunk_size=settings.download_chunk_size
        )
    return StorageService(
        settings.storage_config(), chunk_size=settings.download_chunk_size
    )
