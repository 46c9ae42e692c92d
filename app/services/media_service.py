"""Media ingestion into S3-compatible object storage.

Uploads arrive in one of three transport representations, decided once at
the HTTP boundary and carried as a tagged union:

  PathRef        a file already on local disk (checked for existence)
  InMemoryBytes  a buffer streamed straight to the provider, never to disk
  MovableHandle  a handle that can move itself to a path; it is moved to a
                 process-scoped temp file, uploaded, and the temp file is
                 always removed afterwards

Two ingestors satisfy the MediaIngestor protocol.  S3MediaIngestor wraps a
boto3 client and runs its blocking calls on a worker thread.
DisabledMediaIngestor is built when credentials are missing and fails every
call with ServiceNotConfigured without touching the network.

When MEDIA_MAX_HEIGHT or MEDIA_QUALITY is set, JPEG, PNG and WEBP uploads are
scaled down and re-encoded with Pillow before they are sent.
"""

from __future__ import annotations

import asyncio
import inspect
import io
import logging
import mimetypes
import os
import shutil
import tempfile
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from app.core.config import MediaDisabled, MediaSettings
from app.core.errors import (
    ServiceNotConfigured,
    SourceFileMissing,
    UnsupportedFileRepresentation,
    UpstreamFailure,
    ValidationError,
)
from app.core.metrics import MEDIA_UPLOAD_DURATION, MEDIA_UPLOADS

logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "application/octet-stream"
_COPY_CHUNK = 1024 * 1024

# Raster types re-encoded to the configured height and quality
_IMAGE_FORMATS = {"image/jpeg": "JPEG", "image/png": "PNG", "image/webp": "WEBP"}


# ---------------------------------------------------------------------------
# File representations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathRef:
    path: str
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class InMemoryBytes:
    data: bytes
    filename: str | None = None
    content_type: str | None = None


@dataclass(frozen=True)
class MovableHandle:
    # move(dest) may be sync or async
    move: Callable[[str], Any]
    filename: str | None = None
    content_type: str | None = None


FileRef = PathRef | InMemoryBytes | MovableHandle


@dataclass(frozen=True)
class MediaAsset:
    secure_url: str
    key: str
    content_type: str
    size: int
    metadata: dict[str, str] = field(default_factory=dict)


def representation_of(ref: FileRef) -> str:
    if isinstance(ref, PathRef):
        return "path"
    if isinstance(ref, InMemoryBytes):
        return "bytes"
    return "movable"


def _lookup(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def classify_file(obj: Any) -> FileRef:
    """Map an arbitrary upload handle to one of the FileRef variants.

    Recognised fields, checked in order and read either as attributes or
    mapping keys: temp_file_path, data (bytes), move_to / mv (callable).
    """
    if obj is None:
        raise UnsupportedFileRepresentation("File object is required")
    if isinstance(obj, PathRef | InMemoryBytes | MovableHandle):
        return obj

    filename = _lookup(obj, "filename") or _lookup(obj, "name")
    content_type = _lookup(obj, "content_type") or _lookup(obj, "mimetype")

    temp_path = _lookup(obj, "temp_file_path")
    if temp_path:
        return PathRef(str(temp_path), filename, content_type)

    data = _lookup(obj, "data")
    if isinstance(data, bytes | bytearray):
        return InMemoryBytes(bytes(data), filename, content_type)

    mover = _lookup(obj, "move_to") or _lookup(obj, "mv")
    if callable(mover):
        return MovableHandle(mover, filename, content_type)

    logger.warning(
        "Unrecognised upload handle  type=%s has_temp_file_path=%s has_data=%s",
        type(obj).__name__,
        temp_path is not None,
        data is not None,
    )
    raise UnsupportedFileRepresentation(
        "Invalid image file format. File must have temp_file_path, data, "
        "or a move_to method.",
        details={"missing": ["temp_file_path", "data", "move_to"]},
    )


class _UploadFileMover:
    """Moves a spooled UploadFile to a destination path."""

    def __init__(self, upload: UploadFile) -> None:
        self._upload = upload

    async def move_to(self, dest: str) -> None:
        await self._upload.seek(0)
        await asyncio.to_thread(self._copy, dest)

    def _copy(self, dest: str) -> None:
        with open(dest, "wb") as out:
            shutil.copyfileobj(self._upload.file, out, _COPY_CHUNK)


async def file_ref_from_upload(upload: UploadFile, memory_limit: int) -> FileRef:
    """Decide the representation of a multipart upload.

    Uploads up to *memory_limit* bytes are read into memory; larger ones
    stay spooled and are handed over as a movable handle.
    """
    size = upload.size
    if size is not None and size <= memory_limit:
        data = await upload.read()
        return InMemoryBytes(data, upload.filename, upload.content_type)
    mover = _UploadFileMover(upload)
    return MovableHandle(mover.move_to, upload.filename, upload.content_type)


# ---------------------------------------------------------------------------
# Ingestors
# ---------------------------------------------------------------------------


class MediaIngestor(Protocol):
    async def ingest(self, ref: FileRef, *, folder: str | None = None) -> MediaAsset: ...


class DisabledMediaIngestor:
    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def ingest(self, ref: FileRef, *, folder: str | None = None) -> MediaAsset:
        MEDIA_UPLOADS.labels(
            representation=representation_of(ref), outcome="disabled"
        ).inc()
        raise ServiceNotConfigured(
            "Media storage is not configured. Please contact administrator."
        )


@lru_cache(maxsize=1)
def _temp_dir() -> str:
    return tempfile.mkdtemp(prefix="course-media-")


def _guess_content_type(filename: str | None, declared: str | None) -> str:
    if declared:
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return _DEFAULT_CONTENT_TYPE


def fit_image(
    data: bytes, fmt: str, *, max_height: int | None, quality: int | None
) -> bytes:
    """Scale an image down to *max_height* and re-encode it at *quality*.

    Images already within the height keep their size.  Quality applies to
    JPEG and WEBP; PNG output is losslessly optimised instead.
    """
    try:
        with Image.open(io.BytesIO(data)) as src:
            img = src
            if fmt == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            if max_height and img.height > max_height:
                width = max(1, round(img.width * max_height / img.height))
                img = img.resize((width, max_height), Image.Resampling.LANCZOS)
            params: dict[str, Any] = {"optimize": True}
            if quality and fmt != "PNG":
                params["quality"] = quality
            out = io.BytesIO()
            img.save(out, format=fmt, **params)
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Invalid image file", details={"format": fmt}) from e
    return out.getvalue()


class S3MediaIngestor:
    """Uploads FileRefs to one S3 bucket under a configurable folder."""

    def __init__(self, client: Any, settings: MediaSettings) -> None:
        if not settings.bucket:
            raise ValueError("bucket is required")
        self._client = client
        self._settings = settings

    def _metadata(self) -> dict[str, str]:
        meta: dict[str, str] = {}
        if self._settings.max_height:
            meta["max-height"] = str(self._settings.max_height)
        if self._settings.quality:
            meta["quality"] = str(self._settings.quality)
        return meta

    def _needs_fitting(self, content_type: str) -> bool:
        return content_type in _IMAGE_FORMATS and bool(
            self._settings.max_height or self._settings.quality
        )

    def _url_for(self, key: str) -> str:
        base = self._settings.public_base_url
        if base:
            return f"{base.rstrip('/')}/{key}"
        return (
            f"https://{self._settings.bucket}.s3."
            f"{self._settings.region}.amazonaws.com/{key}"
        )

    def _key_for(self, folder: str, filename: str | None) -> str:
        ext = Path(filename).suffix.lower() if filename else ""
        return f"{folder.strip('/')}/{uuid4().hex}{ext}"

    async def ingest(self, ref: FileRef, *, folder: str | None = None) -> MediaAsset:
        representation = representation_of(ref)
        folder = folder or self._settings.folder
        content_type = _guess_content_type(ref.filename, ref.content_type)
        key = self._key_for(folder, ref.filename)
        metadata = self._metadata()

        start = time.monotonic()
        try:
            if isinstance(ref, PathRef):
                size = await self._upload_path(ref.path, key, content_type, metadata)
            elif isinstance(ref, InMemoryBytes):
                size = await self._upload_bytes(ref.data, key, content_type, metadata)
            else:
                size = await self._upload_movable(ref, key, content_type, metadata)
        except (ClientError, BotoCoreError) as e:
            MEDIA_UPLOADS.labels(representation=representation, outcome="error").inc()
            logger.error(
                "Media upload failed  key=%s representation=%s error=%s",
                key,
                representation,
                e,
            )
            raise UpstreamFailure("Failed to upload media") from e
        except Exception:
            MEDIA_UPLOADS.labels(representation=representation, outcome="error").inc()
            raise
        finally:
            MEDIA_UPLOAD_DURATION.observe(time.monotonic() - start)

        MEDIA_UPLOADS.labels(representation=representation, outcome="ok").inc()
        logger.info(
            "Media uploaded  key=%s representation=%s size=%d",
            key,
            representation,
            size,
        )
        return MediaAsset(
            secure_url=self._url_for(key),
            key=key,
            content_type=content_type,
            size=size,
            metadata=metadata,
        )

    async def _upload_path(
        self, path: str, key: str, content_type: str, metadata: dict[str, str]
    ) -> int:
        if not os.path.isfile(path):
            raise SourceFileMissing(f"Temporary file not found at: {path}")
        if self._needs_fitting(content_type):
            data = await asyncio.to_thread(Path(path).read_bytes)
            return await self._upload_bytes(data, key, content_type, metadata)
        await asyncio.to_thread(
            self._client.upload_file,
            path,
            self._settings.bucket,
            key,
            ExtraArgs={"ContentType": content_type, "Metadata": metadata},
        )
        return os.path.getsize(path)

    async def _upload_bytes(
        self, data: bytes, key: str, content_type: str, metadata: dict[str, str]
    ) -> int:
        if self._needs_fitting(content_type):
            data = await asyncio.to_thread(
                fit_image,
                data,
                _IMAGE_FORMATS[content_type],
                max_height=self._settings.max_height,
                quality=self._settings.quality,
            )
        await asyncio.to_thread(
            self._client.put_object,
            Bucket=self._settings.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            Metadata=metadata,
        )
        return len(data)

    async def _upload_movable(
        self,
        ref: MovableHandle,
        key: str,
        content_type: str,
        metadata: dict[str, str],
    ) -> int:
        name = Path(ref.filename).name if ref.filename else "upload"
        tmp_path = os.path.join(_temp_dir(), f"{uuid4().hex}-{name}")
        try:
            moved = ref.move(tmp_path)
            if inspect.isawaitable(moved):
                await moved
            return await self._upload_path(tmp_path, key, content_type, metadata)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.unlink(tmp_path)
                except OSError as e:
                    logger.warning(
                        "Could not delete temporary file %s: %s", tmp_path, e
                    )


def build_media_ingestor(settings: MediaSettings | MediaDisabled) -> MediaIngestor:
    """Build the ingestor once at startup from the media settings variant."""
    if isinstance(settings, MediaDisabled):
        logger.warning(
            "Media storage disabled (%s); uploads will answer 503", settings.reason
        )
        return DisabledMediaIngestor(settings.reason)

    client = boto3.client(
        "s3",
        region_name=settings.region,
        aws_access_key_id=settings.access_key_id,
        aws_secret_access_key=settings.secret_access_key,
    )
    logger.info(
        "Media storage enabled  bucket=%s folder=%s", settings.bucket, settings.folder
    )
    return S3MediaIngestor(client, settings)
