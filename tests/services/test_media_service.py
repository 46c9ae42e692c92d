"""Media ingestion: representation dispatch, temp-file hygiene, errors.

The boto3 client is replaced by a recorder so nothing leaves the process.
"""

from __future__ import annotations

import asyncio
import io
import os
from pathlib import Path
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError
from PIL import Image
from prometheus_client import REGISTRY

from app.core.config import MediaDisabled, MediaSettings
from app.core.errors import (
    ServiceNotConfigured,
    SourceFileMissing,
    UnsupportedFileRepresentation,
    UpstreamFailure,
    ValidationError,
)
from app.services import media_service
from app.services.media_service import (
    DisabledMediaIngestor,
    InMemoryBytes,
    MovableHandle,
    PathRef,
    S3MediaIngestor,
    build_media_ingestor,
    classify_file,
)

_SETTINGS = MediaSettings(
    bucket="courses",
    access_key_id="AKIA",
    secret_access_key="secret",
    region="eu-west-1",
    folder="course-service",
)


def _image(fmt: str, size: tuple[int, int]) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(out, format=fmt)
    return out.getvalue()


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


class _FakeS3:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.puts: list[dict] = []
        self.uploads: list[dict] = []

    def put_object(self, **kwargs) -> None:
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        self.puts.append(kwargs)

    def upload_file(self, path, bucket, key, ExtraArgs=None) -> None:
        # Record whether the file was still on disk while uploading
        self.uploads.append(
            {
                "path": path,
                "bucket": bucket,
                "key": key,
                "exists": os.path.isfile(path),
                "extra": ExtraArgs,
            }
        )
        if self.fail:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")


@pytest.fixture
def temp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(media_service, "_temp_dir", lambda: str(tmp_path))
    return tmp_path


# ---- classify_file ----


def test_classify_mapping_with_temp_path() -> None:
    ref = classify_file({"temp_file_path": "/tmp/x.png", "name": "x.png", "mimetype": "image/png"})
    assert ref == PathRef("/tmp/x.png", "x.png", "image/png")


def test_classify_object_with_data() -> None:
    ref = classify_file(SimpleNamespace(data=b"abc", filename="a.jpg", content_type=None))
    assert ref == InMemoryBytes(b"abc", "a.jpg", None)


def test_classify_object_with_mv() -> None:
    ref = classify_file({"mv": lambda dest: None, "name": "clip.mp4"})
    assert isinstance(ref, MovableHandle)
    assert ref.filename == "clip.mp4"


def test_classify_passes_refs_through() -> None:
    ref = InMemoryBytes(b"x")
    assert classify_file(ref) is ref


@pytest.mark.parametrize(
    "obj",
    [None, {"name": "x.png"}, SimpleNamespace(data="not-bytes")],
    ids=["none", "no-known-field", "data-not-bytes"],
)
def test_classify_rejects_unknown_shapes(obj: object) -> None:
    with pytest.raises(UnsupportedFileRepresentation):
        classify_file(obj)


# ---- S3MediaIngestor ----


def test_bytes_upload_never_touches_disk(temp_dir: Path) -> None:
    s3 = _FakeS3()
    ingestor = S3MediaIngestor(s3, _SETTINGS)
    before = _get_sample(
        "media_uploads_total", {"representation": "bytes", "outcome": "ok"}
    )

    asset = asyncio.run(ingestor.ingest(InMemoryBytes(b"png-bytes", "Cover.PNG")))

    assert list(temp_dir.iterdir()) == []
    assert s3.uploads == []
    put = s3.puts[0]
    assert put["Bucket"] == "courses"
    assert put["Body"] == b"png-bytes"
    assert put["ContentType"] == "image/png"
    assert put["Key"].startswith("course-service/")
    assert put["Key"].endswith(".png")
    assert asset.secure_url == f"https://courses.s3.eu-west-1.amazonaws.com/{asset.key}"
    assert asset.size == len(b"png-bytes")
    after = _get_sample("media_uploads_total", {"representation": "bytes", "outcome": "ok"})
    assert after - before == 1


def test_public_base_url_and_metadata() -> None:
    settings = MediaSettings(
        bucket="courses",
        access_key_id="a",
        secret_access_key="b",
        region="us-east-1",
        public_base_url="https://cdn.example.com/",
        max_height=720,
        quality=80,
    )
    s3 = _FakeS3()
    asset = asyncio.run(
        S3MediaIngestor(s3, settings).ingest(
            InMemoryBytes(_image("JPEG", (40, 30)), "a.jpg"), folder="thumbs"
        )
    )
    assert asset.secure_url == f"https://cdn.example.com/{asset.key}"
    assert asset.key.startswith("thumbs/")
    assert s3.puts[0]["Metadata"] == {"max-height": "720", "quality": "80"}


def test_path_upload(tmp_path: Path) -> None:
    source = tmp_path / "lesson.mp4"
    source.write_bytes(b"video")
    s3 = _FakeS3()

    asset = asyncio.run(S3MediaIngestor(s3, _SETTINGS).ingest(PathRef(str(source), "lesson.mp4")))

    assert s3.uploads[0]["path"] == str(source)
    assert s3.uploads[0]["extra"]["ContentType"] == "video/mp4"
    assert asset.size == 5
    # Caller-owned files are left in place
    assert source.exists()


def test_path_upload_missing_file(tmp_path: Path) -> None:
    ingestor = S3MediaIngestor(_FakeS3(), _SETTINGS)
    with pytest.raises(SourceFileMissing):
        asyncio.run(ingestor.ingest(PathRef(str(tmp_path / "gone.mp4"))))


def _mover(payload: bytes):
    def move(dest: str) -> None:
        Path(dest).write_bytes(payload)

    return move


def test_movable_temp_file_removed_on_success(temp_dir: Path) -> None:
    s3 = _FakeS3()
    asyncio.run(
        S3MediaIngestor(s3, _SETTINGS).ingest(MovableHandle(_mover(b"clip"), "clip.mp4"))
    )
    assert s3.uploads[0]["exists"] is True
    assert Path(s3.uploads[0]["path"]).parent == temp_dir
    assert list(temp_dir.iterdir()) == []


def test_movable_temp_file_removed_on_failure(temp_dir: Path) -> None:
    s3 = _FakeS3(fail=True)
    before = _get_sample(
        "media_uploads_total", {"representation": "movable", "outcome": "error"}
    )
    with pytest.raises(UpstreamFailure):
        asyncio.run(
            S3MediaIngestor(s3, _SETTINGS).ingest(MovableHandle(_mover(b"clip"), "clip.mp4"))
        )
    assert list(temp_dir.iterdir()) == []
    after = _get_sample(
        "media_uploads_total", {"representation": "movable", "outcome": "error"}
    )
    assert after - before == 1


def test_async_mover_is_awaited(temp_dir: Path) -> None:
    async def move(dest: str) -> None:
        Path(dest).write_bytes(b"async")

    s3 = _FakeS3()
    asset = asyncio.run(S3MediaIngestor(s3, _SETTINGS).ingest(MovableHandle(move, "a.mp4")))
    assert asset.size == 5
    assert list(temp_dir.iterdir()) == []


def test_provider_error_becomes_upstream_failure() -> None:
    with pytest.raises(UpstreamFailure, match="Failed to upload media"):
        asyncio.run(S3MediaIngestor(_FakeS3(fail=True), _SETTINGS).ingest(InMemoryBytes(b"x")))


# ---- disabled ----


def test_disabled_ingestor_refuses() -> None:
    ingestor = build_media_ingestor(MediaDisabled(reason="missing MEDIA_BUCKET"))
    assert isinstance(ingestor, DisabledMediaIngestor)
    with pytest.raises(ServiceNotConfigured):
        asyncio.run(ingestor.ingest(InMemoryBytes(b"x")))


def test_build_configured_ingestor() -> None:
    assert isinstance(build_media_ingestor(_SETTINGS), S3MediaIngestor)


# ---- image fitting ----

_FITTED = MediaSettings(
    bucket="courses",
    access_key_id="a",
    secret_access_key="b",
    region="us-east-1",
    max_height=200,
    quality=60,
)


def test_image_scaled_to_max_height_and_reencoded() -> None:
    original = _image("JPEG", (400, 1000))
    s3 = _FakeS3()

    asset = asyncio.run(S3MediaIngestor(s3, _FITTED).ingest(InMemoryBytes(original, "big.jpg")))

    body = s3.puts[0]["Body"]
    assert body != original
    with Image.open(io.BytesIO(body)) as img:
        assert img.format == "JPEG"
        assert img.size == (80, 200)
    assert asset.size == len(body)


def test_image_within_height_keeps_size() -> None:
    s3 = _FakeS3()
    asyncio.run(
        S3MediaIngestor(s3, _FITTED).ingest(InMemoryBytes(_image("PNG", (50, 20)), "small.png"))
    )
    with Image.open(io.BytesIO(s3.puts[0]["Body"])) as img:
        assert img.format == "PNG"
        assert img.size == (50, 20)


def test_image_from_path_is_fitted_before_upload(tmp_path: Path) -> None:
    source = tmp_path / "cover.png"
    source.write_bytes(_image("PNG", (300, 600)))
    s3 = _FakeS3()

    asyncio.run(S3MediaIngestor(s3, _FITTED).ingest(PathRef(str(source), "cover.png")))

    assert s3.uploads == []
    with Image.open(io.BytesIO(s3.puts[0]["Body"])) as img:
        assert img.size == (100, 200)


def test_video_is_not_reencoded(tmp_path: Path) -> None:
    source = tmp_path / "lesson.mp4"
    source.write_bytes(b"video")
    s3 = _FakeS3()

    asyncio.run(S3MediaIngestor(s3, _FITTED).ingest(PathRef(str(source), "lesson.mp4")))

    assert s3.puts == []
    assert s3.uploads[0]["extra"]["ContentType"] == "video/mp4"


def test_undecodable_image_is_rejected() -> None:
    s3 = _FakeS3()
    labels = {"representation": "bytes", "outcome": "error"}
    before = _get_sample("media_uploads_total", labels)

    with pytest.raises(ValidationError, match="Invalid image file"):
        asyncio.run(S3MediaIngestor(s3, _FITTED).ingest(InMemoryBytes(b"not-an-image", "a.jpg")))

    assert s3.puts == []
    assert _get_sample("media_uploads_total", labels) - before == 1
