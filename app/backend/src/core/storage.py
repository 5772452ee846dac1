"""Storage gateway for upload inputs and pipeline outputs.

Blobs are addressed by a logical ``container`` plus a ``/``-separated ``path``.
Every write returns a :class:`StoredFileReference` naming the provider that
handled it, and :class:`StorageGateway` routes reads by that name so a blob
stays readable after the active provider changes.
"""

from __future__ import annotations

import re
import shutil
from dataclasses import dataclass
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Mapping, Protocol, Union
from uuid import uuid4

import boto3
import structlog
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings, get_settings
from .errors import StorageConfigurationError

LOGGER = structlog.get_logger(__name__)

LOCAL_PROVIDER = "Local"
S3_PROVIDER = "S3"

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

Content = Union[bytes, BinaryIO]


@dataclass(frozen=True)
class StoredFileReference:
    """Backend-independent pointer to a stored blob."""

    provider: str
    container: str
    path: str


class FileStorage(Protocol):
    """Capabilities shared by every storage backend."""

    provider_name: str

    def save(
        self,
        container: str,
        path: str,
        content: Content,
        content_type: str,
    ) -> StoredFileReference:
        """Persist ``content`` and return a reference to it."""

    def open_read(self, reference: StoredFileReference) -> BinaryIO | None:
        """Return a readable stream, or ``None`` when the blob is missing."""


def normalize_object_path(path: str) -> str:
    """Return a relative, slash-separated path that cannot escape its container."""

    normalized = str(path or "").strip().replace("\\", "/")
    normalized = re.sub(r"/+", "/", normalized).lstrip("/")
    if not normalized or any(part in {".", ".."} for part in normalized.split("/")):
        raise ValueError(f"Invalid storage path: {path!r}")
    return normalized


def _as_stream(content: Content) -> BinaryIO:
    if isinstance(content, (bytes, bytearray)):
        return BytesIO(bytes(content))
    return content


class LocalFileStorage:
    """Stores blobs below ``{root}/{container}/{path}`` on the local filesystem."""

    provider_name = LOCAL_PROVIDER

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, container: str, path: str) -> Path:
        return self._root / normalize_object_path(container) / normalize_object_path(path)

    def save(
        self,
        container: str,
        path: str,
        content: Content,
        content_type: str,
    ) -> StoredFileReference:
        destination = self._resolve(container, path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        with destination.open("wb") as output:
            shutil.copyfileobj(_as_stream(content), output)
        LOGGER.info(
            "stored_local",
            container=container,
            path=path,
            content_type=content_type,
            location=str(destination),
        )
        return StoredFileReference(self.provider_name, container, path)

    def open_read(self, reference: StoredFileReference) -> BinaryIO | None:
        try:
            location = self._resolve(reference.container, reference.path)
        except ValueError:
            return None
        if not location.is_file():
            return None
        return location.open("rb")


class S3FileStorage:
    """Stores blobs in a single S3 bucket under ``{container}/{path}`` keys."""

    provider_name = S3_PROVIDER

    def __init__(
        self,
        *,
        bucket: str | None,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
    ) -> None:
        self._bucket = (bucket or "").strip()
        self._region = region
        self._endpoint_url = endpoint_url
        self._access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self._s3: BaseClient | None = None
        self._bucket_ready = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3FileStorage":
        return cls(
            bucket=settings.aws_s3_bucket,
            region=settings.aws_region,
            endpoint_url=settings.aws_s3_endpoint_url,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )

    def validate(self) -> None:
        """Raise :class:`StorageConfigurationError` if the bucket is not configured."""

        if not self._bucket:
            raise StorageConfigurationError("AWS_S3_BUCKET is not configured.")

    def _client(self) -> BaseClient:
        self.validate()
        if self._s3 is None:
            client_kwargs: dict[str, object] = {
                "config": Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "virtual"},
                ),
            }
            if self._region:
                client_kwargs["region_name"] = self._region
            if self._endpoint_url:
                client_kwargs["endpoint_url"] = self._endpoint_url
            if self._access_key_id and self._secret_access_key:
                client_kwargs["aws_access_key_id"] = self._access_key_id
                client_kwargs["aws_secret_access_key"] = self._secret_access_key
            self._s3 = boto3.client("s3", **client_kwargs)
        return self._s3

    def _ensure_bucket(self, client: BaseClient) -> None:
        if self._bucket_ready:
            return
        try:
            client.head_bucket(Bucket=self._bucket)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code not in _MISSING_OBJECT_CODES:
                raise
            create_kwargs: dict[str, object] = {"Bucket": self._bucket}
            if self._region and self._region != "us-east-1":
                create_kwargs["CreateBucketConfiguration"] = {
                    "LocationConstraint": self._region
                }
            client.create_bucket(**create_kwargs)
            LOGGER.info("s3_bucket_created", bucket=self._bucket, region=self._region)
        self._bucket_ready = True

    def _key(self, container: str, path: str) -> str:
        return f"{normalize_object_path(container)}/{normalize_object_path(path)}"

    def save(
        self,
        container: str,
        path: str,
        content: Content,
        content_type: str,
    ) -> StoredFileReference:
        client = self._client()
        self._ensure_bucket(client)
        key = self._key(container, path)
        try:
            client.upload_fileobj(
                Fileobj=_as_stream(content),
                Bucket=self._bucket,
                Key=key,
                ExtraArgs={"ContentType": content_type or "application/octet-stream"},
            )
        except (BotoCoreError, ClientError) as exc:
            LOGGER.error("s3_upload_failed", bucket=self._bucket, key=key, error=str(exc))
            raise
        LOGGER.info("uploaded_s3", bucket=self._bucket, key=key)
        return StoredFileReference(self.provider_name, container, path)

    def open_read(self, reference: StoredFileReference) -> BinaryIO | None:
        client = self._client()
        try:
            key = self._key(reference.container, reference.path)
        except ValueError:
            return None
        try:
            response = client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                return None
            raise
        return response["Body"]


class StorageGateway:
    """Writes through the active provider and routes reads by reference."""

    def __init__(self, providers: Mapping[str, FileStorage], active: str) -> None:
        if active not in providers:
            raise StorageConfigurationError(f"Unknown storage provider: {active!r}")
        self._providers = dict(providers)
        self._active = providers[active]

    @property
    def provider_name(self) -> str:
        return self._active.provider_name

    def save(
        self,
        container: str,
        path: str,
        content: Content,
        content_type: str,
    ) -> StoredFileReference:
        return self._active.save(container, path, content, content_type)

    def open_read(self, reference: StoredFileReference) -> BinaryIO | None:
        provider = self._providers.get(reference.provider)
        if provider is None:
            LOGGER.warning(
                "storage_provider_unknown",
                provider=reference.provider,
                container=reference.container,
                path=reference.path,
            )
            return None
        return provider.open_read(reference)


def _canonical_provider_name(raw: str) -> str:
    lowered = (raw or "").strip().lower()
    if lowered == "local":
        return LOCAL_PROVIDER
    if lowered == "s3":
        return S3_PROVIDER
    raise StorageConfigurationError(f"Unknown STORAGE_PROVIDER value: {raw!r}")


def build_storage_gateway(settings: Settings) -> StorageGateway:
    """Build the gateway once at start-up from the configured provider."""

    active = _canonical_provider_name(settings.storage_provider)
    local = LocalFileStorage(settings.local_storage_path)
    s3 = S3FileStorage.from_settings(settings)
    if active == S3_PROVIDER:
        s3.validate()

    LOGGER.info("storage_gateway_ready", provider=active)
    return StorageGateway({LOCAL_PROVIDER: local, S3_PROVIDER: s3}, active)


@lru_cache()
def get_storage_gateway() -> StorageGateway:
    """Return the process-wide gateway built from settings."""

    return build_storage_gateway(get_settings())


def sanitize_filename(filename: str) -> str:
    """Return ``filename`` with a filesystem-safe stem and a lowercased extension."""

    name = Path(str(filename or "").replace("\\", "/")).name
    stem, dot, extension = name.rpartition(".")
    if not dot:
        stem, extension = name, ""
    cleaned = _INVALID_FILENAME_CHARS.sub("_", stem)
    if not cleaned.strip():
        cleaned = "archivo"
    return f"{cleaned}.{extension.lower()}" if extension else cleaned


def _period_prefix(client_id: str, year: int, month: int) -> str:
    return f"{client_id}/{year:04d}/{month:02d}"


def build_input_path(
    client_id: str,
    year: int,
    month: int,
    filename: str,
    *,
    unique: str | None = None,
) -> str:
    """Return ``{client}/{yyyy}/{mm}/{unique}_{filename}`` for an uploaded file."""

    suffix = unique or str(uuid4())
    return f"{_period_prefix(client_id, year, month)}/{suffix}_{sanitize_filename(filename)}"


def build_output_path(
    client_id: str,
    year: int,
    month: int,
    job_id: str,
    extension: str,
    *,
    index: int = 0,
) -> str:
    """Return ``{client}/{yyyy}/{mm}/{job}.{ext}``; later artifacts get ``_{index}``."""

    stem = job_id if index == 0 else f"{job_id}_{index}"
    ext = extension.lstrip(".").lower() or "bin"
    return f"{_period_prefix(client_id, year, month)}/{stem}.{ext}"


__all__ = [
    "Content",
    "FileStorage",
    "LOCAL_PROVIDER",
    "LocalFileStorage",
    "S3_PROVIDER",
    "S3FileStorage",
    "StorageGateway",
    "StoredFileReference",
    "build_input_path",
    "build_output_path",
    "build_storage_gateway",
    "get_storage_gateway",
    "normalize_object_path",
    "sanitize_filename",
]
