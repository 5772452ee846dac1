from __future__ import annotations

from io import BytesIO
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from app.backend.src.core import storage
from app.backend.src.core.config import Settings
from app.backend.src.core.errors import StorageConfigurationError
from app.backend.src.core.storage import (
    LOCAL_PROVIDER,
    S3_PROVIDER,
    LocalFileStorage,
    S3FileStorage,
    StorageGateway,
    StoredFileReference,
    build_input_path,
    build_output_path,
    build_storage_gateway,
    normalize_object_path,
    sanitize_filename,
)


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "STORAGE_PROVIDER": "Local",
        "LOCAL_STORAGE_PATH": "/tmp/accounting-pipeline-tests",
        "AWS_S3_BUCKET": None,
        "AWS_REGION": None,
    }
    values.update(overrides)
    return Settings(**values)


def test_local_round_trip_bytes(local_storage: LocalFileStorage) -> None:
    reference = local_storage.save("uploads", "c1/2024/03/a_mayor.xlsx", b"contenido", "application/octet-stream")

    assert reference == StoredFileReference(LOCAL_PROVIDER, "uploads", "c1/2024/03/a_mayor.xlsx")
    stream = local_storage.open_read(reference)
    assert stream is not None
    with stream:
        assert stream.read() == b"contenido"
    assert (local_storage.root / "uploads" / "c1" / "2024" / "03" / "a_mayor.xlsx").is_file()


def test_local_save_accepts_streams(local_storage: LocalFileStorage) -> None:
    reference = local_storage.save("outputs", "c1/2024/03/job.csv", BytesIO(b"a,b\n1,2\n"), "text/csv")

    with local_storage.open_read(reference) as stream:
        assert stream.read() == b"a,b\n1,2\n"


def test_local_open_missing_returns_none(local_storage: LocalFileStorage) -> None:
    reference = StoredFileReference(LOCAL_PROVIDER, "uploads", "nope/missing.pdf")

    assert local_storage.open_read(reference) is None


def test_local_rejects_paths_escaping_the_container(local_storage: LocalFileStorage) -> None:
    with pytest.raises(ValueError):
        local_storage.save("uploads", "../secrets.txt", b"x", "text/plain")

    assert local_storage.open_read(StoredFileReference(LOCAL_PROVIDER, "uploads", "../x")) is None


def test_gateway_routes_reads_by_reference_provider(local_storage: LocalFileStorage) -> None:
    s3_backend = Mock(spec=S3FileStorage)
    s3_backend.provider_name = S3_PROVIDER
    gateway = StorageGateway({LOCAL_PROVIDER: local_storage, S3_PROVIDER: s3_backend}, S3_PROVIDER)

    legacy = local_storage.save("uploads", "c1/2024/03/old.pdf", b"%PDF-1.4", "application/pdf")
    stream = gateway.open_read(legacy)

    assert stream is not None
    with stream:
        assert stream.read() == b"%PDF-1.4"
    s3_backend.open_read.assert_not_called()
    assert gateway.provider_name == S3_PROVIDER


def test_gateway_unknown_provider_reads_as_missing(storage: StorageGateway) -> None:
    reference = StoredFileReference("Azure", "uploads", "c1/2024/03/file.pdf")

    assert storage.open_read(reference) is None


def test_gateway_requires_known_active_provider(local_storage: LocalFileStorage) -> None:
    with pytest.raises(StorageConfigurationError):
        StorageGateway({LOCAL_PROVIDER: local_storage}, S3_PROVIDER)


def test_build_gateway_defaults_to_local(tmp_path) -> None:
    gateway = build_storage_gateway(_settings(LOCAL_STORAGE_PATH=str(tmp_path), STORAGE_PROVIDER="local"))

    assert gateway.provider_name == LOCAL_PROVIDER
    reference = gateway.save("uploads", "c/2024/01/x.pdf", b"data", "application/pdf")
    assert reference.provider == LOCAL_PROVIDER


def test_build_gateway_rejects_unknown_provider() -> None:
    with pytest.raises(StorageConfigurationError):
        build_storage_gateway(_settings(STORAGE_PROVIDER="Azure"))


def test_build_gateway_requires_bucket_for_s3() -> None:
    with pytest.raises(StorageConfigurationError):
        build_storage_gateway(_settings(STORAGE_PROVIDER="S3"))


def test_s3_save_uses_container_key_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    mock_client = Mock()

    def fake_boto3_client(service_name: str, **kwargs: object) -> Mock:
        captured["service"] = service_name
        captured.update(kwargs)
        return mock_client

    monkeypatch.setattr(storage.boto3, "client", fake_boto3_client)
    backend = S3FileStorage(bucket="accounting-files", region="us-east-1")

    reference = backend.save("outputs", "c1/2024/03/job.csv", b"a,b\n", "text/csv")

    assert reference == StoredFileReference(S3_PROVIDER, "outputs", "c1/2024/03/job.csv")
    assert captured["service"] == "s3"
    assert getattr(captured["config"], "signature_version", None) == "s3v4"
    mock_client.head_bucket.assert_called_once_with(Bucket="accounting-files")
    mock_client.create_bucket.assert_not_called()
    kwargs = mock_client.upload_fileobj.call_args.kwargs
    assert kwargs["Bucket"] == "accounting-files"
    assert kwargs["Key"] == "outputs/c1/2024/03/job.csv"
    assert kwargs["ExtraArgs"] == {"ContentType": "text/csv"}


def test_s3_creates_missing_bucket_once(monkeypatch: pytest.MonkeyPatch) -> None:
    mock_client = Mock()
    mock_client.head_bucket.side_effect = _client_error("404", "HeadBucket")
    monkeypatch.setattr(storage.boto3, "client", lambda *_args, **_kwargs: mock_client)
    backend = S3FileStorage(bucket="accounting-files", region="sa-east-1")

    backend.save("uploads", "a.pdf", b"1", "application/pdf")
    backend.save("uploads", "b.pdf", b"2", "application/pdf")

    mock_client.create_bucket.assert_called_once_with(
        Bucket="accounting-files",
        CreateBucketConfiguration={"LocationConstraint": "sa-east-1"},
    )
    assert mock_client.head_bucket.call_count == 1


def test_s3_open_read_missing_key_returns_none(monkeypatch: pytest.MonkeyPatch) -> None:
    mock_client = Mock()
    mock_client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
    monkeypatch.setattr(storage.boto3, "client", lambda *_args, **_kwargs: mock_client)
    backend = S3FileStorage(bucket="accounting-files")

    assert backend.open_read(StoredFileReference(S3_PROVIDER, "uploads", "gone.pdf")) is None


def test_s3_open_read_returns_body(monkeypatch: pytest.MonkeyPatch) -> None:
    mock_client = Mock()
    mock_client.get_object.return_value = {"Body": BytesIO(b"blob")}
    monkeypatch.setattr(storage.boto3, "client", lambda *_args, **_kwargs: mock_client)
    backend = S3FileStorage(bucket="accounting-files")

    stream = backend.open_read(StoredFileReference(S3_PROVIDER, "uploads", "c1/2024/03/x.pdf"))

    assert stream.read() == b"blob"
    mock_client.get_object.assert_called_once_with(
        Bucket="accounting-files", Key="uploads/c1/2024/03/x.pdf"
    )


def test_s3_propagates_other_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    mock_client = Mock()
    mock_client.get_object.side_effect = _client_error("AccessDenied", "GetObject")
    monkeypatch.setattr(storage.boto3, "client", lambda *_args, **_kwargs: mock_client)
    backend = S3FileStorage(bucket="accounting-files")

    with pytest.raises(ClientError):
        backend.open_read(StoredFileReference(S3_PROVIDER, "uploads", "x.pdf"))


def test_s3_without_bucket_fails_on_use() -> None:
    backend = S3FileStorage(bucket=None)

    with pytest.raises(StorageConfigurationError):
        backend.save("uploads", "x.pdf", b"1", "application/pdf")


def test_build_input_path_layout() -> None:
    path = build_input_path("client-1", 2024, 3, "Mayor Marzo.XLSX", unique="abc")

    assert path == "client-1/2024/03/abc_Mayor Marzo.xlsx"


def test_build_input_path_is_unique_per_call() -> None:
    first = build_input_path("c", 2024, 3, "a.pdf")
    second = build_input_path("c", 2024, 3, "a.pdf")

    assert first != second
    assert first.startswith("c/2024/03/")
    assert first.endswith("_a.pdf")


@pytest.mark.parametrize(
    ("index", "expected"),
    [
        (0, "client-1/2024/03/job-9.csv"),
        (1, "client-1/2024/03/job-9_1.csv"),
        (2, "client-1/2024/03/job-9_2.csv"),
    ],
)
def test_build_output_path_layout(index: int, expected: str) -> None:
    assert build_output_path("client-1", 2024, 3, "job-9", ".CSV", index=index) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("reporte.PDF", "reporte.pdf"),
        ('a<b>c:d"e|f?g*h.xlsx', "a_b_c_d_e_f_g_h.xlsx"),
        ("C:\\Users\\ana\\mayor.xls", "mayor.xls"),
        ("../../etc/passwd", "passwd"),
        ("   .pdf", "archivo.pdf"),
        ("", "archivo"),
    ],
)
def test_sanitize_filename(raw: str, expected: str) -> None:
    assert sanitize_filename(raw) == expected


@pytest.mark.parametrize("bad", ["", "/", "a/../b", "./a"])
def test_normalize_object_path_rejects_invalid(bad: str) -> None:
    with pytest.raises(ValueError):
        normalize_object_path(bad)


def test_normalize_object_path_collapses_separators() -> None:
    assert normalize_object_path("//a\\b//c.csv") == "a/b/c.csv"
