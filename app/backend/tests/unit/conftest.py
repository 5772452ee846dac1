"""Shared fixtures for the pipeline unit tests."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_accounting.db")
os.environ.setdefault("STORAGE_PROVIDER", "Local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/accounting-pipeline-tests")

import pytest

from app.backend.src.core.storage import LOCAL_PROVIDER, LocalFileStorage, StorageGateway
from app.backend.src.db import build_engine, build_session_factory
from app.backend.src.models import Base, Client, ClientConfig, FilingPeriod, User
from app.backend.src.services import ingestion


class TickingClock:
    """Deterministic clock advancing by ``step`` on every call."""

    def __init__(
        self,
        start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self._current = start
        self._step = step

    def __call__(self) -> datetime:
        value = self._current
        self._current += self._step
        return value


@pytest.fixture()
def engine(tmp_path: Path):
    engine = build_engine(f"sqlite:///{tmp_path / 'pipeline.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def local_storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "files")


@pytest.fixture()
def storage(local_storage: LocalFileStorage) -> StorageGateway:
    return StorageGateway({LOCAL_PROVIDER: local_storage}, LOCAL_PROVIDER)


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def seeded(session_factory) -> SimpleNamespace:
    """One user owning client C with the 2024-03 filing period."""

    with session_factory() as session:
        user = User(email="contadora@example.com", full_name="Contadora Demo")
        session.add(user)
        session.flush()
        client = Client(owner_user_id=user.id, name="Cliente C", tax_id="20-12345678-9")
        session.add(client)
        session.flush()
        period = FilingPeriod(client_id=client.id, year=2024, month=3)
        session.add(period)
        session.commit()
        return SimpleNamespace(user_id=user.id, client_id=client.id, period_id=period.id)


@pytest.fixture()
def other_owner(session_factory) -> SimpleNamespace:
    """A second user with their own client and period."""

    with session_factory() as session:
        user = User(email="otro@example.com", full_name="Otro Usuario")
        session.add(user)
        session.flush()
        client = Client(owner_user_id=user.id, name="Cliente Ajeno", tax_id="27-1")
        session.add(client)
        session.flush()
        period = FilingPeriod(client_id=client.id, year=2024, month=3)
        session.add(period)
        session.commit()
        return SimpleNamespace(user_id=user.id, client_id=client.id, period_id=period.id)


@pytest.fixture()
def add_client_config(session_factory):
    def _add(client_id: str, **fields) -> str:
        with session_factory() as session:
            config = ClientConfig(client_id=client_id, **fields)
            session.add(config)
            session.commit()
            return config.id

    return _add


@pytest.fixture()
def ingest(session_factory, storage, seeded, clock):
    """Ingest a file for the seeded client period and return the result."""

    def _ingest(
        filename: str = "balance.xlsx",
        content: bytes = b"PK\x03\x04 fake workbook",
        source_kind: str = "Excel",
    ) -> ingestion.IngestionResult:
        with session_factory() as session:
            return ingestion.ingest_upload(
                session,
                storage,
                owner_user_id=seeded.user_id,
                client_id=seeded.client_id,
                filing_period_id=seeded.period_id,
                filename=filename,
                content=content,
                content_type="application/vnd.ms-excel",
                source_kind=source_kind,
                now=clock(),
            )

    return _ingest
