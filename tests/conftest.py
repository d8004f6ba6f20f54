# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PYTEST_RUNNING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PRESENCE_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("VOTE_SERVER_SECRET", "test-vote-secret")

from assembly_stage.api.v1.dependencies import get_presence_store_dep
from assembly_stage.core.security import create_voter_token
from assembly_stage.core.settings import Settings
from assembly_stage.db.session import Base, build_engine, create_tables, drop_tables
from assembly_stage.db.session import get_db as app_get_session
from assembly_stage.main import app as fastapi_app
from assembly_stage.models import Assembly
from assembly_stage.schemas.assembly import RosterEntry
from assembly_stage.services.heartbeat import HeartbeatTracker
from assembly_stage.services.presence import InMemoryPresenceStore
from assembly_stage.services.quorum import QuorumCalculator
from assembly_stage.services.session_gate import AssemblySessionGate
from assembly_stage.services.vote_integrity import VoteIntegrityEngine

TEST_DB_URL = "sqlite://"
ADMIN_SECRET = os.environ["ADMIN_SECRET"]

_TEST_SETTINGS_INSTANCE = Settings()


class FakeClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = build_engine(TEST_DB_URL, poolclass=StaticPool)
    create_tables(engine)
    try:
        yield engine
    finally:
        drop_tables(engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so each test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def presence_store(clock: FakeClock) -> InMemoryPresenceStore:
    return InMemoryPresenceStore(clock=clock)


@pytest.fixture()
def gate(presence_store: InMemoryPresenceStore) -> AssemblySessionGate:
    return AssemblySessionGate(presence_store)


@pytest.fixture()
def tracker(presence_store: InMemoryPresenceStore, gate: AssemblySessionGate) -> HeartbeatTracker:
    return HeartbeatTracker(presence_store, gate, ttl_seconds=60, interval_seconds=30)


@pytest.fixture()
def calculator(tracker: HeartbeatTracker) -> QuorumCalculator:
    return QuorumCalculator(tracker)


@pytest.fixture()
def integrity_engine() -> VoteIntegrityEngine:
    return VoteIntegrityEngine(server_secret="test-vote-secret")


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    presence_store: InMemoryPresenceStore,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_presence_store_dep] = lambda: presence_store
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_presence_store_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Secret": ADMIN_SECRET}


@pytest.fixture()
def voter_headers() -> Callable[[str, str], dict[str, str]]:
    """Return a factory of authorization headers for one roster unit."""

    def _headers(assembly_id: str, unit_id: str) -> dict[str, str]:
        token, _ = create_voter_token(assembly_id, unit_id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def build_roster(coefficients: dict[str, float]) -> list[RosterEntry]:
    return [
        RosterEntry(unit_id=unit_id, owner_name=f"Owner {unit_id}", coefficient=coefficient)
        for unit_id, coefficient in coefficients.items()
    ]


@pytest.fixture()
def assembly(db_session: Session) -> Iterator[Assembly]:
    """Create a persisted assembly with no roster."""
    record = Assembly(name="Annual owners' meeting", required_quorum=50.0)
    db_session.add(record)
    db_session.commit()
    yield record


@pytest.fixture()
def ten_unit_roster() -> list[RosterEntry]:
    """Ten units of 10 coefficient points each."""
    return build_roster({f"U{index}": 10.0 for index in range(1, 11)})


@pytest.fixture()
def ten_unit_payload(ten_unit_roster: list[RosterEntry]) -> dict[str, Any]:
    """JSON body importing the ten-unit roster."""
    return {"units": [entry.model_dump() for entry in ten_unit_roster]}
