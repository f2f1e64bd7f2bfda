import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["REDIS_URL"] = ""
os.environ["COMPLIANCE_SEED"] = "42"

import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from callboard.core import database
from callboard.core.database import Base
from callboard.main import app
from callboard.models import CallRecord
from callboard.schemas import CallRecordOut, ensure_utc
from callboard.services.store import utcnow

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class InMemoryCallStore:
    def __init__(self, fail_inserts: bool = False):
        self.records: list[CallRecordOut] = []
        self.fail_inserts = fail_inserts

    def insert(self, record: dict):
        if self.fail_inserts:
            return None
        stored = CallRecordOut(id=str(uuid.uuid4()), created_at=utcnow(), **record)
        self.records.append(stored)
        return stored

    def query_by_time_range(self, start: datetime, end: datetime):
        start, end = ensure_utc(start), ensure_utc(end)
        matches = [record for record in self.records if start <= record.start_time <= end]
        return sorted(matches, key=lambda record: record.start_time, reverse=True)

    def list_recent(self, offset: int, limit: int):
        ordered = sorted(self.records, key=lambda record: record.start_time, reverse=True)
        return ordered[offset : offset + limit]


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_calls():
    yield
    db = TestingSessionLocal()
    try:
        db.query(CallRecord).delete()
        db.commit()
    finally:
        db.close()


@pytest.fixture()
def memory_store():
    return InMemoryCallStore()


@pytest.fixture()
def failing_store():
    return InMemoryCallStore(fail_inserts=True)


@pytest.fixture()
def client():
    app.dependency_overrides[database.get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
