"""
Shared pytest fixtures.

Uses a SQLite file database so tests exercise the same ON CONFLICT upserts
as production. Every test starts from empty tables plus the default
targets.
"""
import os
import tempfile

# Settings are read at import time; point them at test resources first.
os.environ["DATABASE_URL"] = "sqlite:///./test_kpiboard.db"
os.environ["AUTO_MIGRATE"] = "false"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["ADMIN_PASSWORD"] = "test-secret"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="kpiboard-uploads-")

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from kpiboard.db.base import Base, get_db
from kpiboard.db.init import seed_default_targets
from kpiboard.main import app
from kpiboard.services.llm import get_text_client

SQLITE_URL = "sqlite:///./test_kpiboard.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def reset_tables(create_tables):
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())
    db = TestingSessionLocal()
    try:
        seed_default_targets(db)
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeTextClient:
    """Stands in for the text-generation API: returns canned replies in order."""

    def __init__(self, *replies, error=None):
        self.replies = list(replies)
        self.error = error
        self.prompts = []

    def complete(self, prompt, max_tokens=1000):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.replies.pop(0)


@pytest.fixture()
def fake_text():
    return FakeTextClient


@pytest.fixture()
def text_client():
    """Holder whose `.current` is handed to the app as the text client."""
    class Holder:
        current = None
    return Holder


@pytest.fixture()
def client(db, text_client):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_text_client] = lambda: text_client.current
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_workbook(tmp_path):
    """
    Build an .xlsx in tmp_path.

    sheets: {sheet name: [header row, data row, ...]}
    """
    def _make(filename, sheets):
        wb = Workbook()
        wb.remove(wb.active)
        for name, rows in sheets.items():
            ws = wb.create_sheet(title=name)
            for row in rows:
                ws.append(list(row))
        path = tmp_path / filename
        wb.save(path)
        return path
    return _make
