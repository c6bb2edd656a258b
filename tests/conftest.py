import os
import sys

import pytest

# --- settings must be in place before the app is imported ---
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("RETELL_API_KEY", None)

# --- path to backend ---
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
BACKEND_DIR = os.path.join(BASE_DIR, "backend")
sys.path.insert(0, BACKEND_DIR)

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from agentlyne.database import Base, create_db_engine, get_db
from agentlyne.deps import dedup_cache, mailer
from agentlyne.main import app
from agentlyne.services.storage import ensure_schema

# ------------------ engine ------------------
engine = create_db_engine("sqlite://")
TestingSessionLocal = sessionmaker(bind=engine)


class FakeFastMail:
    """Stands in for FastMail; records messages, fails on chosen subjects"""

    def __init__(self):
        self.outbox = []
        self.fail_prefixes = ()

    async def send_message(self, message, template_name=None):
        if any(message.subject.startswith(prefix) for prefix in self.fail_prefixes):
            raise ConnectionError("SMTP connection refused")
        self.outbox.append(message)

    def subjects(self):
        return [message.subject for message in self.outbox]


# ------------------ fixtures ------------------
@pytest.fixture
def db_engine():
    ensure_schema(engine)
    yield engine
    # clean tables after each test
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(db_engine):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_mail(monkeypatch):
    fake = FakeFastMail()
    monkeypatch.setattr(mailer, "fast_mail", fake)
    return fake


@pytest.fixture
def client(db_engine, fake_mail):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    dedup_cache.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    dedup_cache.clear()
