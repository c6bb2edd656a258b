import logging

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

import agentlyne.main as main_module
from agentlyne.main import app


class FakeEngine:
    def __init__(self):
        self.disposed = False

    def dispose(self):
        self.disposed = True


def patch_startup(monkeypatch, ensure_schema=None, ready=True):
    engine = FakeEngine()
    schema_calls = []

    def fake_ensure_schema(bind):
        schema_calls.append(bind)
        if ensure_schema is not None:
            ensure_schema(bind)
        return []

    async def fake_verify():
        return (True, None) if ready else (False, "SMTP_HOST not configured")

    monkeypatch.setattr(main_module, "engine", engine)
    monkeypatch.setattr(main_module, "ensure_schema", fake_ensure_schema)
    monkeypatch.setattr(main_module.mailer, "verify", fake_verify)
    return engine, schema_calls


def test_startup_and_shutdown(monkeypatch, caplog):
    engine, schema_calls = patch_startup(monkeypatch)
    caplog.set_level(logging.INFO, logger="agentlyne.main")

    with TestClient(app) as test_client:
        sweeper = app.state.dedup_sweeper
        assert not sweeper.done()
        assert test_client.get("/api/health").json() == {"ok": True}

    assert schema_calls == [engine]
    assert "SMTP ready" in caplog.text
    assert sweeper.cancelled()
    assert engine.disposed


def test_startup_survives_schema_failure(monkeypatch, caplog):
    def broken(bind):
        raise SQLAlchemyError("connection refused")

    engine, _ = patch_startup(monkeypatch, ensure_schema=broken, ready=False)

    with TestClient(app) as test_client:
        assert test_client.get("/api/health").status_code == 200

    assert "book db ensure failed" in caplog.text
    assert "SMTP not ready: SMTP_HOST not configured" in caplog.text
    assert engine.disposed
