from fastapi.testclient import TestClient

from smartlist.core.database import drop_all_tables
from smartlist.main import app


def test_healthz_ok():
    client = TestClient(app)
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readyz_ok_with_tables():
    client = TestClient(app)
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_readyz_reports_missing_tables():
    drop_all_tables()
    client = TestClient(app)
    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert "users" in resp.json()["detail"]
