from fastapi.testclient import TestClient

from app.main import app


def test_health():
    with TestClient(app) as c:
        r = c.get("/health")
        assert r.status_code == 200
        assert r.json() == {"status": "ok"}
        assert r.headers["X-Request-ID"]


def test_request_id_echoed():
    with TestClient(app) as c:
        r = c.get("/health", headers={"X-Request-ID": "req-42"})
        assert r.headers["X-Request-ID"] == "req-42"
