# tests/test_health.py
from fastapi import status

from orderflow.core.settings import settings


def test_health_reports_version(client):
    """The health endpoint answers without a session."""
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    body = r.json()
    assert body["status"] == "healthy"
    assert body["version"] == settings.app_version
    assert body["timestamp"]


def test_root_sends_anonymous_callers_to_login(client):
    r = client.get("/", follow_redirects=False)
    assert r.status_code == status.HTTP_302_FOUND
    assert r.headers["location"] == "/login"


def test_root_sends_signed_in_callers_to_dashboard(client, test_user, user_password):
    client.post("/login", json={"username": "admin", "password": user_password})
    r = client.get("/", follow_redirects=False)
    assert r.headers["location"] == "/dashboard"
