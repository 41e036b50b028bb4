import pytest
from fastapi.testclient import TestClient

from jobportal import main
from jobportal.api.deps import get_post_service
from jobportal.main import app


def broken_service():
    raise RuntimeError("connection string mongodb://admin:hunter2@db")


@pytest.fixture
def failing_client(client):
    app.dependency_overrides[get_post_service] = broken_service
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.parametrize("debug, environment, shows_detail", [
    (False, "development", False),
    (True, "development", True),
    (True, "production", False),
])
def test_internal_error_detail(failing_client, settings, monkeypatch, debug, environment, shows_detail):
    monkeypatch.setattr(main, "settings", settings.model_copy(update={"debug": debug, "environment": environment}))

    res = failing_client.get("/api/posts")
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Internal"
    assert ("detail" in body) is shows_detail
    if not shows_detail:
        assert "hunter2" not in res.text


def test_default_settings_hide_detail(settings):
    assert settings.debug is False
    assert settings.expose_error_detail is False
