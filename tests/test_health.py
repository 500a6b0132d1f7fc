import pytest

pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from oralmarks import db
from oralmarks.main import app
from oralmarks.pipeline.providers import resolve_providers
from oralmarks.settings import settings


@pytest.fixture(autouse=True)
def _isolated_data_dir(engine, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "data_dir", str(tmp_path / "data"))
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.setattr(settings, "google_api_key", None)
    monkeypatch.setattr(settings, "gemini_enabled", False)


@pytest.mark.parametrize(
    ("api_key", "expected_openai_configured"),
    [("test-key", True), ("   ", False)],
)
def test_health_returns_openai_configuration_status(monkeypatch, api_key: str, expected_openai_configured: bool) -> None:
    monkeypatch.setattr(settings, "openai_api_key", api_key)

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200

    payload = response.json()
    assert payload["ok"] is True
    assert payload["openai_configured"] is expected_openai_configured
    assert payload["gemini_configured"] is False


def test_health_reports_gemini_only_when_enabled(monkeypatch) -> None:
    monkeypatch.setattr(settings, "google_api_key", "google-test")
    monkeypatch.setattr(settings, "gemini_enabled", False)

    with TestClient(app) as client:
        disabled = client.get("/health").json()
        monkeypatch.setattr(settings, "gemini_enabled", True)
        enabled = client.get("/health").json()

    assert disabled["gemini_configured"] is False
    assert enabled["gemini_configured"] is True


@pytest.mark.parametrize(
    ("gemini_enabled", "google_api_key", "expected"),
    [(True, "google-test", True), (True, "  ", False), (False, "google-test", False)],
)
def test_health_matches_the_providers_used_for_scoring(
    monkeypatch, gemini_enabled: bool, google_api_key: str, expected: bool
) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    monkeypatch.setattr(settings, "gemini_enabled", gemini_enabled)
    monkeypatch.setattr(settings, "google_api_key", google_api_key)
    monkeypatch.setattr(settings, "review_enabled", True)

    with TestClient(app) as client:
        payload = client.get("/health").json()

    providers = resolve_providers(settings)
    assert payload["openai_configured"] is True
    assert payload["gemini_configured"] is expected
    assert (providers.reviewer is not None) is expected


def test_health_ignores_provider_env_changed_after_startup(monkeypatch) -> None:
    monkeypatch.setattr(settings, "gemini_enabled", False)
    monkeypatch.setattr(settings, "google_api_key", None)
    monkeypatch.setenv("ENABLE_GEMINI", "1")
    monkeypatch.setenv("GEMINI_API_KEY", "google-test")

    with TestClient(app) as client:
        payload = client.get("/health").json()

    assert payload["gemini_configured"] is False
    assert payload["gemini_configured"] is settings.gemini_configured


def test_health_deep_returns_storage_and_db_diagnostics(monkeypatch) -> None:
    monkeypatch.setattr(settings, "openai_api_key", "test-key")

    with TestClient(app) as client:
        response = client.get("/health/deep")

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["openai_configured"] is True
    assert payload["storage_writable"] is True
    assert payload["db_ok"] is True
    assert payload["data_dir"] == str(settings.data_path)


def test_health_is_public_when_api_key_is_configured(monkeypatch) -> None:
    monkeypatch.setenv("BACKEND_API_KEY", "test-api-key")

    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200


def test_cors_headers_present() -> None:
    with TestClient(app) as client:
        response = client.get("/health", headers={"Origin": "https://example.com"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_preflight_bypasses_api_key(monkeypatch) -> None:
    monkeypatch.setenv("BACKEND_API_KEY", "test-api-key")

    with TestClient(app) as client:
        response = client.options(
            "/submissions/1/score",
            headers={"Origin": "https://example.com", "Access-Control-Request-Method": "POST"},
        )

    assert response.status_code in (200, 204)
    assert "access-control-allow-origin" in response.headers
