import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("LLM_ASSIST_ENABLED", "false")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    from qtiguard.core.settings import get_settings

    get_settings.cache_clear()

    from qtiguard.main import app

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    get_settings.cache_clear()
