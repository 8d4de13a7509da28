from __future__ import annotations

import pytest

from codetutor.agents.tutor import TutorAgent
from codetutor.api.analysis import get_orchestrator
from codetutor.api.preferences import get_preferences_store
from codetutor.core.rate_limit import api_rate_limiter
from codetutor.main import app
from codetutor.memory.preferences import InMemoryPreferencesAdapter, PreferencesStore
from codetutor.orchestrator.engine import TutorOrchestrator

from conftest import FakeProvider


@pytest.fixture
def api_orchestrator():
    orchestrator = TutorOrchestrator(TutorAgent(FakeProvider()))
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield orchestrator
    app.dependency_overrides.pop(get_orchestrator, None)


@pytest.fixture
def api_preferences():
    store = PreferencesStore(InMemoryPreferencesAdapter())
    app.dependency_overrides[get_preferences_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_preferences_store, None)


def test_health_reports_missing_key(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["model_configured"] is False
    assert body["setup_error"]
    assert response.headers.get("x-request-id")


def test_languages_list_and_detect(client):
    languages = client.get("/languages").json()
    values = [item["value"] for item in languages["languages"]]
    assert "python" in values and "unknown" not in values
    assert ".py" in languages["accepted_extensions"]

    detected = client.post("/languages/detect", json={"filename": "main.RS"}).json()
    assert detected == {"language": "rust", "label": "Rust", "supported": True}
    unknown = client.post("/languages/detect", json={"filename": "notes.txt"}).json()
    assert unknown["supported"] is False


def test_submit_then_follow_on_operations(client, api_orchestrator):
    submit = client.post(
        "/analysis/submit",
        json={"sourceText": "for i in range(3):\n    print(i)", "language": "python"},
    )
    assert submit.status_code == 200
    body = submit.json()
    assert body["sessionId"] == 1
    assert body["result"]["exampleCode"] == "print(1 + 1)"
    assert body["result"]["topicExplanation"]

    hard = client.post("/analysis/difficulty", json={"level": "hard"})
    assert hard.status_code == 200
    assert hard.json()["exampleCodeOutput"] == "2"

    check = client.post("/analysis/check-solution", json={"userCode": "def add(a, b): return a + b"})
    assert check.status_code == 200
    assert check.json()["isCorrect"] is True

    follow = client.post("/analysis/follow-up", json={"question": "Why range?"})
    assert follow.json()["text"] == "A for loop iterates over a sequence."

    more = client.post("/analysis/more-instructions")
    assert more.json()["levelNumber"] == 2

    elaborate = client.post("/analysis/elaborate")
    assert elaborate.status_code == 200

    snapshot = client.get("/analysis").json()
    assert snapshot["state"] == "ready"
    assert snapshot["cachedDifficulties"] == ["easy", "hard"]
    assert snapshot["elaborationLevel"] == 1
    assert len(snapshot["chatHistory"]) == 2


def test_upload_detects_language_from_extension(client, api_orchestrator):
    response = client.post(
        "/analysis/upload",
        files={"file": ("loop.js", b"for (let i = 0; i < 3; i++) console.log(i);", "text/javascript")},
    )
    assert response.status_code == 200
    assert response.json()["result"]["language"] == "javascript"


def test_upload_with_unknown_extension_is_rejected(client, api_orchestrator):
    response = client.post("/analysis/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "invalid_language"
    assert api_orchestrator.agent.provider.calls == []


def test_operations_without_session_use_error_envelope(client, api_orchestrator):
    response = client.post("/analysis/difficulty", json={"level": "hard"})
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "no_active_session"
    assert body["error"]["request_id"]


def test_unknown_language_submission_is_rejected(client, api_orchestrator):
    response = client.post("/analysis/submit", json={"sourceText": "x", "language": "unknown"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "invalid_language"


def test_real_provider_without_key_returns_503(client):
    response = client.post("/analysis/submit", json={"sourceText": "x = 1", "language": "python"})
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "client_not_initialized"


def test_validation_errors_use_envelope(client, api_orchestrator):
    response = client.post("/analysis/difficulty", json={"level": "impossible"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_rate_limit_rejects_excess_ai_requests(client, api_orchestrator, monkeypatch):
    from codetutor.core.settings import settings

    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setattr(api_rate_limiter, "max_requests", 2)
    api_rate_limiter.reset()
    try:
        codes = [client.post("/analysis/elaborate").status_code for _ in range(3)]
    finally:
        api_rate_limiter.reset()
    assert codes[:2] == [409, 409]
    assert codes[2] == 429


def test_preferences_endpoints(client, api_preferences):
    assert client.get("/preferences").json()["preferredInitialDifficulty"] == "easy"

    updated = client.put("/preferences", json={"preferredInitialDifficulty": "hard"})
    assert updated.json()["preferredInitialDifficulty"] == "hard"

    toggled = client.post("/preferences/toggle", json={"key": "topicExplanation"})
    assert toggled.json()["visibleSections"]["topicExplanation"]["masterToggle"] is False

    bad = client.post("/preferences/toggle", json={"key": "nope"})
    assert bad.status_code == 422
    assert bad.json()["error"]["code"] == "invalid_input"


def test_metrics_endpoint_shape(client):
    body = client.get("/metrics/app").json()
    for key in ("request_count", "error_rate", "llm_calls", "cache", "rate_limit"):
        assert key in body
