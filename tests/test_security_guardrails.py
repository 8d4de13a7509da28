import logging

from codetutor.core.logging import SecretRedactionFilter, SuppressHealthCheckFilter, redact_secrets


def test_redact_secrets_masks_sensitive_values():
    raw = (
        "authorization=Bearer abc123 "
        "x-goog-api-key=AIzaSySecret "
        "api_key=my-api-key "
        "token=my-token password=my-password"
    )
    masked = redact_secrets(raw)
    assert "abc123" not in masked
    assert "AIzaSySecret" not in masked
    assert "my-api-key" not in masked
    assert "my-token" not in masked
    assert "my-password" not in masked
    assert masked.count("[REDACTED]") >= 5


def test_redact_secrets_masks_key_query_parameter():
    masked = redact_secrets("POST https://generativelanguage.googleapis.com/v1beta/models/m:generateContent?key=AIzaLeak&alt=json")
    assert "AIzaLeak" not in masked
    assert "alt=json" in masked


def test_redaction_filter_rewrites_formatted_record():
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "calling with %s", ("api_key=hunter2",), None)
    assert SecretRedactionFilter().filter(record) is True
    assert "hunter2" not in record.getMessage()


def test_health_does_not_leak_key(client):
    body = client.get("/health").json()
    assert "api_key" not in body
    assert body["model_configured"] is False
    assert body["status"] == "degraded"


def test_health_access_lines_are_suppressed():
    health = logging.LogRecord(
        "uvicorn.access", logging.INFO, __file__, 1, '%s - "%s %s HTTP/%s" %d',
        ("127.0.0.1:5000", "GET", "/health", "1.1", 200), None,
    )
    submit = logging.LogRecord(
        "uvicorn.access", logging.INFO, __file__, 1, '%s - "%s %s HTTP/%s" %d',
        ("127.0.0.1:5000", "POST", "/analysis/submit", "1.1", 200), None,
    )
    assert SuppressHealthCheckFilter().filter(health) is False
    assert SuppressHealthCheckFilter().filter(submit) is True
