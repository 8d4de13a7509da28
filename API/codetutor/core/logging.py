from __future__ import annotations

import json
import logging
import re
import sys

# Domains tag every record so tutoring, practice, chat, preferences and transport logs can be filtered apart.
DOMAIN_ANALYSIS = "analysis"
DOMAIN_PRACTICE = "practice"
DOMAIN_CHAT = "chat"
DOMAIN_PREFERENCES = "preferences"
DOMAIN_TRANSPORT = "transport"


def get_domain_logger(name: str, domain: str) -> logging.LoggerAdapter[logging.Logger]:
    """Return a logger that stamps ``domain`` on every record it emits."""
    return logging.LoggerAdapter(logging.getLogger(name), {"domain": domain})


def log_event(logger: logging.LoggerAdapter, event_type: str, **fields) -> None:
    """Emit one machine-readable JSON line, e.g. ``llm_usage`` or ``state_transition``."""
    logger.info(json.dumps({"type": event_type, **fields}, default=str))


class DomainDefaultFilter(logging.Filter):
    """Records from third-party loggers carry no domain; give them ``app`` so the format string holds."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "domain"):
            record.domain = "app"  # type: ignore[attr-defined]
        return True


_SECRET_PATTERNS = [
    re.compile(r"(?i)(x-goog-api-key\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)([?&]key=)([^\s&,;]+)"),
    re.compile(r"(?i)(api[_-]?key\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(authorization\s*[=:]\s*bearer\s+)([^\s,;]+)"),
    re.compile(r"(?i)(token\s*[=:]\s*)([^\s,;]+)"),
    re.compile(r"(?i)(password\s*[=:]\s*)([^\s,;]+)"),
]


def redact_secrets(message: str) -> str:
    text = str(message or "")
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Mask model credentials in the rendered message and in any attached traceback text."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_secrets(record.getMessage())
        record.args = ()
        if record.exc_text:
            record.exc_text = redact_secrets(record.exc_text)
        return True


class SuppressHealthCheckFilter(logging.Filter):
    """Drop successful ``/health`` lines from the uvicorn access log."""

    def filter(self, record: logging.LogRecord) -> bool:
        args = record.args
        # uvicorn access records carry (client, method, path, http_version, status).
        if isinstance(args, tuple) and len(args) == 5:
            return not (str(args[2]).startswith("/health") and args[4] == 200)
        msg = record.getMessage()
        return not ("/health" in msg and "200" in msg)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | [%(domain)s] | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(DomainDefaultFilter())
        handler.addFilter(SecretRedactionFilter())
    # Request URLs can carry the model key as a query parameter.
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").addFilter(SuppressHealthCheckFilter())
