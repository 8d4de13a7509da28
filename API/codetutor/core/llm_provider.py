from abc import ABC, abstractmethod
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from codetutor.core.errors import (
    ClientNotInitialized,
    InvalidApiKey,
    MalformedResponse,
    QuotaExceeded,
    TransportFailure,
)
from codetutor.core.logging import DOMAIN_TRANSPORT, get_domain_logger
from codetutor.core.settings import settings

logger = get_domain_logger(__name__, DOMAIN_TRANSPORT)

_INVALID_KEY_MARKERS = ("API key not valid", "API_KEY_INVALID")


def _estimate_tokens(text: str) -> int:
    # Lightweight deterministic estimate used for observability without provider-specific token APIs.
    return max(1, len((text or "").strip()) // 4)


def translate_transport_error(error_text: str) -> TransportFailure:
    """Map raw transport error text onto the most specific failure the user can act on."""
    text = str(error_text or "")
    if any(marker in text for marker in _INVALID_KEY_MARKERS):
        return InvalidApiKey("Invalid API Key. Check configuration.")
    if "quota" in text.lower():
        return QuotaExceeded("API quota exceeded. Try again later.")
    return TransportFailure("Failed to reach the AI model. Check network/API key, then try again.")


class BaseLLMProvider(ABC):
    provider_name: str
    model_name: str

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def generate(self, prompt: str, *, temperature: float, response_json: bool = False) -> tuple[str, dict]:
        raise NotImplementedError


class GeminiLLMProvider(BaseLLMProvider):
    """One ``generateContent`` call per ``generate``; no retries."""

    provider_name = "gemini"

    def __init__(
        self,
        model_name: str | None = None,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout_seconds: float | None = None,
        max_output_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model_name = model_name or settings.llm_model
        self._api_key = settings.gemini_api_key if api_key is None else api_key
        self._api_url = self._sanitize_url((api_url if api_url is not None else settings.gemini_api_url).strip())
        self.timeout_seconds = float(timeout_seconds or settings.llm_timeout_seconds)
        self.max_output_tokens = int(max_output_tokens or settings.llm_max_output_tokens)
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def api_url(self) -> str:
        if self._api_url:
            return self._api_url
        return f"https://generativelanguage.googleapis.com/v1beta/models/{self.model_name}:generateContent"

    @staticmethod
    def _sanitize_url(raw_url: str) -> str:
        parsed = urlparse(raw_url)
        if not parsed.query:
            return raw_url
        filtered = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k.lower() != "key"]
        return urlunparse(parsed._replace(query=urlencode(filtered)))

    def _payload(self, prompt: str, temperature: float, response_json: bool) -> dict:
        generation_config = {"temperature": temperature, "maxOutputTokens": self.max_output_tokens}
        if response_json:
            generation_config["responseMimeType"] = "application/json"
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

    async def generate(self, prompt: str, *, temperature: float, response_json: bool = False) -> tuple[str, dict]:
        if not self.is_configured:
            raise ClientNotInitialized("Gemini AI client is not initialized. Ensure GEMINI_API_KEY is set.")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json=self._payload(prompt, temperature, response_json),
                    headers={"x-goog-api-key": self._api_key},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            logger.warning("Model call timed out after %ss: %s", self.timeout_seconds, exc)
            raise TransportFailure("The AI model did not respond in time. Please try again.") from exc
        except httpx.HTTPStatusError as exc:
            body = exc.response.text if exc.response is not None else ""
            logger.warning("Model call failed with status %s: %s", exc.response.status_code, body[:300])
            raise translate_transport_error(f"{exc} {body}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Model call failed: %s", exc)
            raise translate_transport_error(str(exc)) from exc
        except ValueError as exc:
            raise MalformedResponse("AI transport returned a non-JSON body.", excerpt=str(exc)[:200]) from exc

        candidates = data.get("candidates", []) if isinstance(data, dict) else []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason") if isinstance(data, dict) else None
            raise MalformedResponse(
                f"AI returned no candidates{f' (blocked: {reason})' if reason else ''}.",
                excerpt=str(data)[:200],
            )
        parts = candidates[0].get("content", {}).get("parts", [])
        text = "\n".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        usage = {
            "provider": self.provider_name,
            "model": self.model_name,
            "prompt_tokens_estimate": _estimate_tokens(prompt),
            "completion_tokens_estimate": _estimate_tokens(text),
            "total_tokens_estimate": _estimate_tokens(prompt) + _estimate_tokens(text),
        }
        return text, usage


_provider: BaseLLMProvider | None = None


def get_llm_provider() -> BaseLLMProvider:
    """Process-wide provider handle, built once from settings."""
    global _provider
    if _provider is None:
        _provider = GeminiLLMProvider()
        if not _provider.is_configured:
            logger.error("GEMINI_API_KEY is not set. AI functionality is disabled until it is configured.")
    return _provider
