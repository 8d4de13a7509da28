import time

from pydantic import BaseModel

from codetutor.agents.base import BaseAgent
from codetutor.agents.prompts import build_prompt
from codetutor.core.app_metrics import record_llm_call
from codetutor.core.errors import MalformedResponse, TutorError
from codetutor.core.json_parser import parse_llm_json
from codetutor.core.llm_provider import BaseLLMProvider, get_llm_provider
from codetutor.core.logging import DOMAIN_TRANSPORT, get_domain_logger, log_event
from codetutor.schemas.analysis import (
    AnalysisRequest,
    ExamplePayload,
    InstructionsPayload,
    PracticePayload,
    RequestKind,
    UserSolutionAnalysis,
)

logger = get_domain_logger(__name__, DOMAIN_TRANSPORT)

# Kinds absent from this map are answered in plain text.
RESPONSE_SCHEMAS: dict[RequestKind, type[BaseModel]] = {
    RequestKind.EXAMPLE: ExamplePayload,
    RequestKind.PRACTICE: PracticePayload,
    RequestKind.SOLUTION_CHECK: UserSolutionAnalysis,
    RequestKind.MORE_INSTRUCTIONS: InstructionsPayload,
}


class TutorAgent(BaseAgent):
    """Issues exactly one model call per request and returns a typed result."""

    def __init__(self, provider: BaseLLMProvider | None = None):
        self.provider = provider or get_llm_provider()

    @property
    def is_configured(self) -> bool:
        return self.provider.is_configured

    async def run(self, request: AnalysisRequest):
        kind = request.request_kind
        prompt = build_prompt(request)
        started = time.perf_counter()
        try:
            raw_text, usage = await self.provider.generate(
                prompt.text,
                temperature=prompt.temperature,
                response_json=prompt.response_json,
            )
            result = self._decode(kind, raw_text)
        except TutorError:
            record_llm_call(kind.value, ok=False, duration_sec=time.perf_counter() - started)
            raise
        elapsed = time.perf_counter() - started
        record_llm_call(kind.value, ok=True, duration_sec=elapsed)
        log_event(logger, "llm_usage", request_kind=kind.value, latency_ms=round(elapsed * 1000, 1), **usage)
        return result

    @staticmethod
    def _decode(kind: RequestKind, raw_text: str):
        schema = RESPONSE_SCHEMAS.get(kind)
        if schema is None:
            text = (raw_text or "").strip()
            if not text:
                raise MalformedResponse(f"AI returned an empty {kind.value} response.", request_kind=kind.value)
            return text
        try:
            return parse_llm_json(raw_text, schema)
        except MalformedResponse as exc:
            raise exc.for_kind(kind.value) from exc

    async def _run_as(self, kind: RequestKind, request: AnalysisRequest):
        if request.request_kind != kind:
            request = request.model_copy(update={"request_kind": kind})
        return await self.run(request)

    async def explain(self, request: AnalysisRequest) -> str:
        return await self._run_as(RequestKind.EXPLANATION, request)

    async def example(self, request: AnalysisRequest) -> ExamplePayload:
        return await self._run_as(RequestKind.EXAMPLE, request)

    async def practice(self, request: AnalysisRequest) -> PracticePayload:
        return await self._run_as(RequestKind.PRACTICE, request)

    async def check_solution(self, request: AnalysisRequest) -> UserSolutionAnalysis:
        return await self._run_as(RequestKind.SOLUTION_CHECK, request)

    async def follow_up(self, request: AnalysisRequest) -> str:
        return await self._run_as(RequestKind.FOLLOW_UP, request)

    async def more_instructions(self, request: AnalysisRequest) -> InstructionsPayload:
        return await self._run_as(RequestKind.MORE_INSTRUCTIONS, request)

    async def elaborate(self, request: AnalysisRequest) -> str:
        return await self._run_as(RequestKind.ELABORATION, request)
