from __future__ import annotations

import asyncio
import json
import os
import sys
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
API_DIR = ROOT / "API"
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

# Test-mode runtime guards:
# - no model key, so nothing can reach the real endpoint
# - no rate limiting between test requests
# - preferences written to a throwaway directory
os.environ.setdefault("APP_ENV", "test")
os.environ["GEMINI_API_KEY"] = ""
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("RUNTIME_DATA_DIR", tempfile.mkdtemp(prefix="codetutor-test-"))

from codetutor.agents.tutor import TutorAgent  # noqa: E402
from codetutor.core.llm_provider import BaseLLMProvider  # noqa: E402
from codetutor.main import app  # noqa: E402
from codetutor.memory.preferences import InMemoryPreferencesAdapter, PreferencesStore  # noqa: E402
from codetutor.orchestrator.engine import TutorOrchestrator  # noqa: E402

EXAMPLE_JSON = json.dumps({"exampleCode": "print(1 + 1)", "exampleCodeOutput": "2"})
PRACTICE_JSON = json.dumps(
    {
        "practiceQuestion": "Write a function that adds two numbers.",
        "instructions": "Define a function.\nAccept two parameters.\nReturn their sum.",
    }
)
SOLUTION_JSON = json.dumps(
    {
        "predictedOutput": "3",
        "feedback": "Nice work, every step is implemented.",
        "isCorrect": True,
        "assessmentStatus": "correct",
    }
)
MORE_INSTRUCTIONS_JSON = json.dumps(
    {"instructions": ["Name the function add.", "Use the + operator."], "levelNumber": 2, "hasMoreLevels": False}
)


def classify_prompt(prompt: str) -> str:
    if "User's Follow-up Question" in prompt:
        return "follow_up"
    if "ORIGINAL EXPLANATION" in prompt:
        return "elaboration"
    if '"levelNumber"' in prompt:
        return "more_instructions"
    if '"predictedOutput"' in prompt:
        return "solution_check"
    if 'keys: "exampleCode"' in prompt:
        return "example"
    if 'keys: "practiceQuestion"' in prompt:
        return "practice"
    return "explanation"


class FakeProvider(BaseLLMProvider):
    """Scripted stand-in for the model endpoint.

    ``responses`` maps a request kind to a string, an exception instance, or a
    list consumed one item per call. ``gates`` maps a kind to an ``asyncio.Event``
    the call waits on before answering.
    """

    provider_name = "fake"
    model_name = "fake-model"

    def __init__(self, responses: dict | None = None, configured: bool = True):
        self.responses = {
            "explanation": "Loops repeat a block of code while a condition holds.",
            "example": EXAMPLE_JSON,
            "practice": PRACTICE_JSON,
            "solution_check": SOLUTION_JSON,
            "follow_up": "A for loop iterates over a sequence.",
            "more_instructions": MORE_INSTRUCTIONS_JSON,
            "elaboration": "Each iteration re-evaluates the condition before running the body.",
        }
        self.responses.update(responses or {})
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[dict] = []
        self.cancelled: list[str] = []
        self._configured = configured

    @property
    def is_configured(self) -> bool:
        return self._configured

    def kinds(self) -> list[str]:
        return [call["kind"] for call in self.calls]

    async def generate(self, prompt: str, *, temperature: float, response_json: bool = False) -> tuple[str, dict]:
        kind = classify_prompt(prompt)
        self.calls.append(
            {"kind": kind, "prompt": prompt, "temperature": temperature, "response_json": response_json}
        )
        gate = self.gates.get(kind)
        if gate is not None:
            try:
                await gate.wait()
            except asyncio.CancelledError:
                self.cancelled.append(kind)
                raise
        scripted = self.responses[kind]
        if isinstance(scripted, list):
            scripted = scripted.pop(0)
        if isinstance(scripted, BaseException):
            raise scripted
        return scripted, {"provider": self.provider_name, "model": self.model_name}


@pytest.fixture(scope="session")
def client() -> TestClient:
    with TestClient(app) as tc:
        yield tc


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def preferences() -> PreferencesStore:
    return PreferencesStore(InMemoryPreferencesAdapter())


@pytest.fixture
def orchestrator(fake_provider, preferences) -> TutorOrchestrator:
    return TutorOrchestrator(TutorAgent(fake_provider), preferences)
