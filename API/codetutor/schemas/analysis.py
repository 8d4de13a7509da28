from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from codetutor.data.languages import SupportedLanguage


class Difficulty(str, Enum):
    EASY = "easy"
    INTERMEDIATE = "intermediate"
    HARD = "hard"


class InputKind(str, Enum):
    CODE = "code"
    CONCEPT = "concept"


class RequestKind(str, Enum):
    EXPLANATION = "explanation"
    EXAMPLE = "example"
    PRACTICE = "practice"
    SOLUTION_CHECK = "solution_check"
    FOLLOW_UP = "follow_up"
    MORE_INSTRUCTIONS = "more_instructions"
    ELABORATION = "elaboration"


class AssessmentStatus(str, Enum):
    CORRECT = "correct"
    PARTIALLY_CORRECT = "partially_correct"
    INCORRECT = "incorrect"
    SYNTAX_ERROR = "syntax_error"
    UNRELATED = "unrelated"


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


RequiredText = Annotated[StrictStr, AfterValidator(_non_blank)]


class CamelModel(BaseModel):
    """Model whose wire form uses the camelCase keys the model is prompted to emit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExamplePayload(CamelModel):
    example_code: RequiredText
    example_code_output: RequiredText


class PracticePayload(CamelModel):
    practice_question: RequiredText
    instructions: RequiredText


class InstructionsPayload(CamelModel):
    instructions: list[StrictStr]
    level_number: StrictInt
    has_more_levels: StrictBool


class UserSolutionAnalysis(CamelModel):
    predicted_output: StrictStr
    feedback: StrictStr
    is_correct: bool | None = None
    assessment_status: AssessmentStatus | None = None

    # Advisory fields: a malformed value is dropped instead of failing the parse.
    @field_validator("is_correct", mode="before")
    @classmethod
    def _advisory_bool(cls, value):
        return value if isinstance(value, bool) else None

    @field_validator("assessment_status", mode="before")
    @classmethod
    def _advisory_status(cls, value):
        try:
            return AssessmentStatus(value)
        except (TypeError, ValueError):
            return None


class AnalysisResult(CamelModel):
    topic_explanation: RequiredText
    example_code: RequiredText
    example_code_output: RequiredText
    practice_question: RequiredText
    instructions: RequiredText
    example_difficulty: Difficulty | None = None
    language: SupportedLanguage | None = None
    input_kind: InputKind | None = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class AnalysisRequest(BaseModel):
    """One model call, fully described. Built per call and never mutated."""

    model_config = ConfigDict(frozen=True)

    source_text: str
    language: SupportedLanguage
    request_kind: RequestKind
    difficulty: Difficulty | None = None
    input_kind: InputKind = InputKind.CODE
    explanation: str = ""
    practice_question: str = ""
    instructions: str = ""
    user_code: str = ""
    question: str = ""
    chat_history: tuple[ChatMessage, ...] = ()
    displayed_instructions: tuple[str, ...] = ()
    instruction_level: int = 1
    elaboration_level: int = 1


# ── HTTP adapter bodies ──────────────────────────────────────────────────────


class SubmitRequest(CamelModel):
    source_text: str = Field(..., description="Code to analyze, or the concept name for concept input")
    language: SupportedLanguage
    input_kind: InputKind = InputKind.CODE
    difficulty: Difficulty | None = None


class DifficultyRequest(CamelModel):
    level: Difficulty


class CheckSolutionRequest(CamelModel):
    user_code: str


class FollowUpRequest(CamelModel):
    question: str


class SubmitResponse(CamelModel):
    session_id: int
    result: AnalysisResult


class TextResponse(CamelModel):
    session_id: int
    text: str


class SessionSnapshot(CamelModel):
    session_id: int
    state: str
    language: SupportedLanguage | None = None
    input_kind: InputKind | None = None
    selected_difficulty: Difficulty | None = None
    selected_practice_difficulty: Difficulty | None = None
    cached_difficulties: list[Difficulty] = Field(default_factory=list)
    result: AnalysisResult | None = None
    example: ExamplePayload | None = None
    practice: PracticePayload | None = None
    instruction_levels: list[str] = Field(default_factory=list)
    has_more_instructions: bool = False
    elaboration_level: int = 0
    chat_history: list[ChatMessage] = Field(default_factory=list)
