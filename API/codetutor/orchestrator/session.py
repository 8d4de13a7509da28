from __future__ import annotations

from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from codetutor.core.cache_metrics import record_cache_get, record_cache_set
from codetutor.data.languages import SupportedLanguage
from codetutor.orchestrator.states import READY_SUBSTATES, SessionState, can_transition
from codetutor.schemas.analysis import (
    AnalysisResult,
    ChatMessage,
    Difficulty,
    ExamplePayload,
    InputKind,
    PracticePayload,
)

P = TypeVar("P")


class DifficultyCache(Generic[P]):
    """Payloads keyed by difficulty; lives exactly as long as its session."""

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: dict[Difficulty, P] = {}

    def get(self, level: Difficulty) -> P | None:
        payload = self._entries.get(level)
        record_cache_get(self.kind, payload is not None)
        return payload

    def peek(self, level: Difficulty | None) -> P | None:
        if level is None:
            return None
        return self._entries.get(level)

    def put(self, level: Difficulty, payload: P) -> None:
        self._entries[level] = payload
        record_cache_set(self.kind)

    def levels(self) -> list[Difficulty]:
        return [level for level in Difficulty if level in self._entries]

    def __contains__(self, level: Difficulty) -> bool:
        return level in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def split_instruction_steps(instructions: str) -> list[str]:
    return [line.strip() for line in (instructions or "").splitlines() if line.strip()]


@dataclass
class Session:
    session_id: int
    source_text: str
    language: SupportedLanguage
    input_kind: InputKind
    status: SessionState = SessionState.SUBMITTING
    result: AnalysisResult | None = None
    selected_difficulty: Difficulty | None = None
    selected_practice_difficulty: Difficulty | None = None
    example_cache: DifficultyCache[ExamplePayload] = field(default_factory=lambda: DifficultyCache("example"))
    practice_cache: DifficultyCache[PracticePayload] = field(default_factory=lambda: DifficultyCache("practice"))
    chat_history: list[ChatMessage] = field(default_factory=list)
    instruction_levels: list[str] = field(default_factory=list)
    instruction_level: int = 1
    has_more_instructions: bool = True
    elaboration_level: int = 0
    _active: Counter = field(default_factory=Counter)

    @property
    def state(self) -> SessionState:
        if self.status == SessionState.READY:
            for sub_state in READY_SUBSTATES:
                if self._active[sub_state]:
                    return sub_state
        return self.status

    @property
    def explanation(self) -> str:
        return self.result.topic_explanation if self.result else ""

    @property
    def example(self) -> ExamplePayload | None:
        return self.example_cache.peek(self.selected_difficulty)

    @property
    def practice(self) -> PracticePayload | None:
        return self.practice_cache.peek(self.selected_practice_difficulty)

    def move_to(self, target: SessionState) -> None:
        if not can_transition(self.status, target):
            raise ValueError(f"Illegal session transition {self.status.value} -> {target.value}")
        self.status = target

    @contextmanager
    def activity(self, sub_state: SessionState):
        """Mark a READY sub-state as in flight; the session stays READY on exit either way."""
        if not can_transition(self.status, sub_state):
            raise ValueError(f"Cannot enter {sub_state.value} from {self.status.value}")
        self._active[sub_state] += 1
        try:
            yield self
        finally:
            self._active[sub_state] -= 1

    def use_practice(self, level: Difficulty, practice: PracticePayload) -> None:
        self.selected_practice_difficulty = level
        self.instruction_levels = split_instruction_steps(practice.instructions)
        self.instruction_level = 1
        self.has_more_instructions = True
