from __future__ import annotations

import asyncio
from typing import Coroutine

from codetutor.agents.tutor import TutorAgent
from codetutor.core.errors import InvalidInput, InvalidLanguage, NoActiveSession, StaleSession
from codetutor.core.logging import DOMAIN_ANALYSIS, DOMAIN_CHAT, DOMAIN_PRACTICE, get_domain_logger, log_event
from codetutor.data.languages import SupportedLanguage
from codetutor.memory.preferences import PreferencesStore
from codetutor.orchestrator.session import Session
from codetutor.orchestrator.states import SessionState
from codetutor.schemas.analysis import (
    AnalysisRequest,
    AnalysisResult,
    ChatMessage,
    Difficulty,
    ExamplePayload,
    InputKind,
    InstructionsPayload,
    PracticePayload,
    RequestKind,
    SessionSnapshot,
    UserSolutionAnalysis,
)

logger = get_domain_logger(__name__, DOMAIN_ANALYSIS)
practice_logger = get_domain_logger(__name__, DOMAIN_PRACTICE)
chat_logger = get_domain_logger(__name__, DOMAIN_CHAT)


class TutorOrchestrator:
    """
    Owns the one live analysis session and sequences the model calls behind it.

    Submissions fetch the explanation first, then the example and practice
    question concurrently. Examples and practice questions are cached per
    difficulty for the life of the session. Every async completion checks that
    its session is still current before touching state.
    """

    def __init__(self, agent: TutorAgent, preferences: PreferencesStore | None = None):
        self.agent = agent
        self.preferences = preferences
        self._session_seq = 0
        self._current: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._current

    @property
    def current_session_id(self) -> int:
        return self._current.session_id if self._current else 0

    # ── helpers ──────────────────────────────────────────────────────────────

    def _initial_difficulty(self) -> Difficulty:
        if self.preferences is None:
            return Difficulty.EASY
        return self.preferences.load().preferred_initial_difficulty

    def _require_ready(self) -> Session:
        session = self._current
        if session is None or session.status != SessionState.READY:
            raise NoActiveSession("No analysis is ready yet. Submit code or a concept first.")
        return session

    def _ensure_current(self, session: Session) -> None:
        if self._current is not session:
            raise StaleSession(
                f"Session {session.session_id} was replaced by session {self.current_session_id}; result discarded."
            )

    @staticmethod
    def _request(session: Session, kind: RequestKind, **context) -> AnalysisRequest:
        context.setdefault("explanation", session.explanation)
        return AnalysisRequest(
            source_text=session.source_text,
            language=session.language,
            input_kind=session.input_kind,
            request_kind=kind,
            **context,
        )

    @staticmethod
    def _log_transition(session: Session, from_state: SessionState, to_state: SessionState, event: str) -> None:
        log_event(
            logger,
            "state_transition",
            session_id=session.session_id,
            from_state=from_state.value,
            to_state=to_state.value,
            event=event,
        )

    async def _run_concurrently(self, *calls: Coroutine) -> list:
        tasks = [asyncio.create_task(call) for call in calls]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Drain siblings so their outcome is retrieved; the first failure is what propagates.
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # ── operations ───────────────────────────────────────────────────────────

    async def submit(
        self,
        source_text: str,
        language: SupportedLanguage,
        input_kind: InputKind = InputKind.CODE,
        difficulty: Difficulty | None = None,
    ) -> AnalysisResult:
        if language == SupportedLanguage.UNKNOWN:
            raise InvalidLanguage("Cannot analyze input for an unknown language. Select a language first.")
        if not (source_text or "").strip():
            what = "a programming concept" if input_kind == InputKind.CONCEPT else "some code"
            raise InvalidInput(f"Please provide {what} to analyze.")

        level = difficulty or self._initial_difficulty()
        self._session_seq += 1
        session = Session(
            session_id=self._session_seq,
            source_text=source_text,
            language=language,
            input_kind=input_kind,
        )
        self._current = session
        self._log_transition(session, SessionState.EMPTY, SessionState.SUBMITTING, "submit")

        try:
            explanation = await self.agent.explain(
                AnalysisRequest(
                    source_text=source_text,
                    language=language,
                    input_kind=input_kind,
                    request_kind=RequestKind.EXPLANATION,
                )
            )
            self._ensure_current(session)

            example, practice = await self._run_concurrently(
                self.agent.example(
                    self._request(session, RequestKind.EXAMPLE, explanation=explanation, difficulty=level)
                ),
                self.agent.practice(
                    self._request(session, RequestKind.PRACTICE, explanation=explanation, difficulty=level)
                ),
            )
            self._ensure_current(session)
        except StaleSession:
            logger.info("Discarding late submit result for superseded session %s", session.session_id)
            raise
        except BaseException as exc:
            session.move_to(SessionState.EMPTY)
            if self._current is session:
                self._current = None
            reason = getattr(exc, "code", type(exc).__name__)
            self._log_transition(session, SessionState.SUBMITTING, SessionState.EMPTY, f"failed:{reason}")
            raise

        session.result = AnalysisResult(
            topic_explanation=explanation,
            example_code=example.example_code,
            example_code_output=example.example_code_output,
            practice_question=practice.practice_question,
            instructions=practice.instructions,
            example_difficulty=level,
            language=language,
            input_kind=input_kind,
        )
        session.example_cache.put(level, example)
        session.practice_cache.put(level, practice)
        session.selected_difficulty = level
        session.use_practice(level, practice)
        session.move_to(SessionState.READY)
        self._log_transition(session, SessionState.SUBMITTING, SessionState.READY, "submit_complete")
        return session.result

    async def change_difficulty(self, level: Difficulty) -> ExamplePayload:
        session = self._require_ready()
        cached = session.example_cache.get(level)
        if cached is not None:
            session.selected_difficulty = level
            return cached

        with session.activity(SessionState.CHANGING_DIFFICULTY):
            practice_logger.info("Fetching %s example for session %s", level.value, session.session_id)
            payload = await self.agent.example(self._request(session, RequestKind.EXAMPLE, difficulty=level))
        self._ensure_current(session)
        session.example_cache.put(level, payload)
        session.selected_difficulty = level
        return payload

    async def change_practice_difficulty(self, level: Difficulty) -> PracticePayload:
        session = self._require_ready()
        cached = session.practice_cache.get(level)
        if cached is not None:
            session.use_practice(level, cached)
            return cached

        with session.activity(SessionState.CHANGING_DIFFICULTY):
            practice_logger.info("Fetching %s practice question for session %s", level.value, session.session_id)
            payload = await self.agent.practice(self._request(session, RequestKind.PRACTICE, difficulty=level))
        self._ensure_current(session)
        session.practice_cache.put(level, payload)
        session.use_practice(level, payload)
        return payload

    async def check_solution(self, user_code: str) -> UserSolutionAnalysis:
        if not (user_code or "").strip():
            raise InvalidInput("Please enter your solution code before checking.")
        session = self._require_ready()
        practice = session.practice
        with session.activity(SessionState.CHECKING_SOLUTION):
            analysis = await self.agent.check_solution(
                self._request(
                    session,
                    RequestKind.SOLUTION_CHECK,
                    user_code=user_code,
                    practice_question=practice.practice_question,
                    instructions="\n".join(session.instruction_levels) or practice.instructions,
                )
            )
        self._ensure_current(session)
        practice_logger.info(
            "Solution checked for session %s: is_correct=%s", session.session_id, analysis.is_correct
        )
        return analysis

    async def ask_follow_up(self, question: str) -> str:
        if not (question or "").strip():
            raise InvalidInput("Please type a follow-up question first.")
        session = self._require_ready()
        with session.activity(SessionState.ASKING_FOLLOW_UP):
            answer = await self.agent.follow_up(
                self._request(
                    session,
                    RequestKind.FOLLOW_UP,
                    question=question.strip(),
                    chat_history=tuple(session.chat_history),
                )
            )
        self._ensure_current(session)
        session.chat_history.append(ChatMessage(role="user", content=question.strip()))
        session.chat_history.append(ChatMessage(role="assistant", content=answer))
        chat_logger.info("Follow-up answered for session %s (%d turns)", session.session_id, len(session.chat_history))
        return answer

    async def more_instructions(self) -> InstructionsPayload:
        session = self._require_ready()
        if not session.has_more_instructions:
            return InstructionsPayload(instructions=[], level_number=session.instruction_level, has_more_levels=False)

        with session.activity(SessionState.REVEALING_INSTRUCTIONS):
            payload = await self.agent.more_instructions(
                self._request(
                    session,
                    RequestKind.MORE_INSTRUCTIONS,
                    practice_question=session.practice.practice_question,
                    displayed_instructions=tuple(session.instruction_levels),
                    instruction_level=session.instruction_level,
                )
            )
        self._ensure_current(session)
        new_steps = [step.strip() for step in payload.instructions if step.strip()]
        if new_steps:
            session.instruction_levels.extend(new_steps)
            session.instruction_level = max(payload.level_number, session.instruction_level + 1)
            session.has_more_instructions = payload.has_more_levels
        else:
            session.has_more_instructions = False
        return InstructionsPayload(
            instructions=new_steps,
            level_number=session.instruction_level,
            has_more_levels=session.has_more_instructions,
        )

    async def elaborate(self) -> str:
        session = self._require_ready()
        level = session.elaboration_level + 1
        with session.activity(SessionState.ELABORATING):
            text = await self.agent.elaborate(self._request(session, RequestKind.ELABORATION, elaboration_level=level))
        self._ensure_current(session)
        session.elaboration_level = level
        return text

    def snapshot(self) -> SessionSnapshot:
        session = self._current
        if session is None:
            return SessionSnapshot(session_id=0, state=SessionState.EMPTY.value)
        return SessionSnapshot(
            session_id=session.session_id,
            state=session.state.value,
            language=session.language,
            input_kind=session.input_kind,
            selected_difficulty=session.selected_difficulty,
            selected_practice_difficulty=session.selected_practice_difficulty,
            cached_difficulties=session.example_cache.levels(),
            result=session.result,
            example=session.example,
            practice=session.practice,
            instruction_levels=list(session.instruction_levels),
            has_more_instructions=session.has_more_instructions,
            elaboration_level=session.elaboration_level,
            chat_history=list(session.chat_history),
        )
