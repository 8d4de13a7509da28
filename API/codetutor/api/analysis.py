import math

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from codetutor.agents.tutor import TutorAgent
from codetutor.core.errors import InvalidInput, InvalidLanguage, RateLimitExceeded
from codetutor.core.logging import DOMAIN_ANALYSIS, get_domain_logger
from codetutor.core.rate_limit import api_rate_limiter
from codetutor.core.settings import settings
from codetutor.data.languages import SupportedLanguage, detect_language
from codetutor.memory.preferences import preferences_store
from codetutor.orchestrator.engine import TutorOrchestrator
from codetutor.schemas.analysis import (
    CheckSolutionRequest,
    Difficulty,
    DifficultyRequest,
    ExamplePayload,
    FollowUpRequest,
    InputKind,
    InstructionsPayload,
    PracticePayload,
    SessionSnapshot,
    SubmitRequest,
    SubmitResponse,
    TextResponse,
    UserSolutionAnalysis,
)

router = APIRouter(prefix="/analysis", tags=["analysis"])
logger = get_domain_logger(__name__, DOMAIN_ANALYSIS)

tutor_orchestrator = TutorOrchestrator(TutorAgent(), preferences_store)


def get_orchestrator() -> TutorOrchestrator:
    return tutor_orchestrator


async def enforce_rate_limit(request: Request) -> None:
    if not settings.rate_limit_enabled:
        return
    identifier = request.client.host if request.client else "anonymous"
    if not api_rate_limiter.check_limit(identifier):
        wait = math.ceil(api_rate_limiter.retry_after(identifier))
        raise RateLimitExceeded(
            f"Too many AI requests. Please wait {wait}s and try again.",
            details={"retry_after_seconds": wait},
        )


@router.get("", response_model=SessionSnapshot)
async def current_session(orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    return orchestrator.snapshot()


@router.post("/submit", response_model=SubmitResponse, dependencies=[Depends(enforce_rate_limit)])
async def submit(payload: SubmitRequest, orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    result = await orchestrator.submit(
        payload.source_text,
        payload.language,
        input_kind=payload.input_kind,
        difficulty=payload.difficulty,
    )
    return SubmitResponse(session_id=orchestrator.current_session_id, result=result)


@router.post("/upload", response_model=SubmitResponse, dependencies=[Depends(enforce_rate_limit)])
async def upload(
    file: UploadFile = File(...),
    language: SupportedLanguage | None = Form(None),
    difficulty: Difficulty | None = Form(None),
    orchestrator: TutorOrchestrator = Depends(get_orchestrator),
):
    resolved = language or detect_language(file.filename or "")
    if resolved == SupportedLanguage.UNKNOWN:
        raise InvalidLanguage(
            f"Unsupported file type: {file.filename}. Please select a language manually or upload a supported file."
        )
    raw = await file.read()
    try:
        source_text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInput("Error reading the selected file. Please upload a UTF-8 text file.") from exc
    logger.info("Uploaded %s (%d bytes) detected as %s", file.filename, len(raw), resolved.value)
    result = await orchestrator.submit(source_text, resolved, input_kind=InputKind.CODE, difficulty=difficulty)
    return SubmitResponse(session_id=orchestrator.current_session_id, result=result)


@router.post("/difficulty", response_model=ExamplePayload, dependencies=[Depends(enforce_rate_limit)])
async def change_difficulty(payload: DifficultyRequest, orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.change_difficulty(payload.level)


@router.post("/practice-difficulty", response_model=PracticePayload, dependencies=[Depends(enforce_rate_limit)])
async def change_practice_difficulty(
    payload: DifficultyRequest, orchestrator: TutorOrchestrator = Depends(get_orchestrator)
):
    return await orchestrator.change_practice_difficulty(payload.level)


@router.post("/check-solution", response_model=UserSolutionAnalysis, dependencies=[Depends(enforce_rate_limit)])
async def check_solution(payload: CheckSolutionRequest, orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.check_solution(payload.user_code)


@router.post("/follow-up", response_model=TextResponse, dependencies=[Depends(enforce_rate_limit)])
async def follow_up(payload: FollowUpRequest, orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    answer = await orchestrator.ask_follow_up(payload.question)
    return TextResponse(session_id=orchestrator.current_session_id, text=answer)


@router.post("/more-instructions", response_model=InstructionsPayload, dependencies=[Depends(enforce_rate_limit)])
async def more_instructions(orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.more_instructions()


@router.post("/elaborate", response_model=TextResponse, dependencies=[Depends(enforce_rate_limit)])
async def elaborate(orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    text = await orchestrator.elaborate()
    return TextResponse(session_id=orchestrator.current_session_id, text=text)
