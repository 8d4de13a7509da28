from fastapi import APIRouter, Depends

from codetutor.api.analysis import get_orchestrator
from codetutor.core.settings import settings
from codetutor.orchestrator.engine import TutorOrchestrator

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(orchestrator: TutorOrchestrator = Depends(get_orchestrator)):
    configured = orchestrator.agent.is_configured
    return {
        "status": "ok" if configured else "degraded",
        "service": "code-tutor-api",
        "model": orchestrator.agent.provider.model_name,
        "model_configured": configured,
        "setup_error": None if configured else "GEMINI_API_KEY is missing. AI functionality is disabled.",
        "active_session_id": orchestrator.current_session_id,
        "rate_limit_enabled": settings.rate_limit_enabled,
    }
