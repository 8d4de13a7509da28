import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from codetutor.api.analysis import router as analysis_router
from codetutor.api.health import router as health_router
from codetutor.api.languages import router as languages_router
from codetutor.api.metrics import router as metrics_router
from codetutor.api.preferences import router as preferences_router
from codetutor.core.app_metrics import metrics_middleware
from codetutor.core.errors import (
    TutorError,
    http_exception_handler,
    request_id_middleware,
    tutor_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from codetutor.core.logging import configure_logging
from codetutor.core.settings import settings


configure_logging(settings.log_level)

app = FastAPI(title="Code Tutor API", version="0.1.0")
app.include_router(health_router)
app.include_router(languages_router)
app.include_router(analysis_router)
app.include_router(preferences_router)
app.include_router(metrics_router)
app.middleware("http")(metrics_middleware)
app.middleware("http")(request_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(TutorError, tutor_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


def run() -> None:
    uvicorn.run("codetutor.main:app", host=settings.app_host, port=settings.app_port, log_level=settings.log_level.lower())
