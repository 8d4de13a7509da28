from fastapi import APIRouter
from pydantic import BaseModel

from codetutor.data.languages import ACCEPTED_FILE_EXTENSIONS, detect_language, display_name, selectable_languages

router = APIRouter(prefix="/languages", tags=["languages"])


class DetectLanguageRequest(BaseModel):
    filename: str


@router.get("")
async def list_languages():
    return {"languages": selectable_languages(), "accepted_extensions": ACCEPTED_FILE_EXTENSIONS}


@router.post("/detect")
async def detect(payload: DetectLanguageRequest):
    language = detect_language(payload.filename)
    return {"language": language.value, "label": display_name(language), "supported": language.value != "unknown"}
