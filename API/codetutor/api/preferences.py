from fastapi import APIRouter, Depends

from codetutor.memory.preferences import PreferencesStore, preferences_store
from codetutor.schemas.preferences import PreferencesUpdate, UserPreferences, VisibilityToggleRequest

router = APIRouter(prefix="/preferences", tags=["preferences"])


def get_preferences_store() -> PreferencesStore:
    return preferences_store


@router.get("", response_model=UserPreferences)
async def read_preferences(store: PreferencesStore = Depends(get_preferences_store)):
    return store.load()


@router.put("", response_model=UserPreferences)
async def update_preferences(payload: PreferencesUpdate, store: PreferencesStore = Depends(get_preferences_store)):
    return store.update(**payload.model_dump(exclude_none=True))


@router.post("/toggle", response_model=UserPreferences)
async def toggle_section(payload: VisibilityToggleRequest, store: PreferencesStore = Depends(get_preferences_store)):
    return store.toggle_visibility(payload.key, topic_subsection=payload.topic_subsection)
