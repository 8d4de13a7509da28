"""
Display preferences persisted as one opaque key-value blob.

The store is handed an adapter that reads and writes the blob, so the
orchestrator and HTTP layer never touch storage directly.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from codetutor.core.errors import InvalidInput
from codetutor.core.logging import DOMAIN_PREFERENCES, get_domain_logger
from codetutor.core.settings import settings
from codetutor.schemas.analysis import Difficulty
from codetutor.schemas.preferences import (
    InstructionFormat,
    TopicExplanationVisibility,
    UserPreferences,
    VisibleSections,
)

logger = get_domain_logger(__name__, DOMAIN_PREFERENCES)

_TOPIC_KEYS = tuple(
    info.alias or name for name, info in TopicExplanationVisibility.model_fields.items()
)
_SECTION_KEYS = tuple(
    info.alias or name for name, info in VisibleSections.model_fields.items() if name != "topic_explanation"
)


class PreferencesAdapter(Protocol):
    def read(self) -> str | None: ...

    def write(self, blob: str) -> None: ...


class InMemoryPreferencesAdapter:
    def __init__(self, blob: str | None = None):
        self.blob = blob

    def read(self) -> str | None:
        return self.blob

    def write(self, blob: str) -> None:
        self.blob = blob


class JsonFilePreferencesAdapter:
    def __init__(self, path: Path | None = None):
        self.path = path or Path(settings.runtime_data_dir) / settings.preferences_file

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, blob: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(blob, encoding="utf-8")


def _enum_or(enum_cls, value, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _bool_or(value, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _coerce_visible_sections(raw) -> VisibleSections:
    defaults = VisibleSections()
    loaded = raw if isinstance(raw, dict) else {}
    topic_raw = loaded.get("topicExplanation")
    if isinstance(topic_raw, dict):
        topic = {
            key: _bool_or(topic_raw.get(key), default)
            for key, default in defaults.topic_explanation.model_dump(by_alias=True).items()
        }
    else:
        # Older blobs stored a single boolean for the whole explanation plus a top-level followUp flag.
        master = topic_raw if isinstance(topic_raw, bool) else True
        topic = {key: master for key in _TOPIC_KEYS}
        topic["followUp"] = _bool_or(loaded.get("followUp"), master)
    sections = {key: _bool_or(loaded.get(key), True) for key in _SECTION_KEYS}
    return VisibleSections.model_validate({"topicExplanation": topic, **sections})


def coerce_preferences(raw) -> UserPreferences:
    """Validate field by field so one bad value never discards the rest."""
    if not isinstance(raw, dict):
        return UserPreferences()
    defaults = UserPreferences()
    return UserPreferences(
        preferred_initial_difficulty=_enum_or(
            Difficulty, raw.get("preferredInitialDifficulty"), defaults.preferred_initial_difficulty
        ),
        is_left_panel_collapsed=_bool_or(raw.get("isLeftPanelCollapsed"), defaults.is_left_panel_collapsed),
        preferred_instruction_format=_enum_or(
            InstructionFormat, raw.get("preferredInstructionFormat"), defaults.preferred_instruction_format
        ),
        default_practice_difficulty=_enum_or(
            Difficulty, raw.get("defaultPracticeDifficulty"), defaults.default_practice_difficulty
        ),
        visible_sections=_coerce_visible_sections(raw.get("visibleSections")),
    )


class PreferencesStore:
    def __init__(self, adapter: PreferencesAdapter):
        self.adapter = adapter

    def load(self) -> UserPreferences:
        blob = self.adapter.read()
        if not blob:
            return UserPreferences()
        try:
            raw = json.loads(blob)
        except json.JSONDecodeError as exc:
            logger.warning("Stored preferences are not valid JSON, using defaults: %s", exc)
            return UserPreferences()
        return coerce_preferences(raw)

    def save(self, preferences: UserPreferences) -> UserPreferences:
        self.adapter.write(preferences.model_dump_json(by_alias=True))
        logger.info("Preferences saved")
        return preferences

    def update(self, **changes) -> UserPreferences:
        current = self.load()
        applied = {key: value for key, value in changes.items() if value is not None}
        unknown = set(applied) - set(UserPreferences.model_fields)
        if unknown:
            raise InvalidInput(f"Unknown preference field(s): {', '.join(sorted(unknown))}")
        updated = UserPreferences.model_validate({**current.model_dump(), **applied})
        return self.save(updated)

    def toggle_visibility(self, key: str, topic_subsection: bool = False) -> UserPreferences:
        current = self.load()
        sections = current.visible_sections.model_dump(by_alias=True)
        topic = sections["topicExplanation"]
        if key == "topicExplanation" and not topic_subsection:
            master = not topic["masterToggle"]
            topic = {sub_key: master for sub_key in topic}
        elif topic_subsection:
            if key not in topic or key == "masterToggle":
                raise InvalidInput(f"Unknown topic explanation section: {key}")
            topic[key] = not topic[key]
            topic["masterToggle"] = any(value for sub_key, value in topic.items() if sub_key != "masterToggle")
        else:
            if key not in _SECTION_KEYS:
                raise InvalidInput(f"Unknown section: {key}")
            sections[key] = not sections[key]
        sections["topicExplanation"] = topic
        updated = current.model_copy(update={"visible_sections": VisibleSections.model_validate(sections)})
        return self.save(updated)


preferences_store = PreferencesStore(JsonFilePreferencesAdapter())
