import json

import pytest

from codetutor.core.errors import InvalidInput
from codetutor.memory.preferences import (
    InMemoryPreferencesAdapter,
    JsonFilePreferencesAdapter,
    PreferencesStore,
    coerce_preferences,
)
from codetutor.schemas.analysis import Difficulty
from codetutor.schemas.preferences import InstructionFormat, UserPreferences


def test_missing_blob_loads_defaults(preferences):
    prefs = preferences.load()
    assert prefs == UserPreferences()
    assert prefs.preferred_initial_difficulty == Difficulty.EASY
    assert prefs.default_practice_difficulty == Difficulty.INTERMEDIATE
    assert prefs.preferred_instruction_format == InstructionFormat.NORMAL


def test_corrupt_blob_loads_defaults():
    store = PreferencesStore(InMemoryPreferencesAdapter("{not json"))
    assert store.load() == UserPreferences()


def test_bad_field_does_not_discard_the_rest():
    prefs = coerce_preferences(
        {
            "preferredInitialDifficulty": "impossible",
            "isLeftPanelCollapsed": True,
            "preferredInstructionFormat": "line-by-line",
            "defaultPracticeDifficulty": "hard",
        }
    )
    assert prefs.preferred_initial_difficulty == Difficulty.EASY
    assert prefs.is_left_panel_collapsed is True
    assert prefs.preferred_instruction_format == InstructionFormat.LINE_BY_LINE
    assert prefs.default_practice_difficulty == Difficulty.HARD


def test_legacy_boolean_topic_explanation_is_expanded():
    prefs = coerce_preferences({"visibleSections": {"topicExplanation": False, "followUp": True, "exampleCode": False}})
    topic = prefs.visible_sections.topic_explanation
    assert topic.master_toggle is False
    assert topic.core_concepts is False
    assert topic.execution_flow is False
    assert topic.follow_up is True
    assert prefs.visible_sections.example_code is False
    assert prefs.visible_sections.practice_question is True


def test_update_persists_camel_case_blob():
    adapter = InMemoryPreferencesAdapter()
    store = PreferencesStore(adapter)
    store.update(preferred_initial_difficulty=Difficulty.HARD, is_left_panel_collapsed=True)

    stored = json.loads(adapter.blob)
    assert stored["preferredInitialDifficulty"] == "hard"
    assert stored["isLeftPanelCollapsed"] is True
    assert store.load().preferred_initial_difficulty == Difficulty.HARD


def test_update_rejects_unknown_fields(preferences):
    with pytest.raises(InvalidInput):
        preferences.update(font_size=14)


def test_master_toggle_flips_every_subsection(preferences):
    prefs = preferences.toggle_visibility("topicExplanation")
    topic = prefs.visible_sections.topic_explanation
    assert topic.master_toggle is False
    assert not any(topic.model_dump().values())

    prefs = preferences.toggle_visibility("topicExplanation")
    assert all(prefs.visible_sections.topic_explanation.model_dump().values())


def test_subsection_toggle_recomputes_master(preferences):
    preferences.toggle_visibility("topicExplanation")
    prefs = preferences.toggle_visibility("lineByLine", topic_subsection=True)
    topic = prefs.visible_sections.topic_explanation
    assert topic.line_by_line is True
    assert topic.master_toggle is True

    prefs = preferences.toggle_visibility("lineByLine", topic_subsection=True)
    assert prefs.visible_sections.topic_explanation.master_toggle is False


def test_top_level_section_toggle(preferences):
    prefs = preferences.toggle_visibility("practiceQuestion")
    assert prefs.visible_sections.practice_question is False
    assert prefs.visible_sections.topic_explanation.master_toggle is True


@pytest.mark.parametrize("key, subsection", [("nope", False), ("nope", True), ("masterToggle", True)])
def test_unknown_toggle_keys_are_rejected(preferences, key, subsection):
    with pytest.raises(InvalidInput):
        preferences.toggle_visibility(key, topic_subsection=subsection)


def test_json_file_adapter_round_trips(tmp_path):
    store = PreferencesStore(JsonFilePreferencesAdapter(tmp_path / "nested" / "preferences.json"))
    store.update(default_practice_difficulty=Difficulty.EASY)
    reloaded = PreferencesStore(JsonFilePreferencesAdapter(tmp_path / "nested" / "preferences.json"))
    assert reloaded.load().default_practice_difficulty == Difficulty.EASY
