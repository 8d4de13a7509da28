from enum import Enum

from pydantic import Field

from codetutor.schemas.analysis import CamelModel, Difficulty


class InstructionFormat(str, Enum):
    NORMAL = "normal"
    LINE_BY_LINE = "line-by-line"


class TopicExplanationVisibility(CamelModel):
    master_toggle: bool = True
    core_concepts: bool = True
    block_by_block: bool = True
    line_by_line: bool = True
    execution_flow: bool = True
    follow_up: bool = True


class VisibleSections(CamelModel):
    topic_explanation: TopicExplanationVisibility = Field(default_factory=TopicExplanationVisibility)
    example_code: bool = True
    practice_question: bool = True
    instructions_to_solve: bool = True


class UserPreferences(CamelModel):
    preferred_initial_difficulty: Difficulty = Difficulty.EASY
    is_left_panel_collapsed: bool = False
    preferred_instruction_format: InstructionFormat = InstructionFormat.NORMAL
    default_practice_difficulty: Difficulty = Difficulty.INTERMEDIATE
    visible_sections: VisibleSections = Field(default_factory=VisibleSections)


class PreferencesUpdate(CamelModel):
    preferred_initial_difficulty: Difficulty | None = None
    is_left_panel_collapsed: bool | None = None
    preferred_instruction_format: InstructionFormat | None = None
    default_practice_difficulty: Difficulty | None = None


class VisibilityToggleRequest(CamelModel):
    key: str
    topic_subsection: bool = False
