from enum import Enum


class SessionState(str, Enum):
    EMPTY = "empty"
    SUBMITTING = "submitting"
    READY = "ready"
    CHANGING_DIFFICULTY = "changing_difficulty"
    CHECKING_SOLUTION = "checking_solution"
    ASKING_FOLLOW_UP = "asking_follow_up"
    REVEALING_INSTRUCTIONS = "revealing_instructions"
    ELABORATING = "elaborating"


# Sub-states entered from READY; each one returns to READY whether it succeeds or fails.
READY_SUBSTATES = (
    SessionState.CHANGING_DIFFICULTY,
    SessionState.CHECKING_SOLUTION,
    SessionState.ASKING_FOLLOW_UP,
    SessionState.REVEALING_INSTRUCTIONS,
    SessionState.ELABORATING,
)

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.EMPTY: frozenset({SessionState.SUBMITTING}),
    SessionState.SUBMITTING: frozenset({SessionState.READY, SessionState.EMPTY}),
    SessionState.READY: frozenset(READY_SUBSTATES),
    **{sub: frozenset({SessionState.READY}) for sub in READY_SUBSTATES},
}


def can_transition(current: SessionState, target: SessionState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())
