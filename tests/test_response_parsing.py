import pytest

from codetutor.core.errors import MalformedResponse
from codetutor.core.json_parser import ParseError, ParseOk, decode_llm_json, parse_llm_json, strip_code_fence
from codetutor.schemas.analysis import (
    AssessmentStatus,
    ExamplePayload,
    InstructionsPayload,
    PracticePayload,
    UserSolutionAnalysis,
)


def test_fenced_json_is_accepted():
    raw = '```json\n{"exampleCode": "print(2)", "exampleCodeOutput": "2"}\n```'
    payload = parse_llm_json(raw, ExamplePayload)
    assert payload.example_code == "print(2)"
    assert payload.example_code_output == "2"


def test_fence_without_language_tag_is_stripped():
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'


def test_missing_required_field_is_malformed():
    with pytest.raises(MalformedResponse) as err:
        parse_llm_json('{"instructions": "step one"}', PracticePayload)
    assert "practice_question" in err.value.message or "practiceQuestion" in err.value.message


def test_blank_required_field_is_malformed():
    outcome = decode_llm_json('{"practiceQuestion": "   ", "instructions": "step"}', PracticePayload)
    assert isinstance(outcome, ParseError)


def test_wrong_type_for_required_field_is_malformed():
    outcome = decode_llm_json('{"exampleCode": 42, "exampleCodeOutput": "42"}', ExamplePayload)
    assert isinstance(outcome, ParseError)


def test_non_json_carries_short_excerpt():
    raw = "Sure! Here is your answer: " + "x" * 500
    with pytest.raises(MalformedResponse) as err:
        parse_llm_json(raw, ExamplePayload)
    assert len(err.value.excerpt) <= 200
    assert err.value.excerpt == raw[:200]
    assert "Raw (excerpt)" in err.value.message


def test_json_array_is_rejected():
    outcome = decode_llm_json('[{"exampleCode": "a", "exampleCodeOutput": "b"}]', ExamplePayload)
    assert isinstance(outcome, ParseError)
    assert "object" in outcome.reason


def test_escaped_single_quotes_are_tolerated():
    outcome = decode_llm_json('{"exampleCode": "print(\\\'hi\\\')", "exampleCodeOutput": "hi"}', ExamplePayload)
    assert isinstance(outcome, ParseOk)
    assert outcome.value.example_code == "print('hi')"


def test_solution_advisory_fields_degrade_to_none():
    raw = '{"predictedOutput": "3", "feedback": "ok", "isCorrect": "yes", "assessmentStatus": "maybe"}'
    analysis = parse_llm_json(raw, UserSolutionAnalysis)
    assert analysis.is_correct is None
    assert analysis.assessment_status is None


def test_solution_advisory_fields_are_kept_when_valid():
    raw = '{"predictedOutput": "", "feedback": "close", "isCorrect": false, "assessmentStatus": "partially_correct"}'
    analysis = parse_llm_json(raw, UserSolutionAnalysis)
    assert analysis.is_correct is False
    assert analysis.assessment_status == AssessmentStatus.PARTIALLY_CORRECT


def test_instruction_levels_require_typed_fields():
    ok = decode_llm_json('{"instructions": ["a"], "levelNumber": 2, "hasMoreLevels": true}', InstructionsPayload)
    assert isinstance(ok, ParseOk)
    bad = decode_llm_json('{"instructions": ["a"], "levelNumber": "2", "hasMoreLevels": true}', InstructionsPayload)
    assert isinstance(bad, ParseError)
