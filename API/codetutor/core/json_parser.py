from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

from codetutor.core.errors import MalformedResponse

T = TypeVar("T", bound=BaseModel)

EXCERPT_LENGTH = 200

_FENCE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


@dataclass(frozen=True)
class ParseOk(Generic[T]):
    value: T


@dataclass(frozen=True)
class ParseError:
    reason: str
    excerpt: str


def strip_code_fence(text: str) -> str:
    candidate = (text or "").strip()
    match = _FENCE.match(candidate)
    if match and match.group(1):
        return match.group(1).strip()
    return candidate


def excerpt_of(text: str) -> str:
    return (text or "")[:EXCERPT_LENGTH]


def decode_llm_json(text: str, schema: type[T]) -> ParseOk[T] | ParseError:
    """Decode model output into ``schema``; never raises for bad input."""
    candidate = strip_code_fence(text).replace("\\'", "'")
    if not candidate:
        return ParseError(reason="empty response", excerpt=excerpt_of(text))
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return ParseError(reason=f"invalid JSON: {exc.msg}", excerpt=excerpt_of(text))
    if not isinstance(data, dict):
        return ParseError(reason=f"expected a JSON object, got {type(data).__name__}", excerpt=excerpt_of(text))
    try:
        return ParseOk(schema.model_validate(data))
    except ValidationError as exc:
        missing = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        return ParseError(reason=f"missing or invalid fields: {', '.join(missing)}", excerpt=excerpt_of(text))


def parse_llm_json(text: str, schema: type[T]) -> T:
    outcome = decode_llm_json(text, schema)
    if isinstance(outcome, ParseError):
        raise MalformedResponse(
            f"AI returned an invalid response format ({outcome.reason}). Raw (excerpt): {outcome.excerpt}...",
            excerpt=outcome.excerpt,
        )
    return outcome.value
