from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from restyle.core.exceptions import SerializationError
from restyle.core.metadata import MutationRequest

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "Style change"

_FENCE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_COLOR_VALUE = r"(#[0-9a-fA-F]{3,8}\b|(?:rgba?|hsla?)\([^)]*\)|[a-zA-Z]+)"
_LENGTH_VALUE = r"(\d+(?:\.\d+)?(?:px|em|rem|%))"

FALLBACK_PATTERNS: dict[str, re.Pattern[str]] = {
    "color": re.compile(rf"(?<![-\w])(?:color|cor)\b\s*[:=]?\s*{_COLOR_VALUE}", re.IGNORECASE),
    "backgroundColor": re.compile(rf"\b(?:background(?:-color)?|fundo)\b\s*[:=]?\s*{_COLOR_VALUE}", re.IGNORECASE),
    "fontSize": re.compile(rf"\b(?:font-?size|tamanho)\b\s*[:=]?\s*{_LENGTH_VALUE}", re.IGNORECASE),
    "padding": re.compile(rf"\b(?:padding|espaçamento)\s*[:=]?\s*{_LENGTH_VALUE}", re.IGNORECASE),
    "borderRadius": re.compile(rf"\b(?:border-?radius|arredondar)\b\s*[:=]?\s*{_LENGTH_VALUE}", re.IGNORECASE),
}

_ACTION = re.compile(r"(?:action|ação)[:\s]+([^.!?\n]+)", re.IGNORECASE)


def parse_mutation_response(response: str | dict[str, Any]) -> MutationRequest:
    """Turns the interpreter reply into a ``MutationRequest``.

    JSON (optionally inside a code fence) is preferred; free text falls back to
    keyword extraction of a handful of common properties.
    """

    if isinstance(response, dict):
        return _validate(response)
    if not isinstance(response, str) or not response.strip():
        raise SerializationError("Interpreter returned an empty response")

    cleaned = _FENCE.sub("", response).strip()
    for candidate in (cleaned, _outer_object(cleaned)):
        if not candidate:
            continue
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return _validate(payload)

    logger.info("Interpreter reply is not JSON, falling back to keyword extraction")
    return extract_from_text(response)


def extract_from_text(text: str) -> MutationRequest:
    styles: dict[str, str] = {}
    for prop, pattern in FALLBACK_PATTERNS.items():
        match = pattern.search(text)
        if match:
            value = next(group for group in match.groups() if group)
            styles[prop] = value.strip()
    action_match = _ACTION.search(text)
    action = action_match.group(1).strip() if action_match else DEFAULT_ACTION
    return MutationRequest(action=action, styles=styles, explanation=text.strip())


def _outer_object(text: str) -> str:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return ""
    return text[start : end + 1]


def _validate(payload: dict[str, Any]) -> MutationRequest:
    try:
        return MutationRequest.model_validate(payload)
    except ValidationError as exc:
        raise SerializationError(f"Interpreter reply does not match the mutation schema: {exc}") from exc
