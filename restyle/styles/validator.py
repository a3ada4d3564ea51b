from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from restyle.core.exceptions import SerializationError
from restyle.styles.colors import is_color
from restyle.styles.schema import (
    GLOBAL_KEYWORDS,
    PROPERTY_SCHEMA,
    ColorKind,
    CompositeKind,
    EnumKind,
    FreeformKind,
    LengthKind,
    NumberKind,
    ValueKind,
    lookup,
)
from restyle.utils.similarity import closest_match

logger = logging.getLogger(__name__)

_UNITS = "px|em|rem|%|vh|vw|vmin|vmax|pt|pc|in|cm|mm|ex|ch|fr"
_LENGTH = re.compile(rf"^-?(?:\d+\.?\d*|\.\d+)(?:{_UNITS})$", re.IGNORECASE)
_BARE_NUMBER = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)$")
_MATH_FUNCTION = re.compile(r"^(?:calc|clamp|min|max)\(.+\)$", re.IGNORECASE)
_LENGTH_KEYWORDS = frozenset({"auto"}) | GLOBAL_KEYWORDS
_FORBIDDEN = re.compile(r"[;{}]")


@dataclass(slots=True)
class ValidationResult:
    valid: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class StyleValidator:
    """Partitions a style map into accepted and rejected entries.

    Rejections never abort validation: every accepted entry is returned in
    ``valid`` and every rejected one is reported in ``errors``.
    """

    def validate(self, styles: dict[str, Any] | str) -> ValidationResult:
        parsed = self._parse(styles)
        result = ValidationResult()
        for prop, value in parsed.items():
            spec = lookup(prop)
            if spec is None:
                result.errors.append(f"Invalid CSS property: {prop}")
                suggestion = closest_match(str(prop), PROPERTY_SCHEMA)
                if suggestion:
                    result.suggestions.append(f"Did you mean '{suggestion}' instead of '{prop}'?")
                continue
            if not self.is_valid_value(spec.kind, value):
                result.errors.append(f"Invalid value for {spec.name}: {value}")
                continue
            result.valid[spec.name] = value
        if result.errors:
            logger.debug("Rejected style entries: %s", result.errors)
        return result

    def is_valid_value(self, kind: ValueKind, value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return False
        text = str(value).strip()
        if not text or _FORBIDDEN.search(text):
            return False
        if text.lower() in GLOBAL_KEYWORDS:
            return True
        if isinstance(kind, ColorKind):
            return is_color(text)
        if isinstance(kind, LengthKind):
            return _is_length(text, allow_unitless=kind.allow_unitless)
        if isinstance(kind, CompositeKind):
            tokens = text.split()
            if not 1 <= len(tokens) <= kind.max_tokens:
                return False
            return all(_is_length(token, allow_unitless=True) for token in tokens)
        if isinstance(kind, EnumKind):
            return text.lower() in kind.values
        if isinstance(kind, NumberKind):
            return _is_number(text, kind)
        if isinstance(kind, FreeformKind):
            return True
        raise TypeError(f"Unhandled value kind: {kind!r}")

    @staticmethod
    def _parse(styles: dict[str, Any] | str) -> dict[str, Any]:
        if isinstance(styles, str):
            try:
                styles = json.loads(styles)
            except json.JSONDecodeError as exc:
                raise SerializationError(f"Style map is not valid JSON: {exc}") from exc
        if not isinstance(styles, dict):
            raise SerializationError("Style map must be a JSON object")
        return styles


def _is_length(text: str, allow_unitless: bool) -> bool:
    lowered = text.lower()
    if lowered in _LENGTH_KEYWORDS:
        return True
    if _LENGTH.match(text) or _MATH_FUNCTION.match(text):
        return True
    if _BARE_NUMBER.match(text):
        return allow_unitless or float(text) == 0
    return False


def _is_number(text: str, kind: NumberKind) -> bool:
    try:
        number = float(text)
    except ValueError:
        return False
    if not math.isfinite(number):
        return False
    if kind.integer and not number.is_integer():
        return False
    if kind.minimum is not None and number < kind.minimum:
        return False
    if kind.maximum is not None and number > kind.maximum:
        return False
    return True
