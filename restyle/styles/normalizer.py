from __future__ import annotations

import re
from typing import Any

from restyle.styles.colors import canonical_color
from restyle.styles.schema import (
    ColorKind,
    CompositeKind,
    EnumKind,
    FreeformKind,
    LengthKind,
    NumberKind,
    lookup,
)

_BARE_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?$")


class StyleNormalizer:
    """Canonicalizes property names and coerces values before validation."""

    def __init__(self, default_length_unit: str = "px") -> None:
        self.default_length_unit = default_length_unit

    def normalize(self, styles: dict[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for prop, value in styles.items():
            spec = lookup(prop)
            if spec is None:
                # Left for the validator to reject and report.
                normalized[prop] = value
                continue
            normalized[spec.name] = self.normalize_value(spec.kind, value)
        return normalized

    def normalize_value(self, kind, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            return value
        text = _format_number(value) if not isinstance(value, str) else value.strip()
        if isinstance(kind, ColorKind):
            return canonical_color(text)
        if isinstance(kind, LengthKind):
            unit = kind.default_unit and self._unit_for(kind.default_unit)
            if unit and _BARE_NUMBER.match(text) and text not in ("0", "-0"):
                return f"{text}{unit}"
            return text
        if isinstance(kind, CompositeKind):
            if _BARE_NUMBER.match(text) and text not in ("0", "-0"):
                return f"{text}{self._unit_for(kind.default_unit)}"
            return text
        if isinstance(kind, EnumKind):
            return text.lower()
        if isinstance(kind, (NumberKind, FreeformKind)):
            return text
        raise TypeError(f"Unhandled value kind: {kind!r}")

    def _unit_for(self, schema_unit: str) -> str:
        return self.default_length_unit if schema_unit == "px" else schema_unit


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
