"""Allow-list of mutable style properties and the value kind of each one.

Property names are stored in camelCase. Every entry is tagged with one value
kind; the validator and normalizer dispatch on the kind class and handle each
kind explicitly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

GLOBAL_KEYWORDS = frozenset({"inherit", "initial", "unset", "revert"})


@dataclass(frozen=True, slots=True)
class ColorKind:
    pass


@dataclass(frozen=True, slots=True)
class LengthKind:
    default_unit: str | None = "px"
    allow_unitless: bool = True


@dataclass(frozen=True, slots=True)
class EnumKind:
    values: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class NumberKind:
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False


@dataclass(frozen=True, slots=True)
class CompositeKind:
    max_tokens: int = 4
    default_unit: str = "px"


@dataclass(frozen=True, slots=True)
class FreeformKind:
    pass


ValueKind = Union[ColorKind, LengthKind, EnumKind, NumberKind, CompositeKind, FreeformKind]


@dataclass(frozen=True, slots=True)
class PropertySpec:
    name: str
    kind: ValueKind
    category: str

    @property
    def css_name(self) -> str:
        return to_kebab(self.name)


COLOR = ColorKind()
LENGTH = LengthKind()
FREEFORM = FreeformKind()
COMPOSITE = CompositeKind()

_OVERFLOW = EnumKind(("visible", "hidden", "scroll", "auto", "clip"))
_ALIGN = EnumKind(
    ("flex-start", "flex-end", "start", "end", "center", "stretch", "baseline", "normal")
)
_DISTRIBUTE = EnumKind(
    (
        "flex-start",
        "flex-end",
        "start",
        "end",
        "center",
        "space-between",
        "space-around",
        "space-evenly",
        "stretch",
        "normal",
    )
)


def _entries() -> list[PropertySpec]:
    layout = {
        "display": EnumKind(
            (
                "block",
                "inline",
                "inline-block",
                "flex",
                "inline-flex",
                "grid",
                "inline-grid",
                "none",
                "contents",
                "table",
            )
        ),
        "position": EnumKind(("static", "relative", "absolute", "fixed", "sticky")),
        "top": LENGTH,
        "right": LENGTH,
        "bottom": LENGTH,
        "left": LENGTH,
        "zIndex": NumberKind(integer=True),
        "overflow": _OVERFLOW,
        "overflowX": _OVERFLOW,
        "overflowY": _OVERFLOW,
        "visibility": EnumKind(("visible", "hidden", "collapse")),
        "boxSizing": EnumKind(("content-box", "border-box")),
        "float": EnumKind(("none", "left", "right")),
        "clear": EnumKind(("none", "left", "right", "both")),
    }
    box_model = {
        "width": LENGTH,
        "height": LENGTH,
        "minWidth": LENGTH,
        "minHeight": LENGTH,
        "maxWidth": LENGTH,
        "maxHeight": LENGTH,
        "margin": COMPOSITE,
        "marginTop": LENGTH,
        "marginRight": LENGTH,
        "marginBottom": LENGTH,
        "marginLeft": LENGTH,
        "padding": COMPOSITE,
        "paddingTop": LENGTH,
        "paddingRight": LENGTH,
        "paddingBottom": LENGTH,
        "paddingLeft": LENGTH,
    }
    typography = {
        "fontFamily": FREEFORM,
        "fontSize": LENGTH,
        "fontWeight": EnumKind(
            ("normal", "bold", "lighter", "bolder", "100", "200", "300", "400", "500", "600", "700", "800", "900")
        ),
        "fontStyle": EnumKind(("normal", "italic", "oblique")),
        "lineHeight": LengthKind(default_unit=None),
        "letterSpacing": LENGTH,
        "wordSpacing": LENGTH,
        "textAlign": EnumKind(("left", "right", "center", "justify", "start", "end")),
        "textDecoration": FREEFORM,
        "textTransform": EnumKind(("none", "uppercase", "lowercase", "capitalize")),
        "textIndent": LENGTH,
        "textShadow": FREEFORM,
        "textOverflow": EnumKind(("clip", "ellipsis")),
        "whiteSpace": EnumKind(("normal", "nowrap", "pre", "pre-wrap", "pre-line", "break-spaces")),
    }
    color = {
        "color": COLOR,
        "backgroundColor": COLOR,
        "background": FREEFORM,
        "backgroundImage": FREEFORM,
        "backgroundSize": FREEFORM,
        "backgroundPosition": FREEFORM,
        "backgroundRepeat": EnumKind(("repeat", "repeat-x", "repeat-y", "no-repeat", "space", "round")),
        "opacity": NumberKind(minimum=0.0, maximum=1.0),
    }
    border = {
        "border": FREEFORM,
        "borderTop": FREEFORM,
        "borderRight": FREEFORM,
        "borderBottom": FREEFORM,
        "borderLeft": FREEFORM,
        "borderColor": COLOR,
        "borderWidth": COMPOSITE,
        "borderStyle": EnumKind(
            ("none", "hidden", "solid", "dashed", "dotted", "double", "groove", "ridge", "inset", "outset")
        ),
        "borderRadius": COMPOSITE,
        "outline": FREEFORM,
        "outlineColor": COLOR,
        "boxShadow": FREEFORM,
    }
    flex_grid = {
        "flexDirection": EnumKind(("row", "row-reverse", "column", "column-reverse")),
        "flexWrap": EnumKind(("nowrap", "wrap", "wrap-reverse")),
        "justifyContent": _DISTRIBUTE,
        "alignItems": _ALIGN,
        "alignContent": _DISTRIBUTE,
        "alignSelf": EnumKind(_ALIGN.values + ("auto",)),
        "flex": FREEFORM,
        "flexGrow": NumberKind(minimum=0.0),
        "flexShrink": NumberKind(minimum=0.0),
        "flexBasis": LENGTH,
        "order": NumberKind(integer=True),
        "gap": LENGTH,
        "rowGap": LENGTH,
        "columnGap": LENGTH,
        "gridTemplateColumns": FREEFORM,
        "gridTemplateRows": FREEFORM,
        "gridColumn": FREEFORM,
        "gridRow": FREEFORM,
        "gridArea": FREEFORM,
    }
    effects = {
        "transform": FREEFORM,
        "transformOrigin": FREEFORM,
        "transition": FREEFORM,
        "animation": FREEFORM,
        "filter": FREEFORM,
    }
    interaction = {
        "cursor": EnumKind(
            ("auto", "default", "pointer", "text", "move", "help", "wait", "crosshair", "not-allowed", "grab")
        ),
        "pointerEvents": EnumKind(("auto", "none")),
        "userSelect": EnumKind(("auto", "none", "text", "all")),
    }
    groups = {
        "layout": layout,
        "box-model": box_model,
        "typography": typography,
        "color": color,
        "border": border,
        "flex-grid": flex_grid,
        "effects": effects,
        "interaction": interaction,
    }
    return [
        PropertySpec(name=name, kind=kind, category=category)
        for category, group in groups.items()
        for name, kind in group.items()
    ]


PROPERTY_SCHEMA: dict[str, PropertySpec] = {spec.name: spec for spec in _entries()}
_COMPACT_INDEX = {name.lower(): name for name in PROPERTY_SCHEMA}


def to_kebab(name: str) -> str:
    return re.sub(r"(?<!^)([A-Z])", r"-\1", name).lower()


def to_camel(name: str) -> str:
    return re.sub(r"-([a-z])", lambda match: match.group(1).upper(), name.strip().lower())


def canonical_name(name: str) -> str | None:
    """Returns the schema spelling of ``name`` or ``None`` when it is not allowed."""

    if not isinstance(name, str):
        return None
    if name in PROPERTY_SCHEMA:
        return name
    camel = to_camel(name)
    if camel in PROPERTY_SCHEMA:
        return camel
    return _COMPACT_INDEX.get(name.replace("-", "").lower())


def lookup(name: str) -> PropertySpec | None:
    canonical = canonical_name(name)
    return PROPERTY_SCHEMA.get(canonical) if canonical else None
