from __future__ import annotations

import re

CSS_NAMED_COLORS = frozenset(
    """
    aliceblue antiquewhite aqua aquamarine azure beige bisque black blanchedalmond blue
    blueviolet brown burlywood cadetblue chartreuse chocolate coral cornflowerblue cornsilk
    crimson cyan darkblue darkcyan darkgoldenrod darkgray darkgreen darkgrey darkkhaki
    darkmagenta darkolivegreen darkorange darkorchid darkred darksalmon darkseagreen
    darkslateblue darkslategray darkslategrey darkturquoise darkviolet deeppink deepskyblue
    dimgray dimgrey dodgerblue firebrick floralwhite forestgreen fuchsia gainsboro ghostwhite
    gold goldenrod gray green greenyellow grey honeydew hotpink indianred indigo ivory khaki
    lavender lavenderblush lawngreen lemonchiffon lightblue lightcoral lightcyan
    lightgoldenrodyellow lightgray lightgreen lightgrey lightpink lightsalmon lightseagreen
    lightskyblue lightslategray lightslategrey lightsteelblue lightyellow lime limegreen linen
    magenta maroon mediumaquamarine mediumblue mediumorchid mediumpurple mediumseagreen
    mediumslateblue mediumspringgreen mediumturquoise mediumvioletred midnightblue mintcream
    mistyrose moccasin navajowhite navy oldlace olive olivedrab orange orangered orchid
    palegoldenrod palegreen paleturquoise palevioletred papayawhip peachpuff peru pink plum
    powderblue purple rebeccapurple red rosybrown royalblue saddlebrown salmon sandybrown
    seagreen seashell sienna silver skyblue slateblue slategray slategrey snow springgreen
    steelblue tan teal thistle tomato turquoise violet wheat white whitesmoke yellow
    yellowgreen transparent currentcolor
    """.split()
)

# Localized color words the interpreter is known to pass through untranslated.
LOCALIZED_COLORS = {
    "azul": "#3b82f6",
    "vermelho": "#ef4444",
    "verde": "#10b981",
    "amarelo": "#f59e0b",
    "roxo": "#8b5cf6",
    "rosa": "#ec4899",
    "cinza": "#6b7280",
    "preto": "#000000",
    "branco": "#ffffff",
    "laranja": "#f97316",
}

_HEX = re.compile(r"^#(?:[0-9a-f]{3}|[0-9a-f]{4}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)
_NUMBER = r"-?\d*\.?\d+"
_RGB = re.compile(
    rf"^rgba?\(\s*{_NUMBER}%?\s*,\s*{_NUMBER}%?\s*,\s*{_NUMBER}%?\s*(?:,\s*{_NUMBER}%?\s*)?\)$",
    re.IGNORECASE,
)
_HSL = re.compile(
    rf"^hsla?\(\s*{_NUMBER}(?:deg)?\s*,\s*{_NUMBER}%\s*,\s*{_NUMBER}%\s*(?:,\s*{_NUMBER}%?\s*)?\)$",
    re.IGNORECASE,
)


def canonical_color(value: str) -> str:
    lowered = value.strip().lower()
    return LOCALIZED_COLORS.get(lowered, lowered)


def is_color(value: str) -> bool:
    candidate = value.strip()
    lowered = candidate.lower()
    if lowered in CSS_NAMED_COLORS or lowered in LOCALIZED_COLORS:
        return True
    return bool(_HEX.match(candidate) or _RGB.match(candidate) or _HSL.match(candidate))
