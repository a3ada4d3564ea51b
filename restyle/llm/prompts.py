from __future__ import annotations

import json
from typing import Any

SYSTEM_PROMPT = """You translate a user's request for a visual change into CSS style mutations.
Return exactly one JSON object and nothing else:
{"action": "<short description>", "styles": {"<camelCaseProperty>": "<value>"}, "explanation": "<one sentence>"}
Rules:
1. Use camelCase CSS property names such as color, backgroundColor, fontSize, padding, borderRadius.
2. Give lengths with units ("16px", "1.5rem", "50%").
3. Only describe changes to the selected elements; never invent selectors.
4. Do not wrap the object in markdown or a code fence."""


def build_user_prompt(command: str, elements: list[dict[str, Any]]) -> str:
    """Formats a deterministic user payload for the model."""

    payload = {
        "command": command,
        "selected_elements": elements,
    }
    return json.dumps(payload, indent=2, sort_keys=True)
