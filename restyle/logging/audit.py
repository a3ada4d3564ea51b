from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from restyle.core.metadata import AppliedChange, ErrorContext, HandledError


class ChangeAuditLogger:
    """Persists applied changes and handled errors as JSON lines."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.applied_changes_path = self.root / "applied_changes.jsonl"
        self.errors_path = self.root / "errors.jsonl"

    def write_change(self, change: AppliedChange) -> None:
        payload = {
            "timestamp": _isoformat(change.timestamp),
            "target": change.target,
            "command": change.command,
            "action": change.request.action,
            "requested_styles": change.request.styles,
            "applied": {
                prop: {"previous": applied.previous, "new": applied.new}
                for prop, applied in change.breakdown.applied.items()
            },
            "failed": {
                prop: {"attempted": failed.attempted, "reason": failed.reason}
                for prop, failed in change.breakdown.failed.items()
            },
            "previous_inline": change.previous_state.inline,
        }
        self._append(self.applied_changes_path, payload)

    def write_error(self, handled: HandledError, context: ErrorContext, timestamp: float) -> None:
        payload = {
            "timestamp": _isoformat(timestamp),
            "error_type": handled.error_type.value,
            "technical_message": handled.technical_message,
            "user_message": handled.user_message,
            "recovery_attempted": handled.recovery_attempted,
            "recovered": handled.success,
            "context": context.as_dict(),
        }
        self._append(self.errors_path, payload)

    def read_changes(self) -> list[dict[str, Any]]:
        if not self.applied_changes_path.exists():
            return []
        with self.applied_changes_path.open("r", encoding="utf-8") as handle:
            return [json.loads(line) for line in handle if line.strip()]

    @staticmethod
    def _append(path: Path, payload: dict[str, Any]) -> None:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, default=str) + "\n")


def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, UTC).isoformat()
