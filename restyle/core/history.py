from __future__ import annotations

import logging
from collections import deque
from datetime import UTC, datetime

from restyle.core.exceptions import RestyleError
from restyle.core.metadata import AppliedChange, UndoResult
from restyle.core.resolver import TargetResolver

logger = logging.getLogger(__name__)


class HistoryManager:
    """Bounded log of applied changes with single-step undo.

    Undo re-resolves the recorded selector path instead of holding on to live
    handles, so it keeps working after the tree has been re-rendered. By default
    an entry whose target cannot be found stays in the log (peek-then-pop);
    ``destructive_undo`` drops it anyway.
    """

    def __init__(self, resolver: TargetResolver, limit: int = 50, destructive_undo: bool = False) -> None:
        self.resolver = resolver
        self.limit = limit
        self.destructive_undo = destructive_undo
        self._entries: deque[AppliedChange] = deque(maxlen=limit)

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, change: AppliedChange) -> None:
        self._entries.append(change)

    def undo(self) -> UndoResult:
        if not self._entries:
            return UndoResult(success=False, message="Nothing to undo")
        change = self._entries[-1]
        targets = self.resolver.resolve([change.target])
        if not targets:
            return self._undo_failed(change, f"Could not find element '{change.target}' to undo")
        if len(targets) > 1:
            logger.warning("Selector %s matched %d elements; restoring only the first", change.target, len(targets))
        try:
            self.resolver.document.set_style_text(targets[0], change.previous_state.inline)
        except RestyleError as exc:
            return self._undo_failed(change, f"Could not restore '{change.target}': {exc}")
        self._entries.pop()
        logger.info("Undid change on %s", change.target)
        return UndoResult(success=True, message=f"Undid change on {change.target}", change=change)

    def list(self) -> list[AppliedChange]:
        return [*self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def export_changelog(self) -> str:
        if not self._entries:
            return "No changes recorded."
        lines = [f"Changelog ({len(self._entries)} changes)", ""]
        for index, change in enumerate(self._entries, start=1):
            stamp = datetime.fromtimestamp(change.timestamp, UTC).isoformat(timespec="seconds")
            lines.append(f"{index}. {change.target} [{stamp}]")
            lines.append(f"   command: {change.command}")
            for prop, applied in change.breakdown.applied.items():
                previous = applied.previous or "(unset)"
                lines.append(f"   {prop}: {previous} -> {applied.new}")
            for prop, failed in change.breakdown.failed.items():
                lines.append(f"   {prop}: not applied ({failed.reason})")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"

    def _undo_failed(self, change: AppliedChange, message: str) -> UndoResult:
        logger.warning(message)
        if self.destructive_undo:
            self._entries.pop()
        return UndoResult(success=False, message=message, change=change)
