from __future__ import annotations

import shutil
from datetime import UTC, datetime
from pathlib import Path

from restyle.logging.audit import ChangeAuditLogger


class ArtifactManager:
    """Owns the on-disk layout for exported changelogs and audit logs."""

    def __init__(self, root: str | Path = "artifacts") -> None:
        self.root = Path(root)
        self.changelog_root = self.root / "changelogs"
        self.audit_root = self.root / "audit"
        self.ensure()

    def ensure(self) -> Path:
        for directory in (self.root, self.changelog_root, self.audit_root):
            directory.mkdir(parents=True, exist_ok=True)
        return self.root

    @staticmethod
    def stamp(moment: datetime | None = None) -> str:
        return (moment or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")

    def write_changelog(self, text: str, stamp: str | None = None) -> Path:
        """Writes ``text`` under a timestamped name; same-second exports get a numeric suffix."""
        base = f"{stamp or self.stamp()}_changelog"
        path = self.changelog_root / f"{base}.txt"
        suffix = 2
        while path.exists():
            path = self.changelog_root / f"{base}-{suffix}.txt"
            suffix += 1
        path.write_text(text, encoding="utf-8")
        return path

    def changelogs(self) -> list[Path]:
        return sorted(self.changelog_root.glob("*_changelog*.txt"))

    def audit_logger(self) -> ChangeAuditLogger:
        return ChangeAuditLogger(self.audit_root)

    def reset(self) -> Path:
        self.ensure()
        for child in self.root.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            elif child.name != ".gitkeep":
                child.unlink()
        return self.ensure()
