from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from restyle.core.exceptions import ErrorType


class MutationRequest(BaseModel):
    """Structured change request produced by the external interpreter."""

    action: str = ""
    styles: dict[str, Any] = Field(default_factory=dict)
    explanation: str = ""


@dataclass(frozen=True, slots=True)
class StyleSnapshot:
    inline: str = ""
    computed: dict[str, str] = field(default_factory=dict)

    @property
    def has_inline(self) -> bool:
        return bool(self.inline.strip())


@dataclass(frozen=True, slots=True)
class AppliedProperty:
    previous: str
    new: str


@dataclass(frozen=True, slots=True)
class FailedProperty:
    attempted: Any
    reason: str


@dataclass(slots=True)
class ApplyBreakdown:
    applied: dict[str, AppliedProperty] = field(default_factory=dict)
    failed: dict[str, FailedProperty] = field(default_factory=dict)

    @property
    def has_applied(self) -> bool:
        return bool(self.applied)


@dataclass(frozen=True, slots=True)
class AppliedChange:
    target: str
    command: str
    request: MutationRequest
    previous_state: StyleSnapshot
    breakdown: ApplyBreakdown
    timestamp: float


@dataclass(frozen=True, slots=True)
class UndoResult:
    success: bool
    message: str
    change: AppliedChange | None = None


@dataclass(slots=True)
class ElementDescription:
    selector: str
    tag: str
    element_id: str
    classes: list[str]
    text: str
    styles: dict[str, str]


@dataclass(frozen=True, slots=True)
class RetryContext:
    operation_type: str
    attempt: int
    config: Any


@dataclass(slots=True)
class RetryOutcome:
    success: bool
    attempts: int
    total_time: float
    result: Any = None
    error: BaseException | None = None
    message: str = ""


@dataclass(slots=True)
class ErrorContext:
    operation: str = "unknown"
    command: str = ""
    selectors: list[str] | None = None
    styles: dict[str, Any] = field(default_factory=dict)
    prompt: str = ""

    def as_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "command": self.command,
            "selectors": list(self.selectors) if self.selectors is not None else None,
            "styles": dict(self.styles),
            "prompt": self.prompt,
        }


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    timestamp: float
    message: str
    error_type: ErrorType
    context: dict[str, Any]


@dataclass(slots=True)
class RecoveryResult:
    success: bool
    user_message: str
    suggestions: list[str] = field(default_factory=list)
    new_targets: list[Any] = field(default_factory=list)
    corrected_selectors: list[str] = field(default_factory=list)
    corrected_styles: dict[str, Any] = field(default_factory=dict)
    cleaned_command: str = ""
    simplified_prompt: str = ""
    retry_after: float | None = None


@dataclass(slots=True)
class HandledError:
    success: bool
    user_message: str
    technical_message: str
    error_type: ErrorType
    can_retry: bool
    suggestions: list[str] = field(default_factory=list)
    recovery_attempted: bool = False
    attempt: int = 0
    recovery: RecoveryResult | None = None


@dataclass(frozen=True, slots=True)
class OperationEvent:
    phase: str
    operation_kind: str
    description: str
    target: str
    timestamp: float
    result: Any = None
    error: str | None = None


@dataclass(slots=True)
class CommandResult:
    success: bool
    message: str
    action: str = ""
    breakdowns: dict[str, ApplyBreakdown] = field(default_factory=dict)
    diagnostics: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    can_undo: bool = False
    error: HandledError | None = None
