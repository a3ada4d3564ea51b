from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable

from restyle.config.schema import EngineConfig
from restyle.core.applier import MutationApplier
from restyle.core.document import DocumentTree
from restyle.core.events import EventBus
from restyle.core.exceptions import (
    RestyleError,
    SerializationError,
    StyleValidationError,
    TargetNotFoundError,
)
from restyle.core.history import HistoryManager
from restyle.core.metadata import (
    AppliedChange,
    ApplyBreakdown,
    CommandResult,
    ErrorContext,
    HandledError,
    MutationRequest,
    OperationEvent,
)
from restyle.core.recovery import ErrorHandler
from restyle.core.resolver import ResolverRegistry, TargetResolver
from restyle.core.retry import RetryOrchestrator
from restyle.llm.client import InterpreterClient
from restyle.llm.parser import parse_mutation_response
from restyle.logging.artifacts import ArtifactManager
from restyle.logging.audit import ChangeAuditLogger
from restyle.styles.normalizer import StyleNormalizer
from restyle.styles.validator import StyleValidator, ValidationResult
from restyle.utils.dom_extract import build_element_payload, describe_element

logger = logging.getLogger(__name__)

UNDO_COMMAND = "undo"
OPERATION_KIND = "style-mutation"


class CommandFailed(Exception):
    """Carries an already-handled failure out of a pipeline stage."""

    def __init__(self, handled: HandledError, diagnostics: list[str] | None = None) -> None:
        super().__init__(handled.user_message)
        self.handled = handled
        self.diagnostics = list(diagnostics or [])


class CommandPipeline:
    """Runs one natural-language command at a time against the live document."""

    def __init__(
        self,
        document: DocumentTree,
        interpreter: InterpreterClient,
        config: EngineConfig | None = None,
        *,
        registry: ResolverRegistry | None = None,
        resolver: TargetResolver | None = None,
        retry: RetryOrchestrator | None = None,
        error_handler: ErrorHandler | None = None,
        events: EventBus | None = None,
        audit_logger: ChangeAuditLogger | None = None,
        artifacts: ArtifactManager | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or EngineConfig()
        self.document = document
        self.interpreter = interpreter
        self.registry = registry or ResolverRegistry()
        self.resolver = resolver or TargetResolver(document, self.config.selection)
        self.registry.activate(self.resolver)
        self.normalizer = StyleNormalizer(self.config.normalization.default_length_unit)
        self.validator = StyleValidator()
        self.applier = MutationApplier(document)
        self.history = HistoryManager(
            self.resolver,
            limit=self.config.history.limit,
            destructive_undo=self.config.history.destructive_undo,
        )
        self.retry = retry or RetryOrchestrator(self.config.retry)
        self.errors = error_handler or ErrorHandler(self.resolver, self.config.recovery)
        self.events = events or EventBus()
        self.artifacts = artifacts
        if audit_logger is None and artifacts is not None:
            audit_logger = artifacts.audit_logger()
        self.audit_logger = audit_logger
        self.clock = clock
        self._lock = asyncio.Lock()

    async def process(self, command: str) -> CommandResult:
        async with self._lock:
            text = (command or "").strip()
            if text.lower() == UNDO_COMMAND:
                return self._undo()
            try:
                return await self._process(text)
            finally:
                self.resolver.clear()

    async def undo(self) -> CommandResult:
        async with self._lock:
            return self._undo()

    def export_changelog(self) -> str:
        return self.history.export_changelog()

    def save_changelog(self) -> Path:
        if self.artifacts is None:
            self.artifacts = ArtifactManager(self.config.artifacts_root)
        return self.artifacts.write_changelog(self.export_changelog())

    async def _process(self, command: str) -> CommandResult:
        selection = self.resolver.selection
        if not selection:
            return CommandResult(
                success=False,
                message="Select an element on the page first.",
                suggestions=["Click an element on the page to select it"],
            )

        context = ErrorContext(operation="interpret", command=command)
        try:
            selectors = [self.resolver.generate_selector(handle) for handle in selection]
            context.selectors = selectors
            self._emit("started", command, selectors)
            payload = build_element_payload(
                [describe_element(self.document, handle, selector) for handle, selector in zip(selection, selectors)]
            )
            request = await self._interpret(command, payload, context)
            validation = await self._validate(request, context)
            targets = await self._resolve_targets(selectors, context)
        except CommandFailed as failure:
            return self._failed(command, context, failure.handled, failure.diagnostics)
        except RestyleError as exc:
            handled = await self._handle(exc, context)
            return self._failed(command, context, handled)

        result = self._apply(command, request, validation, targets)
        phase = "succeeded" if result.success else "failed"
        self._emit(phase, command, context.selectors or [], result=result.message)
        return result

    async def _interpret(self, command: str, payload: list[dict[str, Any]], context: ErrorContext) -> MutationRequest:
        text = command
        while True:
            context.prompt = text
            outcome = await self.retry.execute_with_retry(
                lambda retry_context: self.interpreter.interpret(text, payload),
                "network",
                {"command": text},
            )
            if not outcome.success:
                raise CommandFailed(await self._handle(outcome.error, context))
            try:
                return parse_mutation_response(outcome.result)
            except SerializationError as exc:
                context.operation = "parse"
                handled = await self._handle(exc, context)
                recovery = handled.recovery
                if handled.success and recovery and recovery.cleaned_command and text == command:
                    # one more round trip with the cleaned command
                    text = recovery.cleaned_command
                    continue
                raise CommandFailed(handled) from exc

    async def _validate(self, request: MutationRequest, context: ErrorContext) -> ValidationResult:
        context.operation = "validate"
        context.styles = dict(request.styles)
        validation = self.validator.validate(self.normalizer.normalize(request.styles))
        if validation.valid:
            return validation

        error = StyleValidationError("No valid styles in the mutation request", validation.errors)
        handled = await self._handle(error, context)
        recovery = handled.recovery
        if handled.success and recovery and recovery.corrected_styles:
            corrected = self.validator.validate(self.normalizer.normalize(recovery.corrected_styles))
            if corrected.valid:
                corrected.errors = [*validation.errors, *corrected.errors]
                corrected.suggestions = [*validation.suggestions, *corrected.suggestions]
                return corrected
        raise CommandFailed(handled, validation.errors + validation.suggestions)

    async def _resolve_targets(self, selectors: list[str], context: ErrorContext) -> list[tuple[Any, str]]:
        context.operation = "resolve"
        targets = self.resolver.resolve(selectors)
        if not targets:
            handled = await self._handle(TargetNotFoundError(f"Target not found: {', '.join(selectors)}"), context)
            if not (handled.success and handled.recovery and handled.recovery.new_targets):
                raise CommandFailed(handled)
            targets = handled.recovery.new_targets
        return [(handle, self.resolver.generate_selector(handle)) for handle in targets]

    def _apply(
        self,
        command: str,
        request: MutationRequest,
        validation: ValidationResult,
        targets: list[tuple[Any, str]],
    ) -> CommandResult:
        breakdowns: dict[str, ApplyBreakdown] = {}
        diagnostics = list(validation.errors)
        for handle, selector in targets:
            snapshot = self.applier.capture_state(handle)
            breakdown = self.applier.apply(handle, validation.valid)
            breakdowns[selector] = breakdown
            for prop, failed in breakdown.failed.items():
                diagnostics.append(f"{selector}: {prop} not applied ({failed.reason})")
            if not breakdown.has_applied:
                continue
            change = AppliedChange(
                target=selector,
                command=command,
                request=request,
                previous_state=snapshot,
                breakdown=breakdown,
                timestamp=self.clock(),
            )
            self.history.record(change)
            if self.audit_logger is not None:
                self.audit_logger.write_change(change)

        applied = any(breakdown.has_applied for breakdown in breakdowns.values())
        if applied:
            message = request.explanation or request.action or "Styles applied."
        else:
            message = "No changes could be applied."
        logger.info("Command %r finished: %s", command, message)
        return CommandResult(
            success=applied,
            message=message,
            action=request.action,
            breakdowns=breakdowns,
            diagnostics=diagnostics,
            suggestions=list(validation.suggestions),
            can_undo=len(self.history) > 0,
        )

    def _undo(self) -> CommandResult:
        undo = self.history.undo()
        target = undo.change.target if undo.change else ""
        self._emit("started", UNDO_COMMAND, [target] if target else [], operation_kind="undo")
        self._emit(
            "succeeded" if undo.success else "failed",
            UNDO_COMMAND,
            [target] if target else [],
            operation_kind="undo",
            result=undo.message if undo.success else None,
            error=None if undo.success else undo.message,
        )
        return CommandResult(
            success=undo.success,
            message=undo.message,
            action=UNDO_COMMAND,
            can_undo=len(self.history) > 0,
        )

    async def _handle(self, error: BaseException, context: ErrorContext) -> HandledError:
        handled = await self.errors.handle(error, context)
        if self.audit_logger is not None:
            self.audit_logger.write_error(handled, context, self.clock())
        return handled

    def _failed(
        self,
        command: str,
        context: ErrorContext,
        handled: HandledError,
        diagnostics: list[str] | None = None,
    ) -> CommandResult:
        self._emit("failed", command, context.selectors or [], error=handled.user_message)
        return CommandResult(
            success=False,
            message=handled.user_message,
            diagnostics=list(diagnostics or []),
            suggestions=list(handled.suggestions),
            can_undo=len(self.history) > 0,
            error=handled,
        )

    def _emit(
        self,
        phase: str,
        description: str,
        selectors: list[str],
        operation_kind: str = OPERATION_KIND,
        result: Any = None,
        error: str | None = None,
    ) -> None:
        self.events.emit(
            OperationEvent(
                phase=phase,
                operation_kind=operation_kind,
                description=description,
                target=", ".join(selectors),
                timestamp=self.clock(),
                result=result,
                error=error,
            )
        )
