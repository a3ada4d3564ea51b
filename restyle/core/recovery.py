from __future__ import annotations

import asyncio
import json
import logging
import re
import time
import traceback
from collections import Counter, deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from restyle.config.schema import RecoverySettings
from restyle.core.exceptions import ErrorType, RestyleError
from restyle.core.metadata import ErrorContext, ErrorRecord, HandledError, RecoveryResult
from restyle.core.resolver import TargetResolver
from restyle.styles.colors import is_color

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    pattern: str
    error_type: ErrorType
    user_message: str


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        r"cannot read propert|(element|target).*not.*found|could not find element|no such element|stale element",
        ErrorType.TARGET_NOT_FOUND,
        "The element you tried to change could not be found or no longer exists.",
    ),
    ClassificationRule(
        r"invalid.*selector",
        ErrorType.INVALID_SELECTOR,
        "The selector used to find the element is not valid.",
    ),
    ClassificationRule(
        r"network.*error|fetch.*failed|connection.*(refused|reset)",
        ErrorType.NETWORK_ERROR,
        "Connection problem. Check your internet connection and try again.",
    ),
    ClassificationRule(
        r"permission.*denied|not.*allowed|unauthori[sz]ed|forbidden",
        ErrorType.PERMISSION_ERROR,
        "I am not allowed to perform this action. Check the browser or API settings.",
    ),
    ClassificationRule(
        r"timeout|timed.*out",
        ErrorType.TIMEOUT_ERROR,
        "The operation took too long. Try again or simplify the command.",
    ),
    ClassificationRule(
        r"json.*(parse|decode)|unexpected.*token|expecting value",
        ErrorType.SERIALIZATION_ERROR,
        "Could not process the data. Please rephrase your command.",
    ),
    ClassificationRule(
        r"invalid css property|invalid value for",
        ErrorType.VALIDATION_ERROR,
        "The requested styles are not valid.",
    ),
)

DEFAULT_TYPES: tuple[tuple[type[BaseException], ErrorType], ...] = (
    (json.JSONDecodeError, ErrorType.SERIALIZATION_ERROR),
    (ValidationError, ErrorType.VALIDATION_ERROR),
    (PermissionError, ErrorType.PERMISSION_ERROR),
    (TimeoutError, ErrorType.TIMEOUT_ERROR),
    (ConnectionError, ErrorType.NETWORK_ERROR),
    (SyntaxError, ErrorType.SERIALIZATION_ERROR),
    (TypeError, ErrorType.TARGET_NOT_FOUND),
)

USER_MESSAGES: dict[ErrorType, str] = {
    ErrorType.TARGET_NOT_FOUND: "The element you tried to change could not be found.",
    ErrorType.INVALID_SELECTOR: "There was a problem locating the element on the page.",
    ErrorType.VALIDATION_ERROR: "The requested styles are not valid.",
    ErrorType.NETWORK_ERROR: "Connection problem. Check your internet connection.",
    ErrorType.PERMISSION_ERROR: "This action is not allowed.",
    ErrorType.EXECUTION_ERROR: "A script failed while changing the page.",
    ErrorType.GENERATIVE_SERVICE_ERROR: "The interpreter service could not handle the request.",
    ErrorType.TIMEOUT_ERROR: "The operation took too long to complete.",
    ErrorType.SERIALIZATION_ERROR: "Could not process the data provided.",
    ErrorType.UNKNOWN: "An unexpected error occurred.",
}

TYPE_SUGGESTIONS: dict[ErrorType, tuple[str, ...]] = {
    ErrorType.TARGET_NOT_FOUND: (
        "Select the element on the page again",
        "Check that the element still exists",
        "Reload the page if needed",
    ),
    ErrorType.INVALID_SELECTOR: ("Click the elements you want to change",),
    ErrorType.VALIDATION_ERROR: (
        'Use simple colors such as "blue" or "red"',
        'Give sizes with units, for example "16px" or "1em"',
    ),
    ErrorType.NETWORK_ERROR: (
        "Check your internet connection",
        "Wait a few seconds and try again",
    ),
    ErrorType.PERMISSION_ERROR: (
        "Check that the interpreter API key is valid",
        "Some pages block modifications; try a local or development page",
    ),
    ErrorType.EXECUTION_ERROR: ("Use a simpler command",),
    ErrorType.GENERATIVE_SERVICE_ERROR: ("Simpler, more descriptive commands tend to work better",),
    ErrorType.TIMEOUT_ERROR: (
        "Try a simpler command",
        "Select fewer elements",
    ),
    ErrorType.SERIALIZATION_ERROR: ("Rephrase the command without special characters",),
    ErrorType.UNKNOWN: ("Try the command again",),
}

COMMAND_STYLE_PATTERNS: tuple[tuple[str, str, str | None], ...] = (
    (r"(?<!background\s)(?<!background-)\b(?:cor|color|colour)\b((?:\s+#?[\w-]+){1,6})", "color", None),
    (r"\b(?:fundo|background)(?:[\s-]+colou?r)?\b((?:\s+#?[\w-]+){1,6})", "backgroundColor", None),
    (r"\b(?:fonte|font|text)\s+(?:maior|bigger|larger)\b|\bbigger\b", "fontSize", "1.2em"),
    (r"\b(?:fonte|font|text)\s+(?:menor|smaller)\b|\bsmaller\b", "fontSize", "0.9em"),
    (r"\b(?:azul|blue)\b", "color", "blue"),
    (r"\b(?:vermelho|red)\b", "color", "red"),
    (r"\b(?:verde|green)\b", "color", "green"),
)

_PROMPT_NOISE = re.compile(r"\b(high-quality|ultra-detailed|photorealistic|4k|hd)\b", re.IGNORECASE)

Strategy = Callable[[BaseException, ErrorContext, int], Awaitable[RecoveryResult]]


class ErrorHandler:
    """Classifies failures, runs mechanical recovery and phrases the outcome."""

    def __init__(
        self,
        resolver: TargetResolver | None = None,
        settings: RecoverySettings | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.resolver = resolver
        self.settings = settings or RecoverySettings()
        self.clock = clock
        self._sleep = sleep
        self.error_log: deque[ErrorRecord] = deque(maxlen=self.settings.error_log_size)
        self.retry_counters: dict[tuple[ErrorType, str], int] = {}
        self.strategies: dict[ErrorType, Strategy] = {
            ErrorType.TARGET_NOT_FOUND: self._recover_target_not_found,
            ErrorType.INVALID_SELECTOR: self._recover_invalid_selector,
            ErrorType.VALIDATION_ERROR: self._recover_validation,
            ErrorType.NETWORK_ERROR: self._recover_network,
            ErrorType.GENERATIVE_SERVICE_ERROR: self._recover_generative,
            ErrorType.SERIALIZATION_ERROR: self._recover_serialization,
            ErrorType.TIMEOUT_ERROR: self._report_timeout,
            ErrorType.EXECUTION_ERROR: self._report_execution,
        }

    def classify(self, error: BaseException) -> ErrorType:
        return self._classify(error)[0]

    async def handle(self, error: BaseException, context: ErrorContext | None = None) -> HandledError:
        context = context or ErrorContext()
        error_type, rule_message = self._classify(error)
        self._log(error, error_type, context)

        can_retry = self.should_attempt_recovery(error_type, context)
        handled = HandledError(
            success=False,
            user_message=rule_message or USER_MESSAGES[error_type],
            technical_message=str(error),
            error_type=error_type,
            can_retry=can_retry,
        )
        strategy_suggestions: list[str] = []
        if can_retry:
            key = (error_type, context.operation)
            attempt = self.retry_counters.get(key, 0) + 1
            self.retry_counters[key] = attempt
            logger.info(
                "Attempting recovery for %s (attempt %d/%d)",
                error_type.value,
                attempt,
                self.settings.max_recovery_attempts,
            )
            handled.recovery_attempted = True
            handled.attempt = attempt
            try:
                recovery = await self.strategies[error_type](error, context, attempt)
            except Exception as exc:
                logger.error("Recovery attempt failed: %s", exc)
                handled.user_message = f"Recovery attempt failed. {handled.user_message}"
            else:
                if recovery.success:
                    self.retry_counters.pop(key, None)
                handled.success = recovery.success
                handled.user_message = recovery.user_message
                handled.recovery = recovery
                strategy_suggestions = recovery.suggestions

        handled.suggestions = _unique([*strategy_suggestions, *self.suggestions(error_type, context)])
        self.check_error_patterns()
        return handled

    def should_attempt_recovery(self, error_type: ErrorType, context: ErrorContext) -> bool:
        if error_type is ErrorType.PERMISSION_ERROR:
            return False
        if self.retry_counters.get((error_type, context.operation), 0) >= self.settings.max_recovery_attempts:
            return False
        return error_type in self.strategies

    def suggestions(self, error_type: ErrorType, context: ErrorContext) -> list[str]:
        suggestions = list(TYPE_SUGGESTIONS.get(error_type, ()))
        if context.command and len(context.command.strip()) < 5:
            suggestions.append("Try a more descriptive command")
        if context.selectors is not None and not context.selectors:
            suggestions.append("Select at least one element on the page")
        return suggestions

    def check_error_patterns(self) -> list[str]:
        alerts: list[str] = []
        recent = list(self.error_log)[-10:]
        for message, count in Counter(record.message for record in recent).items():
            if count >= self.settings.same_error_threshold:
                alerts.append(f"Same error occurred {count} times: {message}")
        now = self.clock()
        in_window = [record for record in recent if now - record.timestamp < self.settings.burst_window_seconds]
        if len(in_window) >= self.settings.burst_threshold:
            alerts.append(f"{len(in_window)} errors in {self.settings.burst_window_seconds:.0f} seconds")
        for alert in alerts:
            logger.warning("Pattern alert: %s", alert)
        return alerts

    def stats(self) -> dict[str, Any]:
        by_type = Counter(record.error_type.value for record in self.error_log)
        most_common = by_type.most_common(1)
        return {
            "total": len(self.error_log),
            "by_type": dict(by_type),
            "most_common": most_common[0][0] if most_common else None,
        }

    def clear(self) -> None:
        self.error_log.clear()
        self.retry_counters.clear()

    def _classify(self, error: BaseException) -> tuple[ErrorType, str | None]:
        message = str(error).lower()
        summary = "".join(traceback.format_exception_only(error)).lower()
        for rule in CLASSIFICATION_RULES:
            if re.search(rule.pattern, message) or re.search(rule.pattern, summary):
                return rule.error_type, rule.user_message
        if isinstance(error, RestyleError) and error.error_type is not ErrorType.UNKNOWN:
            return error.error_type, None
        for exception_type, error_type in DEFAULT_TYPES:
            if isinstance(error, exception_type):
                return error_type, None
        return ErrorType.UNKNOWN, None

    def _log(self, error: BaseException, error_type: ErrorType, context: ErrorContext) -> ErrorRecord:
        record = ErrorRecord(
            timestamp=self.clock(),
            message=str(error),
            error_type=error_type,
            context=context.as_dict(),
        )
        self.error_log.append(record)
        logger.error("%s during %s: %s", error_type.value, context.operation, error)
        return record

    async def _recover_target_not_found(
        self, error: BaseException, context: ErrorContext, attempt: int
    ) -> RecoveryResult:
        if not context.selectors:
            return RecoveryResult(
                success=False,
                user_message="No element is selected. Select an element on the page first.",
                suggestions=["Click an element on the page to select it"],
            )
        targets: list[Any] = []
        if self.resolver is not None:
            for selector in context.selectors:
                for variation in selector_variations(selector):
                    found = self.resolver.resolve([variation])
                    if found:
                        targets.extend(
                            handle
                            for handle in found
                            if not any(self.resolver.document.same_node(handle, known) for known in targets)
                        )
                        break
        if targets:
            return RecoveryResult(
                success=True,
                user_message=f"Found {len(targets)} similar element(s) and applied the changes.",
                suggestions=["Check that the result is correct"],
                new_targets=targets,
            )
        return RecoveryResult(
            success=False,
            user_message=f"The element '{', '.join(context.selectors)}' was not found. It may have been removed or changed.",
            suggestions=["Select the element again"],
        )

    async def _recover_invalid_selector(
        self, error: BaseException, context: ErrorContext, attempt: int
    ) -> RecoveryResult:
        if not context.selectors:
            return RecoveryResult(
                success=False,
                user_message="Invalid selector. Try selecting the elements manually.",
                suggestions=["Click the elements you want to change"],
            )
        corrected = [correct_selector(selector) for selector in context.selectors]
        corrected = [selector for selector in corrected if selector]
        targets = self.resolver.resolve(corrected) if self.resolver is not None else []
        if targets:
            return RecoveryResult(
                success=True,
                user_message=f"Corrected the selectors and found {len(targets)} element(s).",
                new_targets=targets,
                corrected_selectors=corrected,
            )
        return RecoveryResult(
            success=False,
            user_message="Could not correct the selector. Select the elements manually.",
            suggestions=["Use simple selectors such as #id or .class"],
        )

    async def _recover_validation(self, error: BaseException, context: ErrorContext, attempt: int) -> RecoveryResult:
        styles = extract_styles_from_command(context.command)
        if styles:
            return RecoveryResult(
                success=True,
                user_message="Corrected the styles from your command.",
                suggestions=["Check that the result looks as expected"],
                corrected_styles=styles,
            )
        return RecoveryResult(
            success=False,
            user_message="Could not find valid styles in the command.",
            suggestions=['Use specific commands such as "make it blue" or "font bigger"'],
        )

    async def _recover_network(self, error: BaseException, context: ErrorContext, attempt: int) -> RecoveryResult:
        delay = await self._back_off(attempt)
        return RecoveryResult(
            success=False,
            user_message=f"Connection error (attempt {attempt}). Checking connectivity...",
            retry_after=delay,
        )

    async def _recover_generative(
        self, error: BaseException, context: ErrorContext, attempt: int
    ) -> RecoveryResult:
        delay = await self._back_off(attempt)
        simplified = simplify_prompt(context.prompt)
        if simplified and simplified != context.prompt:
            return RecoveryResult(
                success=False,
                user_message=f'Retrying with a simplified prompt: "{simplified}"',
                simplified_prompt=simplified,
                retry_after=delay,
            )
        return RecoveryResult(
            success=False,
            user_message="The interpreter service may be unavailable.",
            retry_after=delay,
        )

    async def _recover_serialization(
        self, error: BaseException, context: ErrorContext, attempt: int
    ) -> RecoveryResult:
        cleaned = " ".join(re.sub(r"[^\w\s\-.#]", " ", context.command or "").split())
        if cleaned and cleaned != context.command:
            return RecoveryResult(
                success=True,
                user_message="Removed special characters from the command.",
                suggestions=["Avoid special characters in commands"],
                cleaned_command=cleaned,
            )
        return RecoveryResult(
            success=False,
            user_message="Could not process the command. It contains invalid characters.",
            suggestions=["Use only letters, numbers and spaces"],
        )

    async def _report_timeout(self, error: BaseException, context: ErrorContext, attempt: int) -> RecoveryResult:
        return RecoveryResult(success=False, user_message="The operation took too long to complete.")

    async def _report_execution(self, error: BaseException, context: ErrorContext, attempt: int) -> RecoveryResult:
        return RecoveryResult(
            success=False,
            user_message="A script failed while changing the page.",
            suggestions=["Reload the page and try again"],
        )

    async def _back_off(self, attempt: int) -> float:
        delay = min(1.0 * attempt, 5.0)
        await self._sleep(delay)
        return delay


def selector_variations(selector: str) -> list[str]:
    """Looser forms of ``selector``: identifier only, first class, last class, bare tag."""

    variations: list[str] = []
    id_match = re.search(r"#([A-Za-z_][\w-]*)", selector)
    if id_match:
        variations.append(f"#{id_match.group(1)}")
    classes = re.findall(r"\.([A-Za-z_][\w-]*)", selector)
    if classes:
        variations.append(f".{classes[0]}")
        variations.append(f".{classes[-1]}")
    tag_match = re.match(r"^([a-zA-Z][a-zA-Z0-9]*)(?=[.#\s>:\[]|$)", selector.strip())
    if tag_match:
        variations.append(tag_match.group(1))
    return [variation for variation in _unique(variations) if variation != selector]


def correct_selector(selector: str) -> str:
    corrected = re.sub(r"\.{2,}", ".", selector)
    corrected = re.sub(r"#{2,}", "#", corrected)
    corrected = re.sub(r"\s*>(?:\s*>)+\s*", " > ", corrected)
    corrected = re.sub(r"\s*,(?:\s*,)+\s*", ", ", corrected)
    return " ".join(corrected.split())


def extract_styles_from_command(command: str) -> dict[str, str]:
    styles: dict[str, str] = {}
    for pattern, prop, value in COMMAND_STYLE_PATTERNS:
        match = re.search(pattern, command or "", re.IGNORECASE)
        if not match:
            continue
        if value is None:
            color = next((word for word in match.group(1).lower().split() if is_color(word)), None)
            if color:
                styles[prop] = color
        elif prop == "color" and "backgroundColor" in styles:
            continue
        else:
            styles.setdefault(prop, value)
    return styles


def simplify_prompt(prompt: str) -> str:
    if not prompt:
        return prompt
    return " ".join(_PROMPT_NOISE.sub("", prompt).split())[:50]


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))
