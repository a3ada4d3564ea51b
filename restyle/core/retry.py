from __future__ import annotations

import asyncio
import logging
import random
import re
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from restyle.config.schema import RetryPolicy, RetrySettings
from restyle.core.exceptions import NetworkError, OperationTimeoutError, PermissionDeniedError
from restyle.core.metadata import RetryContext, RetryOutcome
from restyle.utils.wait import run_with_timeout

logger = logging.getLogger(__name__)

RETRYABLE_PATTERNS: dict[str, tuple[str, ...]] = {
    "network": (
        r"timeout|timed out",
        r"network error",
        r"failed to fetch",
        r"connection.*(reset|refused|closed)",
        r"temporary.*failure",
        r"service.*unavailable",
        r"\b(408|429|502|503|504)\b",
    ),
    "structural-mutation": (
        r"element.*not.*found",
        r"cannot.*read.*property",
        r"node.*not.*attached",
        r"element.*stale",
        r"detached",
    ),
    "validation": (
        r"computation.*failed",
        r"style.*not.*applied",
        r"not.*a.*function",
        r"temporary.*error",
        r"loading.*error",
    ),
    "generative": (
        r"timeout|timed out",
        r"network error",
        r"service.*unavailable",
        r"rate.*limit",
        r"temporary.*error",
        r"server.*error",
        r"\b(429|502|503|504)\b",
    ),
    "execution": (
        r"timing.*error",
        r"resource.*loading",
        r"temporary",
    ),
}

NON_RETRYABLE_PATTERNS: tuple[str, ...] = (
    r"permission|unauthori[sz]ed|forbidden",
    r"invalid css property",
    r"invalid value for",
    r"maximum recursion depth",
)

BASE_TIMEOUT_FALLBACK = 5.0


@dataclass(slots=True)
class SuccessCounter:
    successes: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class OperationRecord:
    operation_type: str
    started_at: float
    duration: float
    success: bool


class RetryState:
    """Success counters, completed-operation log and environment estimate."""

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        monitoring_interval: float = 60.0,
        history_window: float = 300.0,
    ) -> None:
        self.clock = clock
        self.monitoring_interval = monitoring_interval
        self.history_window = history_window
        self.counters: dict[str, SuccessCounter] = {}
        self.operations: deque[OperationRecord] = deque()
        self.network_latency = "normal"
        self.error_rate = "normal"
        self._last_refresh: float | None = None

    def record(self, operation_type: str, success: bool, started_at: float, finished_at: float) -> None:
        counter = self.counters.setdefault(operation_type, SuccessCounter())
        counter.total += 1
        if success:
            counter.successes += 1
        if counter.total > 100:
            counter.successes = round(counter.successes * 0.9)
            counter.total = round(counter.total * 0.9)
        self.operations.append(
            OperationRecord(operation_type, started_at, max(finished_at - started_at, 0.0), success)
        )

    def success_rate(self, operation_type: str) -> float:
        counter = self.counters.get(operation_type)
        if counter is None or counter.total == 0:
            return 0.5
        return counter.successes / counter.total

    def environment(self) -> dict[str, str]:
        self.refresh()
        return {"network_latency": self.network_latency, "error_rate": self.error_rate}

    def refresh(self, force: bool = False) -> None:
        now = self.clock()
        if not force and self._last_refresh is not None and now - self._last_refresh < self.monitoring_interval:
            return
        self._last_refresh = now
        cutoff = now - self.history_window
        while self.operations and self.operations[0].started_at < cutoff:
            self.operations.popleft()

        network = [record.duration for record in self.operations if record.operation_type == "network"]
        average = sum(network) / len(network) if network else 0.0
        if average > 10:
            self.network_latency = "very_slow"
        elif average > 5:
            self.network_latency = "slow"
        else:
            self.network_latency = "normal"

        failures = sum(1 for record in self.operations if not record.success)
        ratio = failures / len(self.operations) if self.operations else 0.0
        if ratio > 0.5:
            self.error_rate = "high"
        elif ratio > 0.2:
            self.error_rate = "elevated"
        else:
            self.error_rate = "normal"

    def recent_count(self) -> int:
        cutoff = self.clock() - self.history_window
        return sum(1 for record in self.operations if record.started_at >= cutoff)

    def reset(self) -> None:
        self.counters.clear()
        self.operations.clear()
        self.network_latency = "normal"
        self.error_rate = "normal"
        self._last_refresh = None


class RetryOrchestrator:
    """Runs fallible operations with adaptive backoff and per-attempt timeouts."""

    def __init__(
        self,
        settings: RetrySettings | None = None,
        state: RetryState | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or RetrySettings()
        self.state = state or RetryState(
            monitoring_interval=self.settings.monitoring_interval_seconds,
            history_window=self.settings.history_window_seconds,
        )
        self._sleep = sleep
        self._rng = rng or random.Random()

    def base_policy(self, operation_type: str) -> RetryPolicy:
        try:
            return self.settings.policies[operation_type]
        except KeyError as exc:
            raise ValueError(f"Unknown operation type: {operation_type}") from exc

    def adaptive_config(self, operation_type: str) -> RetryPolicy:
        policy = self.base_policy(operation_type)
        max_retries = policy.max_retries
        base_delay = policy.base_delay
        max_delay = policy.max_delay

        rate = self.state.success_rate(operation_type)
        if rate < 0.5:
            max_retries = min(max_retries + 2, self.settings.max_adaptive_retries)
            base_delay *= 1.5
        elif rate > 0.9:
            max_retries = max(max_retries - 1, 1)
            base_delay *= 0.8

        environment = self.state.environment()
        latency = environment["network_latency"]
        if latency == "slow":
            base_delay *= 1.5
            max_delay *= 1.5
        elif latency == "very_slow":
            base_delay *= 2
            max_delay *= 2

        if operation_type == "generative" and (latency != "normal" or environment["error_rate"] == "high"):
            max_retries = min(max_retries + 2, 7)
            max_delay = min(max_delay * 1.5, 120.0)

        return policy.model_copy(update={"max_retries": max_retries, "base_delay": base_delay, "max_delay": max_delay})

    def compute_delay(self, config: RetryPolicy, attempt: int, operation_type: str) -> float:
        delay = min(config.base_delay * config.backoff_multiplier ** (attempt - 1), config.max_delay)
        if config.jitter_enabled:
            delay += (self._rng.random() - 0.5) * delay * 0.1
        if operation_type == "network" and self.state.network_latency == "very_slow":
            delay *= 1.8
        elif operation_type == "generative" and self.state.error_rate == "high":
            delay *= 1.5
        return delay

    def compute_timeout(self, operation_type: str, attempt: int) -> float:
        policy = self.settings.policies.get(operation_type)
        timeout = policy.timeout if policy else BASE_TIMEOUT_FALLBACK
        timeout *= min(1 + (attempt - 1) * 0.3, 2.5)
        if self.state.network_latency == "slow":
            timeout *= 1.5
        elif self.state.network_latency == "very_slow":
            timeout *= 2.5
        return timeout

    def is_retryable(self, operation_type: str, error: BaseException) -> bool:
        if isinstance(error, PermissionDeniedError):
            return False
        text = f"{type(error).__name__} {error}".lower()
        if any(re.search(pattern, text) for pattern in NON_RETRYABLE_PATTERNS):
            return False
        if operation_type in {"network", "generative"} and isinstance(error, (NetworkError, OperationTimeoutError)):
            return True
        patterns = RETRYABLE_PATTERNS.get(operation_type, ())
        return any(re.search(pattern, text) for pattern in patterns)

    async def execute_with_retry(
        self,
        operation: Callable[[RetryContext], Any],
        operation_type: str = "structural-mutation",
        context: dict[str, Any] | None = None,
    ) -> RetryOutcome:
        config = self.adaptive_config(operation_type)
        started = self.state.clock()
        attempt = 0
        last_error: BaseException | None = None

        while attempt < config.max_retries:
            attempt += 1
            logger.info("Attempting %s (%d/%d) %s", operation_type, attempt, config.max_retries, context or "")
            retry_context = RetryContext(operation_type=operation_type, attempt=attempt, config=config)
            try:
                result = await run_with_timeout(operation, self.compute_timeout(operation_type, attempt), retry_context)
            except Exception as exc:
                last_error = exc
                if not self.is_retryable(operation_type, exc):
                    logger.info("Error not retryable for %s: %s", operation_type, exc)
                    break
                if attempt < config.max_retries:
                    delay = self.compute_delay(config, attempt, operation_type)
                    logger.info("Waiting %.2fs before attempt %d", delay, attempt + 1)
                    await self._sleep(delay)
                continue

            finished = self.state.clock()
            self.state.record(operation_type, True, started, finished)
            return RetryOutcome(success=True, attempts=attempt, total_time=finished - started, result=result)

        finished = self.state.clock()
        self.state.record(operation_type, False, started, finished)
        return RetryOutcome(
            success=False,
            attempts=attempt,
            total_time=finished - started,
            error=last_error,
            message=f"Operation failed after {attempt} attempts: {last_error}",
        )

    def stats(self) -> dict[str, Any]:
        return {
            "success_rates": {
                name: {"successes": counter.successes, "total": counter.total, "rate": self.state.success_rate(name)}
                for name, counter in self.state.counters.items()
            },
            "environment": self.state.environment(),
            "recent_operations": self.state.recent_count(),
        }

    def reset(self) -> None:
        self.state.reset()
