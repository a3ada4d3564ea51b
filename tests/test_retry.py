from __future__ import annotations

import asyncio
import random

import pytest

from restyle.config.schema import RetryPolicy, RetrySettings
from restyle.core.exceptions import NetworkError, OperationTimeoutError, PermissionDeniedError
from restyle.core.retry import RetryOrchestrator, RetryState
from restyle.utils.wait import run_with_timeout
from tests.helpers import FakeClock, RecordingSleep


def make_orchestrator(settings=None, clock=None):
    sleep = RecordingSleep()
    state = RetryState(clock=clock or FakeClock())
    orchestrator = RetryOrchestrator(settings=settings, state=state, sleep=sleep, rng=random.Random(7))
    return orchestrator, sleep


def record_many(state, operation_type, successes, failures, duration=0.1):
    now = state.clock()
    for _ in range(successes):
        state.record(operation_type, True, now, now + duration)
    for _ in range(failures):
        state.record(operation_type, False, now, now + duration)


def test_delay_grows_exponentially_and_caps():
    orchestrator, _ = make_orchestrator()
    structural = orchestrator.base_policy("structural-mutation")
    assert [orchestrator.compute_delay(structural, attempt, "structural-mutation") for attempt in (1, 2, 3)] == [
        0.5,
        0.75,
        1.125,
    ]
    validation = orchestrator.base_policy("validation")
    assert orchestrator.compute_delay(validation, 10, "validation") == 1.0


def test_jitter_stays_within_five_percent():
    orchestrator, _ = make_orchestrator()
    network = orchestrator.base_policy("network")
    for attempt in range(1, 5):
        nominal = min(2.0 ** (attempt - 1), 30.0)
        delay = orchestrator.compute_delay(network, attempt, "network")
        assert nominal * 0.95 <= delay <= nominal * 1.05


def test_unknown_operation_type_is_rejected():
    orchestrator, _ = make_orchestrator()
    with pytest.raises(ValueError):
        orchestrator.adaptive_config("teleport")


def test_adaptive_config_follows_success_rate():
    orchestrator, _ = make_orchestrator()
    record_many(orchestrator.state, "network", successes=10, failures=0)
    healthy = orchestrator.adaptive_config("network")
    assert healthy.max_retries == 4
    assert healthy.base_delay == pytest.approx(0.8)

    orchestrator.reset()
    record_many(orchestrator.state, "network", successes=1, failures=9)
    struggling = orchestrator.adaptive_config("network")
    assert struggling.max_retries == 7
    assert struggling.base_delay == pytest.approx(1.5)


def test_generative_operations_get_more_room_when_latency_is_slow():
    clock = FakeClock()
    orchestrator, _ = make_orchestrator(clock=clock)
    record_many(orchestrator.state, "network", successes=3, failures=0, duration=6.0)
    config = orchestrator.adaptive_config("generative")
    assert orchestrator.state.network_latency == "slow"
    assert config.max_retries == 6
    assert config.base_delay == pytest.approx(3.0)
    assert config.max_delay == 120.0


def test_timeout_scales_with_attempt_and_latency():
    orchestrator, _ = make_orchestrator()
    assert orchestrator.compute_timeout("network", 1) == pytest.approx(10.0)
    assert orchestrator.compute_timeout("network", 3) == pytest.approx(16.0)
    assert orchestrator.compute_timeout("network", 10) == pytest.approx(25.0)
    orchestrator.state.network_latency = "very_slow"
    assert orchestrator.compute_timeout("execution", 1) == pytest.approx(20.0)


def test_transient_failures_are_retried_until_success():
    orchestrator, sleep = make_orchestrator()
    calls = []

    async def flaky(context):
        calls.append(context.attempt)
        if len(calls) < 3:
            raise NetworkError("network error: connection reset")
        return "ok"

    outcome = asyncio.run(orchestrator.execute_with_retry(flaky, "network"))
    assert outcome.success
    assert outcome.result == "ok"
    assert outcome.attempts == 3
    assert calls == [1, 2, 3]
    assert len(sleep.delays) == 2
    assert sleep.delays[0] == pytest.approx(1.0, rel=0.05)
    assert sleep.delays[1] == pytest.approx(2.0, rel=0.05)


def test_non_retryable_errors_stop_immediately():
    orchestrator, sleep = make_orchestrator()

    async def denied(context):
        raise PermissionDeniedError("network error 503 but permission denied")

    outcome = asyncio.run(orchestrator.execute_with_retry(denied, "network"))
    assert not outcome.success
    assert outcome.attempts == 1
    assert isinstance(outcome.error, PermissionDeniedError)
    assert sleep.delays == []


def test_exhausted_retries_report_the_last_error():
    orchestrator, sleep = make_orchestrator()

    def never_applies(context):
        raise RuntimeError("style not applied")

    outcome = asyncio.run(orchestrator.execute_with_retry(never_applies, "validation"))
    assert not outcome.success
    assert outcome.attempts == 2
    assert outcome.message == "Operation failed after 2 attempts: style not applied"
    assert sleep.delays == [0.1]


def test_timeouts_count_as_failures():
    settings = RetrySettings(
        policies={"network": RetryPolicy(max_retries=2, base_delay=0, max_delay=0, timeout=0.05)}
    )
    orchestrator, _ = make_orchestrator(settings=settings)

    async def slow(context):
        await asyncio.sleep(1)
        return "late"

    outcome = asyncio.run(orchestrator.execute_with_retry(slow, "network"))
    assert not outcome.success
    assert outcome.attempts == 2
    assert isinstance(outcome.error, OperationTimeoutError)


def test_timed_out_work_keeps_running():
    finished = []

    async def scenario():
        async def work():
            await asyncio.sleep(0.05)
            finished.append(True)
            return "done"

        with pytest.raises(OperationTimeoutError):
            await run_with_timeout(work, 0.01)
        await asyncio.sleep(0.2)

    asyncio.run(scenario())
    assert finished == [True]


def test_synchronous_operations_are_supported():
    orchestrator, _ = make_orchestrator()
    outcome = asyncio.run(orchestrator.execute_with_retry(lambda context: 42, "execution"))
    assert outcome.success
    assert outcome.result == 42


def test_success_counters_decay_past_one_hundred_samples():
    state = RetryState(clock=FakeClock())
    record_many(state, "execution", successes=101, failures=0)
    assert state.counters["execution"].total == 91
    assert state.counters["execution"].successes == 91
    assert state.success_rate("validation") == 0.5


def test_environment_is_recomputed_lazily_and_pruned():
    clock = FakeClock()
    state = RetryState(clock=clock, monitoring_interval=60, history_window=300)
    assert state.environment() == {"network_latency": "normal", "error_rate": "normal"}

    record_many(state, "network", successes=1, failures=3, duration=12.0)
    assert state.environment()["network_latency"] == "normal"

    clock.advance(60)
    assert state.environment() == {"network_latency": "very_slow", "error_rate": "high"}

    clock.advance(400)
    assert state.environment() == {"network_latency": "normal", "error_rate": "normal"}
    assert state.recent_count() == 0


def test_stats_and_reset():
    orchestrator, _ = make_orchestrator()
    record_many(orchestrator.state, "network", successes=3, failures=1)
    stats = orchestrator.stats()
    assert stats["success_rates"]["network"] == {"successes": 3, "total": 4, "rate": 0.75}
    assert stats["recent_operations"] == 4
    orchestrator.reset()
    assert orchestrator.stats()["success_rates"] == {}


def test_always_failing_operation_exhausts_its_budget():
    orchestrator, sleep = make_orchestrator()

    async def down(context):
        raise NetworkError("network error")

    outcome = asyncio.run(orchestrator.execute_with_retry(down, "network"))
    assert outcome.attempts == 5
    assert len(sleep.delays) == 4
    nominal = [1.0, 2.0, 4.0, 8.0]
    for delay, expected in zip(sleep.delays, nominal):
        assert expected * 0.95 <= delay <= expected * 1.05
    assert all(later >= earlier for earlier, later in zip(sleep.delays, sleep.delays[1:]))
