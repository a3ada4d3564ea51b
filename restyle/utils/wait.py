from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from restyle.core.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)


async def run_with_timeout(operation: Callable[..., Any], timeout: float, *args: Any) -> Any:
    """Races ``operation`` against a timer.

    The operation is not cancelled when the timer wins; it keeps running and its
    late result (or exception) is discarded. Synchronous callables are run inline.
    """

    result = operation(*args)
    if not inspect.isawaitable(result):
        return result
    task = asyncio.ensure_future(result)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if task in done:
        return task.result()
    task.add_done_callback(_discard_late_result)
    raise OperationTimeoutError(f"Operation timed out after {timeout:.1f}s")


def _discard_late_result(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Discarded late failure from timed-out operation: %s", error)
