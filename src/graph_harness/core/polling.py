"""
Polling assertion for eventually-consistent effects

The predicate performs its own fresh read on every attempt; nothing is cached
between attempts. Polling uses a fixed interval.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, Union

from graph_harness.config.settings import get_config
from graph_harness.config.timeouts import Timeouts
from graph_harness.utils.error_handling import HarnessError, PollingTimeoutError

logger = logging.getLogger(__name__)

Predicate = Callable[[], Union[Any, Awaitable[Any]]]

DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (AssertionError, HarnessError)


class PredicateReturnedFalse(AssertionError):
    """Raised internally when a predicate signals failure by returning False"""


def _discard_late_result(task: "asyncio.Future") -> None:
    # Retrieve the outcome so abandoned attempts do not log "never retrieved"
    if not task.cancelled():
        task.exception()


async def poll_until(
    predicate: Predicate,
    timeout: float = Timeouts.STANDARD,
    interval: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON,
    description: Optional[str] = None,
) -> Any:
    """
    Re-run `predicate` until it succeeds or `timeout` seconds elapse.

    A predicate fails by raising one of `retry_on` or by returning False; a
    False return is retried even when `retry_on` is narrowed.
    Any other exception propagates immediately.

    Returns:
        The predicate's first successful return value

    Raises:
        PollingTimeoutError: carrying the last failure (not the first) once the
            timeout is exceeded. Fails no earlier than `timeout` and no later
            than `timeout` plus one interval.
    """
    if interval is None:
        interval = get_config().poll_interval
    if timeout < 0 or interval <= 0:
        raise ValueError(f"timeout must be >= 0 and interval > 0, got {timeout} and {interval}")

    label = description or getattr(predicate, "__name__", "predicate")
    start = time.monotonic()
    deadline = start + timeout
    attempts = 0
    last_error: Optional[BaseException] = None

    while True:
        attempts += 1
        try:
            result = predicate()
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                remaining = deadline - time.monotonic()
                done, _ = await asyncio.wait({task}, timeout=max(remaining, 0) + interval)
                if not done:
                    # Leave the in-flight call alone; its late result is discarded
                    task.add_done_callback(_discard_late_result)
                    break
                result = task.result()
            if result is False:
                raise PredicateReturnedFalse(f"{label} returned False")
            if attempts > 1:
                logger.debug(f"{label} succeeded after {attempts} attempts ({time.monotonic() - start:.2f}s)")
            return result
        except PredicateReturnedFalse as e:
            # A False return is retried whatever `retry_on` holds
            last_error = e
        except retry_on as e:
            last_error = e

        now = time.monotonic()
        if now >= deadline:
            break
        await asyncio.sleep(min(interval, deadline - now))

    elapsed = time.monotonic() - start
    if last_error is None:
        message = f"{label} still pending after {elapsed:.2f}s ({attempts} attempts)"
    else:
        message = f"{label} did not succeed within {timeout}s ({attempts} attempts); last failure: {last_error!r}"
    logger.info(message)
    raise PollingTimeoutError(message, last_error=last_error, attempts=attempts) from last_error
