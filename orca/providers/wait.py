"""Generic wait/polling utilities for providers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_before_delay, wait_fixed


T = TypeVar("T")


class TerminalStateError(RuntimeError):
    """Raised when a polled resource reaches a state it will not leave."""

    def __init__(self, description: str, result: object) -> None:
        self.result = result
        super().__init__(f"{description} reached terminal state: {result}")


async def wait_for_ready(
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    terminal_check: Callable[[T], bool] | None = None,
    timeout: float = 300.0,
    interval: float = 10.0,
    description: str = "resource",
) -> T:
    """Wait until poll_fn returns something that passes ready_check.

    ``poll_fn`` returning ``None`` means "not visible yet" and is polled
    again. The first poll happens immediately; later polls are spaced by
    ``interval``. Cancelling the awaiting task cancels the wait.

    Args:
        poll_fn: Async function that polls for the resource state.
        ready_check: Function that returns True when resource is ready.
        terminal_check: Optional function that returns True if resource reached
            a terminal failure state (e.g., terminated, failed).
        timeout: Maximum time to wait in seconds. No poll starts that
            would begin after the deadline.
        interval: Time between polls in seconds.
        description: Description for error messages.

    Returns:
        The ready resource.

    Raises:
        TimeoutError: If timeout is exceeded.
        TerminalStateError: If resource reaches terminal state.
    """

    async def poll_once() -> T | None:
        result = await poll_fn()
        if result is not None and terminal_check is not None and terminal_check(result):
            raise TerminalStateError(description, result)
        return result

    retrying = AsyncRetrying(
        stop=stop_before_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda r: r is None or not ready_check(r)),
    )

    try:
        return await retrying(poll_once)  # type: ignore[return-value]
    except RetryError:
        raise TimeoutError(f"Timeout waiting for {description} after {timeout:.1f}s") from None
