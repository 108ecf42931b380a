from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

logger = structlog.get_logger()

T = TypeVar("T")


def _log_retry(operation: str, max_attempts: int):
    def before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Model call failed, retrying",
            operation=operation,
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc),
        )

    return before_sleep


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    operation: str,
    max_retries: int = 3,
    backoff_seconds: float = 2.0,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """Await ``fn`` until it succeeds or ``max_retries`` retries are used up.

    Waits ``backoff_seconds * 2 ** (attempt - 1)`` between attempts, which is
    2, 4 and 8 seconds with the defaults. Any exception is retried and the last
    one is re-raised unchanged.
    """
    max_attempts = max_retries + 1
    extra = {"sleep": sleep} if sleep is not None else {}
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_seconds, exp_base=2),
        before_sleep=_log_retry(operation, max_attempts),
        reraise=True,
        **extra,
    )
    try:
        async for attempt in retrying:
            with attempt:
                logger.info(
                    "Calling model",
                    operation=operation,
                    attempt=attempt.retry_state.attempt_number,
                    max_attempts=max_attempts,
                )
                result = await fn()
    except Exception as e:
        logger.error(
            "Model call failed after retries",
            operation=operation,
            attempts=max_attempts,
            error=str(e),
        )
        raise
    return result
