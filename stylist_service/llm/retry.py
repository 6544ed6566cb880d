"""
Retrying Invoker (v1.0.0)
Bounded exponential-backoff retry for remote classification/generation calls.

Only transient conditions (rate limit, overload, dropped connection) are
retried. The delay starts at base_delay and doubles after each attempt,
without jitter.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import httpx

from stylist_service.core.errors import RemoteFailure, TerminalRemoteError, TransientRemoteError
from stylist_service.observability.metrics import record_remote_call

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {429, 503}
TRANSIENT_MESSAGES = ("overloaded", "rate limit", "resource exhausted", "resource_exhausted", "too many requests")


def _status_code(error: BaseException) -> Optional[int]:
    """HTTP-style status code from SDK exceptions (google.api_core, openai, httpx)."""
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if callable(value):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    response = getattr(error, "response", None)
    code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def is_transient_error(error: BaseException) -> bool:
    """Classify an exception as a retryable rate-limit/overload condition."""
    if isinstance(error, TransientRemoteError):
        return True
    if isinstance(error, TerminalRemoteError):
        return False
    if isinstance(error, httpx.TransportError):
        return True
    if _status_code(error) in TRANSIENT_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(token in message for token in TRANSIENT_MESSAGES)


@dataclass
class InvokeResult:
    """Outcome of an invoked remote call: a value or an error kind."""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None
    kind: Optional[str] = None  # "transient" (retries exhausted) | "terminal"
    attempts: int = 0

    def unwrap(self) -> Any:
        """
        Return the value or raise.

        Raises:
            RemoteFailure: If the call did not succeed
        """
        if self.ok:
            return self.value
        raise RemoteFailure(
            f"Remote call failed after {self.attempts} attempt(s): {self.error}",
            kind=self.kind or "terminal",
            attempts=self.attempts,
            cause=self.error,
        )


class RetryingInvoker:
    """
    Explicit bounded retry loop around an async remote call.

    Usage:
        invoker = RetryingInvoker(retries=3, base_delay=1.0)
        result = await invoker.invoke(model.generate_content_async, prompt)
        value = result.unwrap()
    """

    def __init__(
        self,
        retries: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        label: str = "remote"
    ):
        self.retries = max(0, retries)
        self.base_delay = base_delay
        self._sleep = sleep
        self.label = label

    async def invoke(self, fn: Callable[..., Awaitable[Any]], *args, **kwargs) -> InvokeResult:
        """Call fn(*args, **kwargs), retrying transient failures."""
        delay = self.base_delay
        attempt = 0
        max_attempts = self.retries + 1

        while True:
            attempt += 1
            try:
                value = await fn(*args, **kwargs)
                record_remote_call(retries=attempt - 1, failed=False)
                return InvokeResult(ok=True, value=value, attempts=attempt)
            except Exception as e:
                if not is_transient_error(e):
                    logger.error(f"[{self.label}] Terminal error on attempt {attempt}: {e}")
                    record_remote_call(retries=attempt - 1, failed=True)
                    return InvokeResult(ok=False, error=e, kind="terminal", attempts=attempt)

                if attempt >= max_attempts:
                    logger.error(f"[{self.label}] Giving up after {attempt} attempts: {e}")
                    record_remote_call(retries=attempt - 1, failed=True)
                    return InvokeResult(ok=False, error=e, kind="transient", attempts=attempt)

                logger.warning(
                    f"[{self.label}] Transient error: {e}. Retrying in {delay:.1f}s "
                    f"({max_attempts - attempt} left)"
                )
                await self._sleep(delay)
                delay *= 2
