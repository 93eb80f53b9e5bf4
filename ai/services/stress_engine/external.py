from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

# Wrapper for calls into collaborators (text analysis, LLM insights).
# Failures come back as an error Result; callers pick the default explicitly.


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    def map(self, fn: Callable[[T], Any]) -> "Result[Any]":
        """Apply fn to a success value; an exception from fn becomes a failure."""
        if not self.ok:
            return self
        try:
            return Result.success(fn(self.value))
        except Exception as exc:
            return Result.failure(exc)


def call_external(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Result[T]:
    try:
        return Result.success(fn(*args, **kwargs))
    except Exception as exc:
        return Result.failure(exc)


async def acall_external(fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> Result[T]:
    """Await fn; exceptions, timeouts and inner cancellation become failures.

    Cancellation of the awaiting task itself is re-raised.
    """
    try:
        value = fn(*args, **kwargs)
        if asyncio.iscoroutine(value) or isinstance(value, asyncio.Future):
            value = await value
        return Result.success(value)
    except asyncio.CancelledError as exc:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        return Result.failure(exc)
    except Exception as exc:
        return Result.failure(exc)
