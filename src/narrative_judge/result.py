"""Explicit success/failure wrapper for optional collaborator calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Tuple, Type, TypeVar

from .exceptions import NarrativeJudgeException

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a fallible call: either a value or the error that replaced it."""

    value: Optional[T] = None
    error: Optional[BaseException] = None
    failure_mode: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: Optional[T]) -> Optional[T]:
        return self.value if self.ok else default

    @classmethod
    def success(cls, value: Optional[T]) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException, failure_mode: str) -> "Result[T]":
        return cls(error=error, failure_mode=failure_mode)


async def attempt(
    call: Callable[[], Awaitable[T]],
    failure_mode: str,
    expected: Tuple[Type[BaseException], ...] = (NarrativeJudgeException,),
) -> Result[T]:
    """Await ``call`` and capture expected failures as a :class:`Result`.

    Args:
        call: Zero-argument coroutine factory.
        failure_mode: Label recorded on failure, e.g. ``"research_unavailable"``.
        expected: Exception types converted into a failed result; anything
            else propagates.

    Returns:
        A successful result holding the value, or a failed one holding the error.
    """
    try:
        return Result.success(await call())
    except expected as exc:
        logger.warning("%s: %s", failure_mode, exc)
        return Result.failure(exc, failure_mode)


__all__ = ["Result", "attempt"]
