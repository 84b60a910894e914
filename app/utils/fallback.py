"""
FALLBACK UTILITY
================

Calls a function and, if it raises one of the given exception types, calls a
fallback exactly once. There is no backoff and no further retry: if the
fallback also fails, its exception propagates.

Used by the AI orchestrator to retry a failed provider call against the
default provider.

Example:
  response = with_fallback(
      lambda: call_provider("anthropic"),
      lambda: call_provider("openai"),
      retry_on=(ProviderError,),
  )
"""

import logging
from typing import Callable, Optional, Tuple, Type, TypeVar


logger = logging.getLogger("EDU4AI")

# Type variable: with_fallback returns whatever the callables return.
T = TypeVar("T")


def with_fallback(
    fn: Callable[[], T],
    fallback: Optional[Callable[[], T]] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    name: Optional[str] = None,
) -> T:
    """
    Execute fn(). If it raises one of retry_on and a fallback was given, return fallback().
    Without a fallback (or for any other exception type) the original exception is re-raised.
    name labels the call in the warning log (defaults to fn.__name__).
    """
    try:
        return fn()
    except retry_on as e:
        if fallback is None:
            raise
        logger.warning(
            "Call failed (%s). Trying fallback once: %s",
            name or getattr(fn, "__name__", "call"),
            e,
        )
        return fallback()
