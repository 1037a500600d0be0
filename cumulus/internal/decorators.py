"""Decorators for error handling and observability."""

import inspect
import time
from collections.abc import Callable
from functools import wraps
from typing import Any, Literal

from loguru import logger

SENSITIVE_ARGS = frozenset({"password", "admin_password", "private_key", "variables"})
MAX_ARG_REPR = 120


def _format_arg(name: str, value: Any) -> str:
    if name in SENSITIVE_ARGS:
        return f"{name}=<redacted>"
    text = repr(value)
    if len(text) > MAX_ARG_REPR:
        text = text[: MAX_ARG_REPR - 3] + "..."
    return f"{name}={text}"


def audit[F: Callable[..., Any]](
    operation: str | None = None,
    *,
    args: bool = False,
    result: bool = False,
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "TRACE"] = "DEBUG",
) -> Callable[[F], F]:
    """Decorator for logging entry/exit, timing and failures of coroutines.

    - → logs entry (with args if enabled)
    - ← logs exit with duration (with result if enabled)
    - ✗ logs exception WITH TRACEBACK, then re-raises

    Args:
        operation: Custom operation name (defaults to function name).
        args: Log function arguments on entry. Arguments named in
            SENSITIVE_ARGS are redacted, long values are truncated.
        result: Log function result on exit.
        level: Log level for entry/exit messages.

    Usage:
        @audit("Blueprint.construct")              # Basic
        @audit("create host", args=True)           # With arguments
        @audit("state", result=True)               # With result
    """

    def decorator(func: F) -> F:
        op = operation or func.__qualname__
        sig = inspect.signature(func)

        def describe(a: tuple[Any, ...], kw: dict[str, Any]) -> str:
            if not args:
                return op
            bound = sig.bind(*a, **kw)
            bound.apply_defaults()
            formatted = ", ".join(
                _format_arg(k, v) for k, v in bound.arguments.items() if k != "self"
            )
            return f"{op}({formatted})"

        @wraps(func)
        async def wrapper(*a: Any, **kw: Any) -> Any:
            start = time.monotonic()
            msg = describe(a, kw)
            logger.opt(depth=1).log(level, f"→ {msg}")

            try:
                r = await func(*a, **kw)
            except Exception:
                elapsed = f"{time.monotonic() - start:.2f}s"
                logger.opt(depth=1, exception=True).error(f"✗ {msg} [{elapsed}]")
                raise

            elapsed = f"{time.monotonic() - start:.2f}s"
            result_str = f" → {r!r}" if result else ""
            logger.opt(depth=1).log(level, f"← {msg} [{elapsed}]{result_str}")
            return r

        return wrapper  # type: ignore[return-value]

    return decorator
