from __future__ import annotations

import logging
from typing import Any, Callable, Iterable

logger = logging.getLogger("avwatch.utils")


def describe(target: Any) -> str:
    """Short label for log messages: the target's name attribute or its class."""
    name = getattr(target, "name", None)
    cls = type(target).__name__
    if isinstance(name, str) and name:
        return f"{cls}({name})"
    return cls


def call_isolated(fn: Callable[..., Any], *args: Any, context: str = "") -> bool:
    """
    Call fn(*args), logging and swallowing any exception so the caller can
    carry on with the next subscriber. Returns True if the call succeeded.
    """
    ctx_str = f" ({context})" if context else ""
    try:
        fn(*args)
        return True
    except Exception as e:
        logger.exception("Calling %s%s failed: %s", getattr(fn, "__qualname__", repr(fn)), ctx_str, e)
        return False


def call_each(targets: Iterable[Any], method: str, *args: Any, context: str = "") -> int:
    """
    Invoke the named method on every target in order, isolating failures.
    Returns the number of targets whose call failed.
    """
    failures = 0
    for target in targets:
        ctx = f"{describe(target)}.{method}" + (f", {context}" if context else "")
        try:
            getattr(target, method)(*args)
        except Exception as e:
            failures += 1
            logger.exception("%s failed (%s): %s", method, ctx, e)
    return failures
