"""Invoke helpers — call sync or async callables uniformly.

Handlers, predicates and error handlers can be ``def`` or ``async def``.
Any code that calls a user-provided callable goes through ``invoke`` so
the sync/async check lives in exactly one place::

    from strata._internal.invoke import invoke

    result = await invoke(handler, request)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def accepts_argument(func: Any) -> bool:
    """Whether *func* can be called with one positional argument.

    Handlers may be written as ``def index():`` or ``def show(request):``;
    the routing layer uses this to decide how to call them.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    for param in sig.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD, param.VAR_POSITIONAL):
            return True
    return False
