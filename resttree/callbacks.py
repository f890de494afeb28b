"""
Single-shot completion callbacks.

Resource capabilities and hooks report back through error-first callbacks.
:class:`Completion` turns such a callback into something the pipeline can
await, and :func:`invoke` calls a function that may or may not be a
coroutine function.
"""

import inspect
import logging
from typing import Any, Callable, Optional, Tuple

import anyio

logger = logging.getLogger(__name__)


async def invoke(func: Callable[..., Any], *args: Any) -> Any:
    """Call ``func`` and await its result when it is awaitable."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class Completion:
    """An error-first callback that can be awaited.

    The first call records ``(err, value)``; later calls are ignored and
    logged, as the contract allows a single completion only.
    """

    def __init__(self, label: str = "callback"):
        self.label = label
        self._event = anyio.Event()
        self._outcome: Optional[Tuple[Any, Any]] = None

    def __call__(self, err: Any = None, value: Any = None) -> None:
        self.complete(err, value)

    def complete(self, err: Any = None, value: Any = None) -> bool:
        """Record the outcome. Returns False if it was already recorded."""
        if self._outcome is not None:
            logger.warning(f"{self.label} invoked more than once, ignoring")
            return False
        self._outcome = (err, value)
        self._event.set()
        return True

    @property
    def done(self) -> bool:
        return self._outcome is not None

    async def wait(self) -> Tuple[Any, Any]:
        """Wait for the callback and return ``(err, value)``."""
        await self._event.wait()
        assert self._outcome is not None
        return self._outcome
