"""
Pre-dispatch hook chain.

Hooks are attached to resource tree nodes and run root first before the
method dispatcher. A hook receives the request and a continuation::

    def require_token(request, proceed):
        if request.get_header("authorization") is None:
            proceed.unauthorized()
        else:
            proceed()

Hooks may be coroutine functions; the chain awaits them, then waits for the
continuation, so ``proceed`` can also be called later from another task.
"""

import logging
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Sequence, Union

from .callbacks import Completion, invoke
from .models import Request
from .responder import Responder
from .status import HTTPError, StatusShorthands

logger = logging.getLogger(__name__)

Hook = Callable[[Request, "Continuation"], Any]


class Continuation(Completion, StatusShorthands):
    """The ``proceed`` callable handed to a hook.

    ``proceed()`` continues with the next hook, ``proceed(err)`` aborts the
    chain and ``proceed.forbidden()`` (or any other named status) aborts with
    that status.
    """

    def __call__(self, err: Any = None) -> None:
        self.complete(err)

    def fail(self, status: Union[HTTPStatus, int]) -> None:
        self.complete(HTTPError.from_status(status))


class HookChain:
    """Runs an ordered sequence of hooks, stopping at the first failure."""

    def __init__(self, hooks: Sequence[Hook] = ()):
        self.hooks = tuple(hooks)

    async def run(
        self,
        request: Request,
        responder: Responder,
        dispatch: Callable[[], Awaitable[None]],
    ) -> bool:
        """Run all hooks, then ``dispatch``.

        Returns True if the chain completed and ``dispatch`` ran, False if a
        hook aborted the request.
        """
        index = 0
        while index < len(self.hooks):
            hook = self.hooks[index]
            name = getattr(hook, "__name__", repr(hook))
            proceed = Continuation(f"hook {name}")
            logger.debug(f"Running hook {index + 1}/{len(self.hooks)}: {name}")

            try:
                await invoke(hook, request, proceed)
            except Exception as e:
                logger.debug(f"Hook {name} raised {e!r}")
                proceed(e)

            err, _ = await proceed.wait()
            if err is not None and err is not False:
                logger.debug(f"Hook {name} aborted {request.method_name} {request.path}")
                responder(err)
                return False
            index += 1

        await dispatch()
        return True
