"""
Main application class: the request pipeline entry point.
"""

import logging
from http import HTTPStatus
from typing import Optional

import anyio

from .config import Options
from .dispatch import RestDispatcher
from .hooks import Hook, HookChain
from .models import Request, Response, ResponseSink
from .responder import Responder
from .tree import ResourceNode, ResourceTree

# Set up logger for this module
logger = logging.getLogger(__name__)


class ResourceApplication:
    """Serves a resource tree through a uniform REST interface.

    Example::

        app = ResourceApplication(Options(default_limit=20))
        app.resource("status").get(lambda request, respond: respond(None, {"ok": True}))

        response = app.execute(Request(HTTPMethod.GET, "/status"))
    """

    def __init__(self, options: Optional[Options] = None, tree: Optional[ResourceTree] = None):
        self.options = options or Options()
        self.tree = tree or ResourceTree()
        self.dispatcher = RestDispatcher(self.options)

    # Resource definers

    def resource(self, name: str) -> ResourceNode:
        """Return the builder for resource ``name``, creating it if needed."""
        return self.tree.resource(name)

    def remove(self, name: str) -> bool:
        """Remove resource ``name`` and its sub-resources."""
        return self.tree.remove(name)

    def hook(self, func: Hook) -> Hook:
        """Register a hook run before every matched request.

        Returns ``func`` so it can be used as a decorator.
        """
        self.tree.hook(func)
        return func

    # Request handling

    async def handle(self, request: Request, response: ResponseSink) -> None:
        """Process one request and write exactly one response to ``response``."""
        responder = Responder(request, response, self.options)
        logger.debug(f"{request.method_name} {request.path}")

        try:
            match = self.tree.match(request.path)
        except Exception as e:
            # Resolvers run during matching
            responder(e)
            return
        if not match.found:
            responder.not_found()
            return

        # Path parameters win over anything already present under the same name
        request.params.update(match.params)

        async def dispatch():
            await self.dispatcher.dispatch(request, responder, match.spec)

        chain = HookChain(match.hooks)
        timeout = self.options.request_timeout

        if timeout is None:
            await chain.run(request, responder, dispatch)
            await responder.wait()
            return

        with anyio.move_on_after(timeout) as scope:
            await chain.run(request, responder, dispatch)
            await responder.wait()

        if scope.cancelled_caught and not responder.done:
            logger.error(
                f"{request.method_name} {request.path} did not complete within {timeout}s"
            )
            responder.status(HTTPStatus.SERVICE_UNAVAILABLE, "Request timed out")

    def execute(self, request: Request) -> Response:
        """Process a request synchronously and return the in-memory response.

        Uses anyio.run(), so it must not be called from a running event loop.
        """
        response = Response()

        async def run():
            await self.handle(request, response)

        anyio.run(run)
        return response
