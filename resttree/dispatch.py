"""
REST method dispatcher.

Maps the inbound method onto the capabilities a resource declares:

========== ============================ =====================================
Method     Capability                   Call
========== ============================ =====================================
GET, HEAD  ``get``                      ``get(request, respond)``
GET, HEAD  ``count`` and ``list``       ``count`` then ``list``, paginated
PUT, PATCH ``put``                      ``put(request, is_patch, respond)``
DELETE     ``delete``                   ``delete(request, respond)``
POST       ``post``                     ``post(request, respond)``
========== ============================ =====================================

Anything else is answered with 405 Method Not Allowed.
"""

import logging
import re
from typing import Any, Optional

from .callbacks import Completion, invoke
from .config import Options
from .models import HTTPMethod, Request
from .resources import ResourceSpec
from .responder import Responder

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_int(value: Any) -> Optional[int]:
    """Parse the leading integer of ``value``; ``None`` if there is none.

    ``"12"`` and ``"12abc"`` both give 12, ``"abc"`` and ``None`` give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


class RestDispatcher:
    """Invokes the capability of a resource spec matching the request method."""

    def __init__(self, options: Optional[Options] = None):
        self.options = options or Options()

    def pagination(self, request: Request):
        """Return the effective ``(skip, limit)`` of a listing request.

        Missing, non-numeric or negative values silently fall back to
        ``0`` and ``default_limit``.
        """
        skip = parse_int(request.param("skip"))
        limit = parse_int(request.param("limit"))

        if skip is None or skip < 0:
            skip = 0
        if limit is None or limit < 0:
            limit = self.options.default_limit
        return skip, limit

    async def dispatch(self, request: Request, responder: Responder, spec: ResourceSpec) -> None:
        method = request.method
        logger.debug(f"Dispatching {request.method_name} {request.path} to {spec!r}")

        try:
            if method in (HTTPMethod.GET, HTTPMethod.HEAD):
                if spec.get is not None:
                    await invoke(spec.get, request, responder)
                    return
                if spec.is_listable:
                    await self._list(request, responder, spec)
                    return

            elif method in (HTTPMethod.PUT, HTTPMethod.PATCH):
                if spec.put is not None:
                    await invoke(spec.put, request, method == HTTPMethod.PATCH, responder)
                    return

            elif method == HTTPMethod.DELETE:
                if spec.delete is not None:
                    await invoke(spec.delete, request, responder)
                    return

            elif method == HTTPMethod.POST:
                if spec.post is not None:
                    await invoke(spec.post, request, responder)
                    return

        except Exception as e:
            responder(e)
            return

        allowed = ", ".join(m.value for m in spec.allowed_methods()) or "nothing"
        logger.debug(f"{request.method_name} not allowed on {request.path}, resource allows {allowed}")
        responder.method_not_allowed()

    async def _list(self, request: Request, responder: Responder, spec: ResourceSpec) -> None:
        skip, limit = self.pagination(request)

        counted = Completion("count callback")
        await invoke(spec.count, request, counted)
        err, count = await counted.wait()
        if err is not None and err is not False:
            responder(err)
            return

        listed = Completion("list callback")
        await invoke(spec.list, request, skip, limit, listed)
        err, items = await listed.wait()
        if err is not None and err is not False:
            responder(err)
            return

        responder(None, {"_count": count, "_items": items})
