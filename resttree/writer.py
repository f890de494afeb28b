"""
Response writer for the success path.
"""

import logging
from numbers import Number
from typing import Any, Callable, Optional

from .body import Empty, Stream, classify
from .models import ResponseSink
from .status import HTTPError, NAMED_STATUSES

logger = logging.getLogger(__name__)


class ResponseWriter:
    """Decides how a successful result reaches the response sink.

    ``on_error`` is the responder's error path; an empty body is answered
    through it as "no content" so that 204 is just another terminal status.
    """

    def __init__(self, response: ResponseSink, on_error: Callable[[HTTPError], Any]):
        self.response = response
        self.on_error = on_error

    def write(self, body: Any, mime: Optional[str] = None) -> None:
        body = classify(body)

        if isinstance(body, Empty):
            self.on_error(HTTPError.from_status(NAMED_STATUSES["no_content"]))
            return

        if mime:
            self.response.type(mime)

        if isinstance(body, Stream):
            logger.debug("Piping stream body to transport")
            self.response.stream(body.handle)
            return

        value = body.value
        # A bare number must not be mistaken for a status code downstream
        if isinstance(value, Number) and not isinstance(value, bool):
            value = str(value)
        self.response.send(value)
