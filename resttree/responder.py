"""
Per-request responder.

The responder is the error-first callback handed to resource capabilities::

    def get(request, respond):
        item = store.find(request.param("id"))
        if item is None:
            respond.not_found()
        else:
            respond(None, item)

Every exit path goes through :meth:`Responder._handle_error`, so a 500 is only
ever written for an actual failure.
"""

import logging
import traceback
from http import HTTPStatus
from pathlib import Path
from typing import Any, Optional, Union

import anyio

from .config import Options
from .models import Request, ResponseSink
from .status import HTTPError, StatusShorthands, http_status, normalize_error
from .writer import ResponseWriter

logger = logging.getLogger(__name__)


class Responder(StatusShorthands):
    """Error-first response callback bound to one request and one sink."""

    def __init__(self, request: Request, response: ResponseSink, options: Optional[Options] = None):
        self.request = request
        self.response = response
        self.options = options or Options()
        self.writer = ResponseWriter(response, self._handle_error)
        self._finished = anyio.Event()

    def __call__(self, err: Any = None, body: Any = None, mime: Optional[str] = None) -> None:
        if not self._begin("responder"):
            return
        try:
            if not self._handle_error(err):
                self.writer.write(body, mime)
        finally:
            self._finished.set()

    def file(self, err: Any, path: Union[str, Path, None] = None, mime: Optional[str] = None) -> None:
        """Send the file at ``path`` unless ``err`` is set."""
        if not self._begin("responder.file"):
            return
        try:
            if not self._handle_error(err):
                if mime:
                    self.response.type(mime)
                self.response.sendfile(path)
        finally:
            self._finished.set()

    def status(self, code: Union[HTTPStatus, int], body: Any = None) -> None:
        """Terminate with an explicit status and optional body."""
        if not self._begin("responder.status"):
            return
        try:
            self._handle_error(http_status(int(code), body))
        finally:
            self._finished.set()

    def fail(self, status: Union[HTTPStatus, int]) -> None:
        self.status(status)

    @property
    def done(self) -> bool:
        """Whether a terminal outcome was written."""
        return self._finished.is_set()

    async def wait(self) -> None:
        """Wait until a terminal outcome was written."""
        await self._finished.wait()

    def _begin(self, label: str) -> bool:
        if self._finished.is_set():
            logger.warning(
                f"{label} called after the response to {self.request.method_name} "
                f"{self.request.path} was sent, ignoring"
            )
            return False
        return True

    def _handle_error(self, err: Any) -> bool:
        """Write ``err`` as the terminal response. Returns False if there is no error."""
        if err is None or err is False:
            return False

        error = normalize_error(err)
        self._log_error(error)

        if self.options.error_stack and error.code >= 400:
            body: Any = self._format_stack(error)
        elif error.body is not None:
            body = error.body
        else:
            body = error.message

        self.response.send(body, error.code)
        return True

    def _log_error(self, error: HTTPError) -> None:
        where = f"{self.request.method_name} {self.request.path}"
        if error.is_server_error:
            cause = error.__cause__ or error
            logger.error(f"{where} failed with {error.code}: {error.message}", exc_info=cause)
        else:
            logger.debug(f"{where} -> {error.code} {error.message}")

    @staticmethod
    def _format_stack(error: HTTPError) -> str:
        cause = error.__cause__ or error
        return "".join(traceback.format_exception(type(cause), cause, cause.__traceback__))
