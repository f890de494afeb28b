"""
Status and error model.

Every terminal outcome that is not a regular success body is expressed as an
:class:`HTTPError`: named statuses such as "not found", errors raised by
resource adapters and short-circuits requested by hooks.
"""

from http import HTTPStatus
from typing import Any, Dict, Optional, Union

# Fixed set of statuses that get a shorthand on responders and hook
# continuations, e.g. ``responder.not_found()`` or ``proceed.forbidden()``.
NAMED_STATUSES: Dict[str, HTTPStatus] = {
    "created": HTTPStatus.CREATED,
    "accepted": HTTPStatus.ACCEPTED,
    "no_content": HTTPStatus.NO_CONTENT,
    "not_modified": HTTPStatus.NOT_MODIFIED,
    "bad_request": HTTPStatus.BAD_REQUEST,
    "unauthorized": HTTPStatus.UNAUTHORIZED,
    "forbidden": HTTPStatus.FORBIDDEN,
    "not_found": HTTPStatus.NOT_FOUND,
    "method_not_allowed": HTTPStatus.METHOD_NOT_ALLOWED,
    "not_acceptable": HTTPStatus.NOT_ACCEPTABLE,
    "conflict": HTTPStatus.CONFLICT,
    "gone": HTTPStatus.GONE,
    "precondition_failed": HTTPStatus.PRECONDITION_FAILED,
    "unsupported_media_type": HTTPStatus.UNSUPPORTED_MEDIA_TYPE,
    "unprocessable_entity": HTTPStatus(422),
    "too_many_requests": HTTPStatus.TOO_MANY_REQUESTS,
    "internal_server_error": HTTPStatus.INTERNAL_SERVER_ERROR,
    "not_implemented": HTTPStatus.NOT_IMPLEMENTED,
    "service_unavailable": HTTPStatus.SERVICE_UNAVAILABLE,
}


def reason_phrase(code: int) -> str:
    """Return the standard reason phrase for ``code``, or a generic one."""
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return f"HTTP {code}"


class HTTPError(Exception):
    """An HTTP outcome carrying a numeric status code and a message.

    ``body`` is an optional payload sent instead of the message, used when a
    status is raised with structured content (for instance ``201`` with the
    location of the created item).
    """

    def __init__(self, code: int = 500, message: Optional[str] = None, body: Any = None):
        self.code = int(code)
        self.message = message if message is not None else reason_phrase(self.code)
        self.body = body
        super().__init__(self.message)

    @classmethod
    def from_status(cls, status: Union[HTTPStatus, int], body: Any = None) -> "HTTPError":
        """Create an error for a named or numeric status."""
        return http_status(int(status), body)

    @property
    def is_server_error(self) -> bool:
        return self.code >= 500

    def __repr__(self):
        return f"HTTPError({self.code}, {self.message!r})"


def http_status(code: int, body: Any = None) -> HTTPError:
    """Generic status constructor.

    A string ``body`` becomes the message. Any other non-null body is kept as
    the payload and the message falls back to the reason phrase.
    """
    if body is None:
        return HTTPError(code)
    if isinstance(body, str):
        return HTTPError(code, body)
    return HTTPError(code, body=body)


def _valid_code(code: Any) -> bool:
    return isinstance(code, int) and not isinstance(code, bool) and 100 <= code <= 599


def normalize_error(err: Any) -> HTTPError:
    """Convert any failure value to an :class:`HTTPError`.

    Exceptions exposing a valid integer ``code`` attribute keep it, everything
    else is a 500. The original exception is chained as ``__cause__`` so its
    traceback stays available for diagnostics.
    """
    if isinstance(err, HTTPError):
        return err

    code = getattr(err, "code", None)
    if not _valid_code(code):
        code = HTTPStatus.INTERNAL_SERVER_ERROR

    if isinstance(err, BaseException):
        message = getattr(err, "message", None)
        if not isinstance(message, str) or not message:
            message = str(err) or reason_phrase(code)
        normalized = HTTPError(code, message)
        normalized.__cause__ = err
        return normalized

    return HTTPError(code, str(err))


class StatusShorthands:
    """Mixin adding one shorthand method per entry of :data:`NAMED_STATUSES`.

    Subclasses implement :meth:`fail`; ``obj.not_found()`` is then the same as
    ``obj.fail(HTTPStatus.NOT_FOUND)``.
    """

    def fail(self, status: Union[HTTPStatus, int]) -> None:
        raise NotImplementedError


def _shorthand(name: str, status: HTTPStatus):
    def shorthand(self) -> None:
        self.fail(status)

    shorthand.__name__ = name
    shorthand.__doc__ = f"Terminate with {int(status)} {status.phrase}."
    return shorthand


for _name, _status in NAMED_STATUSES.items():
    setattr(StatusShorthands, _name, _shorthand(_name, _status))
