"""
Core data models: the request seen by hooks and resources, and the response
sink the pipeline writes to.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Union

# Set up logger for this module
logger = logging.getLogger(__name__)


class HTTPMethod(Enum):
    """Enumeration of the HTTP methods the dispatcher maps onto capabilities."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Union["HTTPMethod", str]) -> "HTTPMethod":
        """Parse a method name case-insensitively.

        Raises:
            ValueError: If the method is not one of the enumerated methods
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).upper())

    @classmethod
    def normalize(cls, value: Union["HTTPMethod", str]) -> Union["HTTPMethod", str]:
        """Return the enum member for ``value``, or its uppercase name.

        Extension methods such as ``PROPFIND`` or ``TRACE`` stay plain
        strings; the dispatcher answers them with 405.

        Raises:
            ValueError: If ``value`` is empty
        """
        try:
            return cls.parse(value)
        except ValueError:
            name = str(value).strip().upper()
            if not name:
                raise ValueError("HTTP method must not be empty")
            return name


@dataclass
class Request:
    """Represents an inbound request.

    ``params`` holds the path-derived parameters merged in by the pipeline,
    ``query_params`` the query string, and ``body`` the already decoded body
    (a dict for JSON or form content, bytes otherwise).
    """

    method: Union[HTTPMethod, str]
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self):
        self.method = HTTPMethod.normalize(self.method)
        # Header lookups are case-insensitive
        self.headers = {name.lower(): value for name, value in (self.headers or {}).items()}
        if self.query_params is None:
            self.query_params = {}
        if self.params is None:
            self.params = {}

    def param(self, name: str, default: Any = None) -> Any:
        """Look up a request parameter.

        Path parameters come first, then fields of a dict body, then the
        query string.
        """
        if name in self.params:
            return self.params[name]
        if isinstance(self.body, dict) and name in self.body:
            return self.body[name]
        return self.query_params.get(name, default)

    @property
    def method_name(self) -> str:
        """The wire name of the method, e.g. ``"GET"`` or ``"PROPFIND"``."""
        return self.method.value if isinstance(self.method, HTTPMethod) else self.method

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value (case-insensitive)."""
        return self.headers.get(name.lower(), default)

    def get_content_type(self) -> Optional[str]:
        """Get the Content-Type header."""
        return self.get_header("content-type")


class ResponseSink(ABC):
    """Interface the pipeline writes responses to.

    Transports implement it; :class:`Response` is the in-memory implementation
    used by the ASGI bridge and by tests.
    """

    @abstractmethod
    def send(self, body: Any, status_code: Optional[int] = None) -> None:
        """Send a complete body, optionally with a status code."""
        pass

    @abstractmethod
    def type(self, mime: str) -> None:
        """Set the content type of the response."""
        pass

    @abstractmethod
    def sendfile(self, path: Union[str, Path]) -> None:
        """Send the file at ``path``."""
        pass

    @abstractmethod
    def stream(self, handle: BinaryIO) -> None:
        """Pipe a readable binary stream to the client."""
        pass


@dataclass
class Response(ResponseSink):
    """Represents an HTTP response.

    The body can be:

    - str: Sent as UTF-8 text
    - bytes: Used directly
    - dict/list: JSON-encoded by the transport
    - BinaryIO: Streamed in chunks (see :meth:`stream`)
    - Path: A file sent through :meth:`sendfile`
    - None: Empty response body
    """

    status_code: int = HTTPStatus.OK
    body: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: Optional[str] = None
    finished: bool = False

    def send(self, body: Any, status_code: Optional[int] = None) -> None:
        if self.finished:
            logger.warning("Response already sent, ignoring additional body")
            return
        if status_code is not None:
            self.status_code = int(status_code)
        # 204 and 304 never carry a body
        if self.status_code in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED):
            body = None
        self.body = body
        self.finished = True

    def type(self, mime: str) -> None:
        self.content_type = mime
        self.headers["Content-Type"] = mime

    def sendfile(self, path: Union[str, Path]) -> None:
        self.send(Path(path))

    def stream(self, handle: BinaryIO) -> None:
        self.send(handle)

    @property
    def is_file(self) -> bool:
        return isinstance(self.body, Path)
