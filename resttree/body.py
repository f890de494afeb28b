"""
Response body variants.

A handler can hand an explicit :class:`Body` to its responder. Plain values
are classified once by :func:`classify`, so the response writer only ever
deals with the three variants below.
"""

import io
from dataclasses import dataclass
from typing import Any, BinaryIO


class Body:
    """Base class of the response body variants."""

    __slots__ = ()


@dataclass(frozen=True)
class Empty(Body):
    """No body at all; answered with 204 No Content."""


@dataclass(frozen=True)
class Stream(Body):
    """A readable binary stream piped to the transport without buffering."""

    handle: BinaryIO


@dataclass(frozen=True)
class Raw(Body):
    """Any other value, serialized by the transport."""

    value: Any


def classify(value: Any) -> Body:
    """Map a handler result to a body variant."""
    if isinstance(value, Body):
        return value
    if value is None:
        return Empty()
    if isinstance(value, io.IOBase):
        return Stream(value)
    return Raw(value)
