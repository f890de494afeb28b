"""
Custom exceptions for the resource tree.

HTTP outcomes are not exceptions of this module; they are modelled by
:class:`resttree.status.HTTPError`. The classes below flag programming errors
made while building or wiring a resource tree.
"""


class RestTreeError(Exception):
    """Base exception for resource tree errors."""

    pass


class RouteDefinitionError(RestTreeError, ValueError):
    """Raised when a resource path cannot be registered."""

    pass
