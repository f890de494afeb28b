"""
A request-dispatch layer exposing a tree of named resources as a uniform
REST interface.

Resources declare which capabilities they support (single-item fetch,
paginated listing, create, update, delete); the pipeline maps requests onto
them, runs pre-dispatch hooks, applies pagination defaults and turns errors
into status codes.
"""

from http import HTTPStatus

from .application import ResourceApplication
from .body import Body, Empty, Raw, Stream
from .config import Options
from .exceptions import RestTreeError, RouteDefinitionError
from .hooks import Continuation, HookChain
from .models import HTTPMethod, Request, Response, ResponseSink
from .native import native
from .resources import ResourceSpec
from .responder import Responder
from .status import NAMED_STATUSES, HTTPError, http_status
from .tree import MatchResult, ResourceNode, ResourceTree

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "ResourceApplication",
    "ResourceTree",
    "ResourceNode",
    "ResourceSpec",
    "MatchResult",
    "Request",
    "Response",
    "ResponseSink",
    "HTTPMethod",
    "HTTPStatus",
    "HTTPError",
    "NAMED_STATUSES",
    "http_status",
    "Responder",
    "Continuation",
    "HookChain",
    "Body",
    "Empty",
    "Stream",
    "Raw",
    "Options",
    "RestTreeError",
    "RouteDefinitionError",
    "native",
]
