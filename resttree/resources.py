"""
Resource capability records.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Callable, List, Optional

from .models import HTTPMethod

Capability = Callable[..., Any]

CAPABILITIES = ("get", "count", "list", "put", "delete", "post")


@dataclass(frozen=True)
class ResourceSpec:
    """The operations a resource supports.

    Each field is an optional callable following the adapter contract:

    - ``get(request, respond)``
    - ``count(request, callback(err, count))``
    - ``list(request, skip, limit, callback(err, items))``
    - ``put(request, is_patch, respond)``
    - ``delete(request, respond)``
    - ``post(request, respond)``

    Any of them may be a coroutine function.
    """

    get: Optional[Capability] = None
    count: Optional[Capability] = None
    list: Optional[Capability] = None
    put: Optional[Capability] = None
    delete: Optional[Capability] = None
    post: Optional[Capability] = None

    @property
    def is_listable(self) -> bool:
        return self.count is not None and self.list is not None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def with_capability(self, name: str, func: Optional[Capability]) -> "ResourceSpec":
        """Return a copy with capability ``name`` set to ``func``."""
        if name not in CAPABILITIES:
            raise ValueError(f"Unknown capability: {name}")
        return replace(self, **{name: func})

    def allowed_methods(self) -> List[HTTPMethod]:
        """HTTP methods this spec can answer."""
        methods = []
        if self.get is not None or self.is_listable:
            methods.extend([HTTPMethod.GET, HTTPMethod.HEAD])
        if self.put is not None:
            methods.extend([HTTPMethod.PUT, HTTPMethod.PATCH])
        if self.delete is not None:
            methods.append(HTTPMethod.DELETE)
        if self.post is not None:
            methods.append(HTTPMethod.POST)
        return methods

    def __repr__(self):
        present = [name for name in CAPABILITIES if getattr(self, name) is not None]
        return f"ResourceSpec({', '.join(present)})"
