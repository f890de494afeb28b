"""
Native resource adapter serving plain Python containers from memory.

::

    store = {"settings": {"theme": "dark"}, "books": []}
    native(app.resource("store"), store)

    # GET  /store/settings/theme -> "dark"
    # POST /store/books          -> appends the body, 201 {"index": 0}
    # GET  /store/books          -> {"_count": 1, "_items": [...]}

Dicts are addressed by key and lists by index. The adapter keeps no copy:
requests read and mutate ``data`` directly.
"""

import logging
from typing import Any, Optional, Tuple

from .resources import ResourceSpec
from .tree import ResourceNode, split_path

logger = logging.getLogger(__name__)


def _child(container: Any, key: str) -> Tuple[Any, Any]:
    """Return ``(index_or_key, value)`` of ``key`` in ``container``.

    Raises:
        LookupError: If ``key`` does not address anything in ``container``
    """
    if isinstance(container, dict):
        if key not in container:
            raise KeyError(key)
        return key, container[key]
    if isinstance(container, list):
        try:
            index = int(key)
        except ValueError:
            raise LookupError(f"Not a list index: {key}")
        if index < 0 or index >= len(container):
            raise IndexError(index)
        return index, container[index]
    raise LookupError(f"{type(container).__name__} has no children")


class NativeResource:
    """Builds resource specs for paths inside a dict/list structure."""

    def __init__(self, data: Any):
        if not isinstance(data, (dict, list)):
            raise TypeError("Native resources must be a dict or a list")
        self.data = data

    def resolve(self, path: str) -> Optional[ResourceSpec]:
        """Return the resource spec for ``path`` relative to the data, or None."""
        parent: Any = None
        key: Any = None
        value = self.data
        try:
            for segment in split_path(path):
                parent = value
                key, value = _child(value, segment)
        except LookupError:
            logger.debug(f"Native path '{path}' does not exist")
            return None

        if isinstance(value, dict):
            return self._object_spec(parent, key, value)
        if isinstance(value, list):
            return self._collection_spec(parent, key, value)
        return self._value_spec(parent, key)

    def _remover(self, parent: Any, key: Any):
        if parent is None:
            return None

        def delete(request, respond):
            if isinstance(parent, list):
                parent.pop(key)
            else:
                del parent[key]
            respond()

        return delete

    def _object_spec(self, parent: Any, key: Any, value: dict) -> ResourceSpec:
        def get(request, respond):
            respond(None, value)

        def put(request, is_patch, respond):
            if not isinstance(request.body, dict):
                respond.status(400, "Expected an object body")
                return
            if not is_patch:
                value.clear()
            value.update(request.body)
            respond()

        return ResourceSpec(get=get, put=put, delete=self._remover(parent, key))

    def _collection_spec(self, parent: Any, key: Any, value: list) -> ResourceSpec:
        def count(request, callback):
            callback(None, len(value))

        def list_items(request, skip, limit, callback):
            callback(None, value[skip:skip + limit])

        def put(request, is_patch, respond):
            if not isinstance(request.body, list):
                respond.status(400, "Expected an array body")
                return
            if not is_patch:
                value.clear()
            value.extend(request.body)
            respond()

        def post(request, respond):
            value.append(request.body)
            respond.status(201, {"index": len(value) - 1})

        return ResourceSpec(
            count=count,
            list=list_items,
            put=put,
            post=post,
            delete=self._remover(parent, key),
        )

    def _value_spec(self, parent: Any, key: Any) -> ResourceSpec:
        def get(request, respond):
            respond(None, parent[key])

        def put(request, is_patch, respond):
            # Scalars have nothing to merge, PATCH replaces too
            parent[key] = request.body
            respond()

        return ResourceSpec(get=get, put=put, delete=self._remover(parent, key))


def native(node: ResourceNode, data: Any) -> ResourceNode:
    """Serve ``data`` at ``node`` and every path below it."""
    adapter = NativeResource(data)
    node.resolver(lambda params: adapter.resolve(""))
    node.sub("*path").resolver(lambda params: adapter.resolve(params.get("path", "")))
    return node
