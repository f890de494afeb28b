"""Resource tree: registration of named resources and path matching."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import RouteDefinitionError
from .hooks import Hook
from .resources import Capability, ResourceSpec

logger = logging.getLogger(__name__)

Resolver = Callable[[Dict[str, str]], Optional[ResourceSpec]]


@dataclass
class MatchResult:
    """Outcome of matching a request path against the tree."""

    spec: Optional[ResourceSpec] = None
    params: Dict[str, str] = field(default_factory=dict)
    hooks: Tuple[Hook, ...] = ()

    @property
    def found(self) -> bool:
        return self.spec is not None


def split_path(path: str) -> List[str]:
    """Split a path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


def _wildcard_name(segment: str) -> Optional[str]:
    # ``**`` binds the rest of the path to ``path``, ``*name`` to ``name``
    if segment == "**":
        return "path"
    if segment.startswith("*") and len(segment) > 1:
        return segment[1:]
    return None


def _param_name(segment: str) -> Optional[str]:
    if segment.startswith("{") and segment.endswith("}") and len(segment) > 2:
        return segment[1:-1]
    return None


class ResourceNode:
    """A node of the resource tree.

    Each node represents a path segment and can have:

    - static_children: Dict mapping exact segment strings to child nodes
    - param_child: Single child bound to one segment (e.g., ``{id}``)
    - wildcard_child: Single child bound to the rest of the path (``*path``)
    - spec: The capabilities served at this path
    - hooks: Pre-dispatch hooks for this node and everything below it

    Builder methods return the node itself so definitions chain::

        books = tree.resource("books").list(list_books).count(count_books)
        books.sub("{id}").get(get_book).put(update_book).delete(delete_book)
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.spec = ResourceSpec()
        self.hooks: List[Hook] = []
        self.static_children: Dict[str, "ResourceNode"] = {}
        self.param_child: Optional[Tuple[str, "ResourceNode"]] = None
        self.wildcard_child: Optional[Tuple[str, "ResourceNode"]] = None
        self._resolver: Optional[Resolver] = None

    def __repr__(self):
        return f"ResourceNode({self.name!r}, {self.spec!r})"

    # Capability builders

    def _set(self, name: str, func: Capability) -> "ResourceNode":
        self.spec = self.spec.with_capability(name, func)
        return self

    def get(self, func: Capability) -> "ResourceNode":
        return self._set("get", func)

    def count(self, func: Capability) -> "ResourceNode":
        return self._set("count", func)

    def list(self, func: Capability) -> "ResourceNode":
        return self._set("list", func)

    def put(self, func: Capability) -> "ResourceNode":
        return self._set("put", func)

    def delete(self, func: Capability) -> "ResourceNode":
        return self._set("delete", func)

    def post(self, func: Capability) -> "ResourceNode":
        return self._set("post", func)

    def hook(self, func: Hook) -> "ResourceNode":
        """Add a hook run before any request to this node or its descendants."""
        self.hooks.append(func)
        return self

    def resolver(self, func: Resolver) -> "ResourceNode":
        """Build the resource spec per request from the matched path parameters.

        The resolver returns a :class:`ResourceSpec`, or ``None`` when nothing
        exists at the requested path.
        """
        self._resolver = func
        return self

    # Tree structure

    def sub(self, path: str) -> "ResourceNode":
        """Return the descendant node at ``path``, creating missing nodes."""
        segments = split_path(path)
        if not segments:
            return self

        node = self
        for position, segment in enumerate(segments):
            node = node._child(segment, last=position == len(segments) - 1)
        return node

    def _child(self, segment: str, last: bool) -> "ResourceNode":
        wildcard = _wildcard_name(segment)
        if wildcard is not None:
            if not last:
                raise RouteDefinitionError(f"Wildcard segment '{segment}' must be the last segment")
            if self.wildcard_child is None:
                self.wildcard_child = (wildcard, ResourceNode(segment))
            elif self.wildcard_child[0] != wildcard:
                raise RouteDefinitionError(
                    f"Wildcard '{segment}' conflicts with existing '*{self.wildcard_child[0]}'"
                )
            return self.wildcard_child[1]

        param = _param_name(segment)
        if param is not None:
            if self.param_child is None:
                self.param_child = (param, ResourceNode(segment))
            elif self.param_child[0] != param:
                raise RouteDefinitionError(
                    f"Parameter '{segment}' conflicts with existing '{{{self.param_child[0]}}}'"
                )
            return self.param_child[1]

        if segment not in self.static_children:
            self.static_children[segment] = ResourceNode(segment)
        return self.static_children[segment]

    def remove(self, path: str) -> bool:
        """Remove the descendant at ``path`` and its subtree.

        Returns:
            True if something was removed
        """
        segments = split_path(path)
        if not segments:
            raise RouteDefinitionError("Cannot remove a node from itself")

        parent = self
        for segment in segments[:-1]:
            parent = parent._existing_child(segment)
            if parent is None:
                return False

        last = segments[-1]
        if _wildcard_name(last) is not None:
            removed = parent.wildcard_child is not None
            parent.wildcard_child = None
        elif _param_name(last) is not None:
            removed = parent.param_child is not None
            parent.param_child = None
        else:
            removed = parent.static_children.pop(last, None) is not None

        if removed:
            logger.debug(f"Removed resource '{path}'")
        return removed

    def _existing_child(self, segment: str) -> Optional["ResourceNode"]:
        if _wildcard_name(segment) is not None:
            return self.wildcard_child[1] if self.wildcard_child else None
        if _param_name(segment) is not None:
            return self.param_child[1] if self.param_child else None
        return self.static_children.get(segment)

    # Matching

    def resolve_spec(self, params: Dict[str, str]) -> Optional[ResourceSpec]:
        """The resource spec served at this node for ``params``, or None."""
        if self._resolver is not None:
            return self._resolver(params)
        if self.spec.is_empty:
            return None
        return self.spec

    def match(self, segments: List[str]) -> Optional[Tuple["ResourceNode", Dict[str, str], List[Hook]]]:
        """Match path segments below this node.

        Static children are tried first (most specific), then the parameter
        child, then the wildcard. Only nodes that serve something match.

        Returns:
            Tuple of (node, path_params, hooks) if matched, None otherwise.
            Hooks are ordered from this node down to the matched node.
        """
        if not segments:
            if self._resolver is None and self.spec.is_empty:
                # Wildcard that matches the empty rest of the path
                if self.wildcard_child is not None:
                    name, child = self.wildcard_child
                    if child._resolver is not None or not child.spec.is_empty:
                        return child, {name: ""}, self.hooks + child.hooks
                return None
            return self, {}, list(self.hooks)

        segment = segments[0]
        remaining = segments[1:]

        if segment in self.static_children:
            result = self.static_children[segment].match(remaining)
            if result:
                node, params, hooks = result
                return node, params, self.hooks + hooks

        if self.param_child is not None:
            name, child = self.param_child
            result = child.match(remaining)
            if result:
                node, params, hooks = result
                params[name] = segment
                return node, params, self.hooks + hooks

        if self.wildcard_child is not None:
            name, child = self.wildcard_child
            if child._resolver is not None or not child.spec.is_empty:
                return child, {name: "/".join(segments)}, self.hooks + child.hooks

        return None


class ResourceTree:
    """The registry of top-level resources and the path matcher.

    Hooks added to the tree itself run before every matched request.
    """

    def __init__(self):
        self.root = ResourceNode()

    def resource(self, name: str) -> ResourceNode:
        """Return the node for ``name`` (a single name or a nested path)."""
        return self.root.sub(name)

    def remove(self, name: str) -> bool:
        """Remove the resource ``name`` and everything below it."""
        return self.root.remove(name)

    def hook(self, func: Hook) -> "ResourceTree":
        self.root.hook(func)
        return self

    def match(self, path: str) -> MatchResult:
        """Match ``path`` and return the resource spec, path parameters and hooks."""
        result = self.root.match(split_path(path))
        if result is None:
            return MatchResult()

        node, params, hooks = result
        spec = node.resolve_spec(params)
        if spec is None:
            return MatchResult(params=params)
        return MatchResult(spec=spec, params=params, hooks=tuple(hooks))
