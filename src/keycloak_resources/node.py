"""The resource node tree.

A NodeBuilder tree describes the shape of an API: literal children, at most
one indexable child per node, and the operations valid at each position.
BoundNode walks that tree at runtime. Every descent returns a new node with
its own copy of the bound path parameters, so nodes never share mutable
state and can be used from several threads at once.

Example:
    >>> root = BoundNode.root(build_admin_tree(), adapter)
    >>> sessions = root.admin.realms["master"].users[user_id].offline_sessions
    >>> sessions[client_uuid].get()
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from keycloak_resources.adapter import RequestAdapter
from keycloak_resources.cancellation import CancellationToken
from keycloak_resources.exceptions import (
    ArgumentMissingError,
    KeycloakError,
    RequestCancelledError,
    TemplateError,
    UnsupportedOperationError,
)
from keycloak_resources.request import HttpMethod, Operation, RequestSpec
from keycloak_resources.templates import PathTemplate, SegmentKind

logger = logging.getLogger(__name__)

BASE_URL_PLACEHOLDER = "baseurl"


class NodeBuilder:
    """One position in the static resource tree.

    Attributes:
        segment: The literal segment or placeholder name of this node
            (None for the root)
        kind: Whether the segment is a literal or a placeholder
        children: Literal children keyed by segment
        item: The indexable child, bound through ``node[identifier]``
        operations: Operations valid at this node, keyed by HTTP verb
    """

    def __init__(self, segment: str | None = None, kind: SegmentKind = SegmentKind.LITERAL):
        self.segment = segment
        self.kind = kind
        self.children: dict[str, NodeBuilder] = {}
        self.item: NodeBuilder | None = None
        self.operations: dict[str, Operation] = {}
        # Placeholder names from the source paths, for merged items
        self.source_names: set[str] = set()

    def add_child(self, segment: str) -> "NodeBuilder":
        """Return the literal child for segment, creating it if needed."""
        if not segment:
            raise TemplateError("Literal segments cannot be empty")
        if segment not in self.children:
            self.children[segment] = NodeBuilder(segment)
        return self.children[segment]

    def add_item(self, placeholder: str) -> "NodeBuilder":
        """Return the indexable child bound to placeholder, creating it if needed.

        When paths name the same position differently (``flows/{id}`` and
        ``flows/{flowAlias}/copy``), the names are merged into one
        hyphen-joined placeholder (``flowAlias-id``) shared by all of them.
        """
        if self.item is None:
            self.item = NodeBuilder(placeholder, SegmentKind.PLACEHOLDER)
            self.item.source_names.add(placeholder)
        elif placeholder != self.item.segment and placeholder not in self.item.source_names:
            self.item.source_names.add(placeholder)
            merged = "-".join(sorted(self.item.source_names))
            logger.debug(f"Merging placeholders at one position into '{merged}'")
            self.item.segment = merged
        return self.item

    def add_operation(self, operation: Operation) -> None:
        if operation.method in self.operations:
            raise TemplateError(f"Operation {operation.method} declared twice at '{self.segment}'")
        self.operations[operation.method] = operation

    def __repr__(self) -> str:
        return f"NodeBuilder(segment={self.segment!r}, kind={self.kind.value})"


class BoundNode:
    """A NodeBuilder position with bound path parameters.

    Nodes are immutable once constructed. Building a node never performs I/O;
    only the operation methods (get, post, put, patch, delete, request) talk
    to the adapter.
    """

    def __init__(
        self,
        builder: NodeBuilder,
        adapter: RequestAdapter,
        url_template: PathTemplate | str,
        path_parameters: Mapping[str, Any] | None = None,
        raw_url: str | None = None,
    ):
        if isinstance(url_template, str):
            url_template = PathTemplate.parse(url_template)
        self._builder = builder
        self._adapter = adapter
        self._template = url_template
        self._path_parameters = MappingProxyType(dict(path_parameters or {}))
        self._raw_url = raw_url

    @classmethod
    def root(cls, builder: NodeBuilder, adapter: RequestAdapter) -> "BoundNode":
        """Bind the root of a tree; its template is ``{+baseurl}``."""
        return cls(builder, adapter, PathTemplate(base=BASE_URL_PLACEHOLDER))

    @property
    def url_template(self) -> PathTemplate:
        return self._template

    @property
    def path_parameters(self) -> Mapping[str, Any]:
        return self._path_parameters

    @property
    def raw_url(self) -> str | None:
        return self._raw_url

    @property
    def adapter(self) -> RequestAdapter:
        return self._adapter

    @property
    def operations(self) -> Mapping[str, Operation]:
        return MappingProxyType(self._builder.operations)

    # -------------------------------------------------------------------------
    # Tree descent
    # -------------------------------------------------------------------------

    def child(self, segment: str) -> "BoundNode":
        """Descend into a literal sub-resource.

        Raises:
            KeyError: If the node has no child with that segment
        """
        builder = self._builder.children[segment]
        return BoundNode(
            builder,
            self._adapter,
            self._template.extend(segment),
            self._path_parameters,
            self._raw_url,
        )

    def __getattr__(self, name: str) -> "BoundNode":
        # Only reached when normal lookup fails; maps offline_sessions to offline-sessions
        if name.startswith("_"):
            raise AttributeError(name)
        children = self.__dict__["_builder"].children
        for candidate in (name, name.replace("_", "-")):
            if candidate in children:
                return self.child(candidate)
        raise AttributeError(f"'{self._template}' has no child resource '{name}'")

    def __getitem__(self, identifier: str) -> "BoundNode":
        """Descend into the indexable child, binding its placeholder to identifier."""
        item = self._builder.item
        if item is None:
            raise UnsupportedOperationError(f"'{self._template}' is not an indexable collection")
        if identifier is None or identifier == "":
            raise ArgumentMissingError(item.segment)

        parameters = dict(self._path_parameters)
        parameters[item.segment] = identifier
        return BoundNode(
            item,
            self._adapter,
            self._template.extend_placeholder(item.segment),
            parameters,
            self._raw_url,
        )

    def with_url(self, raw_url: str) -> "BoundNode":
        """Return a node that sends its requests to raw_url as is.

        Path and query parameters are ignored by such a node. This is how
        server-provided links (pagination, Location headers) are followed.
        """
        if not raw_url:
            raise ArgumentMissingError("raw_url")
        return BoundNode(self._builder, self._adapter, self._template, raw_url=raw_url)

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    def to_request_spec(
        self,
        method: HttpMethod,
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestSpec:
        """Build the request for one operation without sending it.

        Raises:
            UnsupportedOperationError: If the verb is not valid at this node
            ArgumentMissingError: If a required body is missing
            UnresolvedPathError: If a placeholder is unbound
        """
        operation = self._operation(method)
        if operation.body_required and body is None:
            raise ArgumentMissingError("body")

        request_headers = dict(headers or {})
        if operation.accept:
            _set_default_header(request_headers, "Accept", operation.accept)

        content = None
        if body is not None:
            content = self._adapter.serialize(body, operation.content_type)
            _set_default_header(request_headers, "Content-Type", operation.content_type)

        if self._raw_url is not None:
            url = self._raw_url
            query_parameters = {}
        else:
            bindings = {BASE_URL_PLACEHOLDER: self._adapter.base_url, **self._path_parameters}
            url = self._template.render(bindings)
            query_parameters = {k: v for k, v in (query or {}).items() if v is not None}

        logger.debug(f"Built {operation.method} request for {self._template}")
        return RequestSpec(
            method=operation.method,
            url=url,
            headers=request_headers,
            body=content,
            query=query_parameters,
        )

    def request(
        self,
        method: HttpMethod,
        body: Any = None,
        *,
        query: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """Build and send one request, returning the operation's result shape.

        Adapter failures propagate unchanged. No retries happen here.

        Raises:
            RequestCancelledError: If the cancellation token fires first
        """
        request = self.to_request_spec(method, body, query, headers)
        operation = self._operation(method)
        return execute(self._adapter, request, operation, cancellation)

    def get(self, *, query=None, headers=None, cancellation=None) -> Any:
        return self.request("GET", query=query, headers=headers, cancellation=cancellation)

    def post(self, body=None, *, query=None, headers=None, cancellation=None) -> Any:
        return self.request("POST", body, query=query, headers=headers, cancellation=cancellation)

    def put(self, body=None, *, query=None, headers=None, cancellation=None) -> Any:
        return self.request("PUT", body, query=query, headers=headers, cancellation=cancellation)

    def patch(self, body=None, *, query=None, headers=None, cancellation=None) -> Any:
        return self.request("PATCH", body, query=query, headers=headers, cancellation=cancellation)

    def delete(self, *, query=None, headers=None, cancellation=None) -> Any:
        return self.request("DELETE", query=query, headers=headers, cancellation=cancellation)

    def _operation(self, method: str) -> Operation:
        operation = self._builder.operations.get(method.upper())
        if operation is None:
            raise UnsupportedOperationError(f"{method.upper()} is not supported at '{self._template}'")
        return operation

    def __repr__(self) -> str:
        target = self._raw_url or str(self._template)
        return f"BoundNode({target!r}, path_parameters={dict(self._path_parameters)!r})"


def execute(
    adapter: RequestAdapter,
    request: RequestSpec,
    operation: Operation,
    cancellation: CancellationToken | None = None,
) -> Any:
    """Send request through adapter and return the result for operation.

    When a cancellation token is given, the adapter's abort hook is
    registered for the duration of the call. Once the token fires the
    result, if any, is discarded and RequestCancelledError is raised.
    """
    if cancellation is None:
        return adapter.send(request, operation.response_shape, operation.factory)

    if cancellation.cancelled:
        raise RequestCancelledError(f"{request.method} {request.url} cancelled before sending")

    unregister = cancellation.register(lambda: adapter.abort(request))
    try:
        result = adapter.send(request, operation.response_shape, operation.factory)
    except KeycloakError as e:
        if cancellation.cancelled:
            raise RequestCancelledError(f"{request.method} {request.url} cancelled") from e
        raise
    finally:
        unregister()

    if cancellation.cancelled:
        raise RequestCancelledError(f"{request.method} {request.url} cancelled")
    return result


def _set_default_header(headers: dict[str, str], name: str, value: str) -> None:
    if not any(key.lower() == name.lower() for key in headers):
        headers[name] = value
