"""Build NodeBuilder trees from endpoint descriptions.

An API description is resolved into a flat list of Endpoint tuples (path,
verb, response shape, response model). build_tree folds them into the
recursive NodeBuilder tree that BoundNode walks at runtime, so one generic
runtime serves every path instead of one generated class per segment.

Typical usage::

    endpoints = endpoints_from_openapi(document, models={"UserRepresentation": UserRepresentation})
    root = BoundNode.root(build_tree(endpoints), adapter)
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from keycloak_resources.exceptions import TemplateError
from keycloak_resources.node import NodeBuilder
from keycloak_resources.request import JSON_CONTENT_TYPE, HttpMethod, Operation, ResponseShape
from keycloak_resources.templates import PathTemplate

logger = logging.getLogger(__name__)

_HTTP_METHODS = ("get", "post", "put", "patch", "delete")
_NO_CONTENT_METHODS = ("PUT", "PATCH", "DELETE")


class Endpoint(BaseModel):
    """One (path, verb) pair of an API description."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    path: str
    method: HttpMethod
    response_shape: ResponseShape = ResponseShape.OBJECT
    response_model: Any = None
    body_required: bool = False
    description: str = ""

    def to_operation(self) -> Operation:
        return Operation(
            method=self.method,
            response_shape=self.response_shape,
            response_model=self.response_model,
            body_required=self.body_required,
            accept=None if self.response_shape in (ResponseShape.RAW, ResponseShape.NONE) else JSON_CONTENT_TYPE,
            description=self.description,
        )


def build_tree(endpoints: Iterable[Endpoint]) -> NodeBuilder:
    """Fold endpoints into a NodeBuilder tree rooted at ``{+baseurl}``.

    Raises:
        TemplateError: If a path is malformed or a (path, verb) pair is
            declared twice. Different placeholder names at one position are
            merged, see NodeBuilder.add_item.
    """
    root = NodeBuilder()
    count = 0
    for endpoint in endpoints:
        template = PathTemplate.parse(endpoint.path)
        if template.base:
            raise TemplateError(f"Endpoint paths must be relative to the base URL: {endpoint.path!r}")

        node = root
        for segment in template.segments:
            if segment.is_placeholder:
                node = node.add_item(segment.value)
            else:
                node = node.add_child(segment.value)
        node.add_operation(endpoint.to_operation())
        count += 1

    logger.debug(f"Built resource tree from {count} endpoints")
    return root


def endpoints_from_openapi(
    document: Mapping[str, Any],
    models: Mapping[str, Any] | None = None,
) -> list[Endpoint]:
    """Resolve the ``paths`` object of an OpenAPI 3 document into Endpoints.

    The response shape is read from the JSON schema of the first 2xx
    response: an array becomes COLLECTION, anything else OBJECT. Without a
    JSON schema, GET and POST return RAW and the other verbs NONE.

    Args:
        document: The parsed OpenAPI document
        models: Maps schema names (the last part of ``$ref``) to the
            model classes that parse them
    """
    models = models or {}
    endpoints = []
    for path, item in document.get("paths", {}).items():
        for method in _HTTP_METHODS:
            spec = item.get(method)
            if spec is None:
                continue
            verb = method.upper()
            shape, model = _response_shape(verb, spec.get("responses", {}), models)
            endpoints.append(
                Endpoint(
                    path=path,
                    method=verb,
                    response_shape=shape,
                    response_model=model,
                    body_required=bool(spec.get("requestBody", {}).get("required", False)),
                    description=spec.get("summary", ""),
                )
            )
    return endpoints


def _response_shape(
    method: str,
    responses: Mapping[str, Any],
    models: Mapping[str, Any],
) -> tuple[ResponseShape, Any]:
    for status in sorted(responses, key=str):
        if not str(status).startswith("2"):
            continue
        schema = responses[status].get("content", {}).get(JSON_CONTENT_TYPE, {}).get("schema")
        if not schema:
            break
        if schema.get("type") == "array":
            return ResponseShape.COLLECTION, _model_for(schema.get("items", {}), models)
        return ResponseShape.OBJECT, _model_for(schema, models)

    if method in _NO_CONTENT_METHODS:
        return ResponseShape.NONE, None
    return ResponseShape.RAW, None


def _model_for(schema: Mapping[str, Any], models: Mapping[str, Any]) -> Any:
    ref = schema.get("$ref")
    if not ref:
        return None
    return models.get(ref.rsplit("/", 1)[-1])
