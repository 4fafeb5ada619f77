"""A typed REST client runtime built from path-templated resource trees."""

from keycloak_resources.adapter import RequestAdapter, RequestsAdapter
from keycloak_resources.admin import KeycloakAdminClient
from keycloak_resources.cancellation import CancellationToken
from keycloak_resources.generator import Endpoint, build_tree, endpoints_from_openapi
from keycloak_resources.node import BoundNode, NodeBuilder
from keycloak_resources.request import Operation, RequestSpec, ResponseShape
from keycloak_resources.templates import PathTemplate

__all__ = [
    "BoundNode",
    "CancellationToken",
    "Endpoint",
    "KeycloakAdminClient",
    "NodeBuilder",
    "Operation",
    "PathTemplate",
    "RequestAdapter",
    "RequestSpec",
    "RequestsAdapter",
    "ResponseShape",
    "build_tree",
    "endpoints_from_openapi",
]
