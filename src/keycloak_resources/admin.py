"""A declared slice of the Keycloak Admin REST API.

ADMIN_ENDPOINTS lists the endpoints this package knows about; everything
else about them (URL building, headers, parsing) comes from the generic
node runtime. KeycloakAdminClient wires the tree to a RequestsAdapter and
offers a few convenience calls on top.
"""

import logging
from typing import Any

from keycloak_resources.adapter import RequestsAdapter
from keycloak_resources.exceptions import KeycloakConfigError
from keycloak_resources.generator import Endpoint, build_tree
from keycloak_resources.models import (
    AuthenticationFlowRepresentation,
    RealmRepresentation,
    UserRepresentation,
    UserSessionRepresentation,
)
from keycloak_resources.node import BoundNode, NodeBuilder
from keycloak_resources.request import ResponseShape

logger = logging.getLogger(__name__)

REALMS = "/admin/realms"
REALM = REALMS + "/{realm}"
USERS = REALM + "/users"
USER = USERS + "/{user%2Did}"
OFFLINE_SESSIONS = USER + "/offline-sessions/{clientUuid}"
FLOWS = REALM + "/authentication/flows"
FLOW = FLOWS + "/{flowAlias%2Did}"

ADMIN_ENDPOINTS = [
    Endpoint(path=REALMS, method="GET", response_shape=ResponseShape.COLLECTION,
             response_model=RealmRepresentation, description="Get accessible realms"),
    Endpoint(path=REALM, method="GET", response_model=RealmRepresentation,
             description="Get the top-level representation of the realm"),
    Endpoint(path=USERS, method="GET", response_shape=ResponseShape.COLLECTION,
             response_model=UserRepresentation, description="Get users"),
    Endpoint(path=USERS, method="POST", response_shape=ResponseShape.RAW, body_required=True,
             description="Create a new user"),
    Endpoint(path=USER, method="GET", response_model=UserRepresentation,
             description="Get representation of the user"),
    Endpoint(path=USER, method="PUT", response_shape=ResponseShape.NONE, body_required=True,
             description="Update the user"),
    Endpoint(path=USER, method="DELETE", response_shape=ResponseShape.NONE,
             description="Delete the user"),
    Endpoint(path=OFFLINE_SESSIONS, method="GET", response_shape=ResponseShape.COLLECTION,
             response_model=UserSessionRepresentation,
             description="Get offline sessions associated with the user and client"),
    Endpoint(path=FLOWS, method="GET", response_shape=ResponseShape.COLLECTION,
             response_model=AuthenticationFlowRepresentation,
             description="Get authentication flows"),
    Endpoint(path=FLOWS, method="POST", response_shape=ResponseShape.RAW, body_required=True,
             description="Create a new authentication flow"),
    Endpoint(path=FLOW, method="GET", response_model=AuthenticationFlowRepresentation,
             description="Get authentication flow for id"),
    Endpoint(path=FLOW, method="PUT", response_shape=ResponseShape.NONE, body_required=True,
             description="Update an authentication flow"),
    Endpoint(path=FLOW, method="DELETE", response_shape=ResponseShape.NONE,
             description="Delete an authentication flow"),
]


def build_admin_tree() -> NodeBuilder:
    return build_tree(ADMIN_ENDPOINTS)


class KeycloakAdminClient:
    """Client for the Keycloak Admin REST API.

    The whole declared tree is reachable through ``root``; the get_* methods
    are shortcuts for the most common reads.

    Example:
        >>> client = KeycloakAdminClient(
        ...     base_url="http://localhost:8080",
        ...     client_id="admin-cli",
        ...     client_secret="secret",
        ... )
        >>> realm = client.root.admin.realms["master"]
        >>> users = realm.users.get(query={"max": 10})
    """

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        realm: str = "master",
        timeout: float = 10,
    ):
        self.adapter = RequestsAdapter(
            base_url=base_url,
            client_id=client_id,
            client_secret=client_secret,
            realm=realm,
            timeout=timeout,
        )
        self.root = BoundNode.root(build_admin_tree(), self.adapter)

    def realm(self, realm: str) -> BoundNode:
        if not realm:
            raise KeycloakConfigError("realm parameter cannot be empty")
        return self.root.admin.realms[realm]

    def user(self, realm: str, user_id: str) -> BoundNode:
        if not user_id:
            raise KeycloakConfigError("user_id parameter cannot be empty")
        return self.realm(realm).users[user_id]

    def get_realms(self) -> list[RealmRepresentation]:
        """Get a list of all realms in the Keycloak server.

        Raises:
            KeycloakAPIError: If the request fails
        """
        return self.root.admin.realms.get()

    def get_users(self, realm: str, max_users: int = 100, **kwargs: Any) -> list[UserRepresentation]:
        """Get a list of users from a specific realm.

        Args:
            realm: The name of the realm to get users from
            max_users: Maximum number of users to return (default: 100)
            **kwargs: Passed on to the operation (cancellation, headers)

        Raises:
            KeycloakConfigError: If realm is empty
            KeycloakAPIError: If the request fails (e.g., realm doesn't exist)
        """
        return self.realm(realm).users.get(query={"max": max_users}, **kwargs)

    def get_user_info(self, realm: str, user_id: str) -> UserRepresentation:
        """Get detailed information about a specific user.

        Args:
            realm: The name of the realm the user belongs to
            user_id: The unique ID of the user (not the username!)
        """
        return self.user(realm, user_id).get()

    def get_offline_sessions(self, realm: str, user_id: str, client_uuid: str) -> list[UserSessionRepresentation]:
        if not client_uuid:
            raise KeycloakConfigError("client_uuid parameter cannot be empty")
        return self.user(realm, user_id).offline_sessions[client_uuid].get()

    def get_authentication_flows(self, realm: str) -> list[AuthenticationFlowRepresentation]:
        return self.realm(realm).authentication.flows.get()
