"""Pydantic models for Keycloak Admin API representations.

Keycloak speaks camelCase JSON; the models expose snake_case attributes and
accept either form on input. Unknown fields are kept, since Keycloak returns
many more attributes than are declared here.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class KeycloakModel(BaseModel):
    model_config = ConfigDict(
        # Allow extra fields from API that we don't explicitly define
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class RealmRepresentation(KeycloakModel):
    """Represents a Keycloak realm.

    Example JSON from Keycloak API:
    {
        "id": "master",
        "realm": "master",
        "displayName": "Keycloak",
        "enabled": true,
        "sslRequired": "external",
        ...
    }
    """

    id: str | None = None
    realm: str
    display_name: str | None = None
    enabled: bool | None = None
    ssl_required: str | None = None
    registration_allowed: bool | None = None
    login_with_email_allowed: bool | None = None


class UserRepresentation(KeycloakModel):
    """Represents a Keycloak user.

    Example JSON from Keycloak API:
    {
        "id": "8a9b1c2d-3e4f-5a6b-7c8d-9e0f1a2b3c4d",
        "username": "john.doe",
        "enabled": true,
        "emailVerified": false,
        "firstName": "John",
        "lastName": "Doe",
        "email": "john.doe@example.com",
        "createdTimestamp": 1609459200000
    }

    id is optional so the same model can be posted to create a user.
    """

    id: str | None = None
    username: str
    enabled: bool | None = None
    email_verified: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    created_timestamp: int | None = None


class UserSessionRepresentation(KeycloakModel):
    """Represents a user session, as listed under offline-sessions."""

    id: str
    username: str | None = None
    user_id: str | None = None
    ip_address: str | None = None
    start: int | None = None
    last_access: int | None = None
    remember_me: bool | None = None
    clients: dict[str, str] | None = None


class AuthenticationFlowRepresentation(KeycloakModel):
    """Represents an authentication flow.

    Example JSON:
    {
        "id": "0c3e...",
        "alias": "browser",
        "description": "browser based authentication",
        "providerId": "basic-flow",
        "topLevel": true,
        "builtIn": true
    }
    """

    id: str | None = None
    alias: str
    description: str | None = None
    provider_id: str | None = None
    top_level: bool | None = None
    built_in: bool | None = None


class TokenResponse(BaseModel):
    """Represents an OAuth2 token response.

    Field names are snake_case on the wire, so no aliases are applied.

    Example JSON:
    {
        "access_token": "eyJhbGciOiJSUzI1NiIs...",
        "expires_in": 300,
        "refresh_expires_in": 1800,
        "token_type": "Bearer",
        "not-before-policy": 0,
        "scope": "profile email"
    }
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    expires_in: int
    refresh_expires_in: int | None = None
    token_type: str
    scope: str | None = None
