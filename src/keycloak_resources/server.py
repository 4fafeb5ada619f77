"""Keycloak MCP Server.

Exposes the declared Keycloak Admin tree as MCP (Model Context Protocol)
tools, so AI assistants can read realms, users, offline sessions and
authentication flows.
"""

import logging
import sys

from fastmcp import FastMCP

from keycloak_resources.admin import KeycloakAdminClient
from keycloak_resources.config import load_settings
from keycloak_resources.exceptions import KeycloakConfigError

logger = logging.getLogger(__name__)

mcp = FastMCP("keycloak-resources")

# Set by main() before the server starts handling tool calls
keycloak_client: KeycloakAdminClient | None = None


def _client() -> KeycloakAdminClient:
    if keycloak_client is None:
        raise KeycloakConfigError("Keycloak client is not initialized")
    return keycloak_client


# =============================================================================
# MCP Tool Definitions
# =============================================================================


@mcp.tool()
def get_realms() -> list[dict]:
    """Get a list of all realms from the Keycloak server.

    A realm in Keycloak is a space where you manage users, credentials,
    roles, and groups. A realm is isolated from other realms.
    """
    try:
        realms = _client().get_realms()
        logger.info(f"Retrieved {len(realms)} realms")
        return [realm.model_dump(exclude_none=True, by_alias=True) for realm in realms]
    except Exception as e:
        logger.error(f"Failed to get realms: {e}")
        raise


@mcp.tool()
def get_users(realm: str, max_users: int = 100) -> list[dict]:
    """Get a list of users from a specific realm.

    Args:
        realm: The name of the realm to get users from (e.g., "master")
        max_users: Maximum number of users to return (default: 100)
    """
    try:
        users = _client().get_users(realm=realm, max_users=max_users)
        logger.info(f"Retrieved {len(users)} users from realm '{realm}'")
        return [user.model_dump(exclude_none=True, by_alias=True) for user in users]
    except Exception as e:
        logger.error(f"Failed to get users from realm '{realm}': {e}")
        raise


@mcp.tool()
def get_user_info(realm: str, user_id: str) -> dict:
    """Get detailed information about a specific user.

    Args:
        realm: The realm the user belongs to
        user_id: The unique ID of the user (UUID format, not username!)
                 You can get this from the get_users() tool.
    """
    try:
        user = _client().get_user_info(realm=realm, user_id=user_id)
        logger.info(f"Retrieved info for user '{user_id}' in realm '{realm}'")
        return user.model_dump(exclude_none=True, by_alias=True)
    except Exception as e:
        logger.error(f"Failed to get user info for '{user_id}' in realm '{realm}': {e}")
        raise


@mcp.tool()
def get_offline_sessions(realm: str, user_id: str, client_uuid: str) -> list[dict]:
    """Get the offline sessions a user holds for one client.

    Args:
        realm: The realm the user belongs to
        user_id: The unique ID of the user
        client_uuid: The internal ID of the client (not the clientId!)
    """
    try:
        sessions = _client().get_offline_sessions(realm, user_id, client_uuid)
        logger.info(f"Retrieved {len(sessions)} offline sessions for user '{user_id}'")
        return [session.model_dump(exclude_none=True, by_alias=True) for session in sessions]
    except Exception as e:
        logger.error(f"Failed to get offline sessions for '{user_id}' in realm '{realm}': {e}")
        raise


@mcp.tool()
def get_authentication_flows(realm: str) -> list[dict]:
    """Get the authentication flows defined in a realm."""
    try:
        flows = _client().get_authentication_flows(realm)
        logger.info(f"Retrieved {len(flows)} authentication flows from realm '{realm}'")
        return [flow.model_dump(exclude_none=True, by_alias=True) for flow in flows]
    except Exception as e:
        logger.error(f"Failed to get authentication flows from realm '{realm}': {e}")
        raise


def main() -> None:
    """Main entry point for the MCP server.

    Loads configuration, builds the client and serves tools over stdio.
    """
    global keycloak_client

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = load_settings()
        keycloak_client = KeycloakAdminClient(
            base_url=settings.keycloak_url,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            realm=settings.realm,
            timeout=settings.timeout,
        )
        logger.info("Keycloak client initialized successfully")
    except KeycloakConfigError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info("Starting Keycloak MCP server...")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
