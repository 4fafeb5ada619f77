"""Configuration loaded from the environment (and a .env file, if present)."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

from keycloak_resources.exceptions import KeycloakConfigError

logger = logging.getLogger(__name__)


class KeycloakSettings(BaseModel):
    keycloak_url: str
    client_id: str
    client_secret: str
    realm: str = "master"
    timeout: float = 10


def load_settings(dotenv: bool = True) -> KeycloakSettings:
    """Validate that all required environment variables are set.

    Configuration is checked at startup rather than discovering problems
    during operation.

    Raises:
        KeycloakConfigError: If any required environment variable is missing
            or empty, or the timeout is not a positive number
    """
    if dotenv:
        load_dotenv()

    keycloak_url = os.getenv("KEYCLOAK_URL", "").strip()
    client_id = os.getenv("CLIENT_ID", "").strip()
    client_secret = os.getenv("CLIENT_SECRET", "").strip()
    realm = os.getenv("KEYCLOAK_REALM", "").strip() or "master"
    raw_timeout = os.getenv("KEYCLOAK_TIMEOUT", "").strip() or "10"

    missing = []
    if not keycloak_url:
        missing.append("KEYCLOAK_URL")
    if not client_id:
        missing.append("CLIENT_ID")
    if not client_secret:
        missing.append("CLIENT_SECRET")

    if missing:
        raise KeycloakConfigError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please check your .env file."
        )

    try:
        timeout = float(raw_timeout)
    except ValueError as e:
        raise KeycloakConfigError(f"KEYCLOAK_TIMEOUT must be a number, got {raw_timeout!r}") from e
    if timeout <= 0:
        raise KeycloakConfigError("KEYCLOAK_TIMEOUT must be positive")

    logger.debug(f"Loaded settings for {keycloak_url} (realm '{realm}')")
    return KeycloakSettings(
        keycloak_url=keycloak_url,
        client_id=client_id,
        client_secret=client_secret,
        realm=realm,
        timeout=timeout,
    )
