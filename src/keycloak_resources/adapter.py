"""HTTP transport for the resource node tree.

Nodes only describe requests; an adapter executes them. RequestsAdapter is
the default implementation, built on requests. It handles:
- OAuth2 client credentials authentication with automatic token refresh
- One retry with a fresh token after a 401 response
- Serialization of request bodies and deserialization of responses into
  the shape declared by the operation
- Aborting in-flight requests on behalf of a cancellation token

A single adapter is shared by every node of a client and is safe to use
from several threads.
"""

import json
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

import requests
from pydantic import BaseModel, ValidationError

from keycloak_resources.exceptions import (
    DeserializationError,
    KeycloakAPIError,
    KeycloakAuthError,
    KeycloakConfigError,
    TransportError,
)
from keycloak_resources.models import TokenResponse
from keycloak_resources.request import RequestSpec, ResponseShape

logger = logging.getLogger(__name__)


class RequestAdapter(Protocol):
    """What the node tree needs from a transport."""

    base_url: str

    def serialize(self, body: Any, content_type: str) -> bytes: ...

    def send(
        self,
        request: RequestSpec,
        shape: ResponseShape,
        factory: Callable[[Any], Any] | None,
    ) -> Any: ...

    def abort(self, request: RequestSpec) -> None: ...


class RequestsAdapter:
    """Executes RequestSpecs against a Keycloak server with requests.

    Attributes:
        base_url: The base URL of the Keycloak server, bound to ``{+baseurl}``
        client_id: The OAuth2 client ID
        client_secret: The OAuth2 client secret
        realm: The realm to authenticate against (default: "master")
        timeout: Timeout in seconds for every HTTP call
        access_token: The current access token (None if not authenticated)
        token_expiry: Unix timestamp when the current token expires

    Example:
        >>> adapter = RequestsAdapter(
        ...     base_url="http://localhost:8080",
        ...     client_id="admin-cli",
        ...     client_secret="secret",
        ... )
    """

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        realm: str = "master",
        timeout: float = 10,
    ):
        """Initialize the adapter.

        Raises:
            KeycloakConfigError: If any required parameter is empty or invalid
        """
        if not base_url:
            raise KeycloakConfigError("base_url cannot be empty")
        if not client_id:
            raise KeycloakConfigError("client_id cannot be empty")
        if not client_secret:
            raise KeycloakConfigError("client_secret cannot be empty")
        if not realm:
            raise KeycloakConfigError("realm cannot be empty")
        if timeout <= 0:
            raise KeycloakConfigError("timeout must be positive")

        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.realm = realm
        self.timeout = timeout
        self.access_token: str | None = None
        self.token_expiry: float = 0

        self._token_lock = threading.Lock()
        self._inflight_lock = threading.Lock()
        self._inflight: dict[int, requests.Response | None] = {}
        self._aborted: set[int] = set()

    # =========================================================================
    # Authentication
    # =========================================================================

    def _get_access_token(self) -> str:
        """Obtain a new access token with the client credentials flow.

        Also updates self.token_expiry from the expires_in value of the
        token response, minus a 10 second safety margin.

        Raises:
            KeycloakAuthError: If authentication fails for any reason
        """
        token_endpoint = f"{self.base_url}/realms/{self.realm}/protocol/openid-connect/token"

        client_credentials = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

        try:
            response = requests.post(token_endpoint, data=client_credentials, timeout=self.timeout)
            response.raise_for_status()

            token_data = TokenResponse.model_validate(response.json())
            self.token_expiry = time.time() + token_data.expires_in - 10

            return token_data.access_token

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to obtain access token: {e}")
            raise KeycloakAuthError(
                f"Authentication failed: {e}",
                status_code=getattr(e.response, "status_code", None),
            ) from e
        except (ValueError, ValidationError) as e:
            logger.error(f"Failed to parse token response: {e}")
            raise KeycloakAuthError(f"Invalid token response format: {e}") from e

    def _ensure_valid_token(self) -> str:
        with self._token_lock:
            if not self.access_token or time.time() >= self.token_expiry:
                logger.debug("Token missing or expired, obtaining new token")
                self.access_token = self._get_access_token()
            return self.access_token

    def _refresh_token(self, rejected_token: str) -> str:
        with self._token_lock:
            # Another thread may already have replaced the rejected token
            if self.access_token == rejected_token:
                self.access_token = self._get_access_token()
            return self.access_token

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self, body: Any, content_type: str) -> bytes:
        """Turn a request body into bytes.

        Pydantic models are dumped by alias without None fields, so they
        carry the camelCase names Keycloak expects.
        """
        if isinstance(body, bytes):
            return body
        if isinstance(body, BaseModel):
            return body.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        if isinstance(body, str) and not content_type.endswith("json"):
            return body.encode("utf-8")
        return json.dumps(_to_jsonable(body)).encode("utf-8")

    def _deserialize(
        self,
        response: requests.Response,
        shape: ResponseShape,
        factory: Callable[[Any], Any] | None,
    ) -> Any:
        if shape is ResponseShape.RAW:
            return response.content
        if shape is ResponseShape.NONE or response.status_code == 204 or not response.content:
            return None

        try:
            payload = response.json()
        except ValueError as e:
            raise DeserializationError(f"Response from {response.url} is not valid JSON: {e}") from e

        parse = factory or (lambda value: value)
        try:
            if shape is ResponseShape.COLLECTION:
                if not isinstance(payload, list):
                    raise DeserializationError(
                        f"Expected a JSON array from {response.url}, got {type(payload).__name__}"
                    )
                return [parse(item) for item in payload]
            return parse(payload)
        except ValidationError as e:
            raise DeserializationError(f"Response from {response.url} does not match its schema: {e}") from e

    # =========================================================================
    # Sending
    # =========================================================================

    def send(
        self,
        request: RequestSpec,
        shape: ResponseShape,
        factory: Callable[[Any], Any] | None = None,
    ) -> Any:
        """Execute request and return its body in the declared shape.

        Raises:
            KeycloakAuthError: If no access token can be obtained
            KeycloakAPIError: If the server answers with an error status
            TransportError: If the server cannot be reached or the request was aborted
            DeserializationError: If the body does not match the declared shape
        """
        key = id(request)
        with self._inflight_lock:
            self._inflight[key] = None

        response = None
        try:
            token = self._ensure_valid_token()
            response = self._send_once(request, token)

            if response.status_code == 401:
                logger.info("Received 401, refreshing token and retrying")
                response.close()
                token = self._refresh_token(token)
                response = self._send_once(request, token)

            if not response.ok:
                logger.error(f"Keycloak API error: {request.method} {request.url} -> {response.status_code}")
                raise KeycloakAPIError(
                    f"API request failed: {response.status_code} {response.reason} "
                    f"for {request.method} {request.url}",
                    status_code=response.status_code,
                )

            try:
                response.content  # reads the streamed body
            except (requests.exceptions.RequestException, OSError, ValueError) as e:
                raise TransportError(f"Failed to read response body: {e}") from e
            self._raise_if_aborted(request)

            return self._deserialize(response, shape, factory)
        finally:
            if response is not None:
                response.close()
            with self._inflight_lock:
                self._inflight.pop(key, None)
                self._aborted.discard(key)

    def _send_once(self, request: RequestSpec, token: str) -> requests.Response:
        key = id(request)
        headers = dict(request.headers)
        headers["Authorization"] = f"Bearer {token}"

        self._raise_if_aborted(request)
        try:
            response = requests.request(
                request.method,
                request.url,
                headers=headers,
                params=request.query or None,
                data=request.body,
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise TransportError(f"Failed to communicate with Keycloak: {e}") from e

        with self._inflight_lock:
            aborted = key in self._aborted
            if not aborted:
                self._inflight[key] = response
        if aborted:
            response.close()
            raise TransportError(f"Request aborted: {request.method} {request.url}")
        return response

    def abort(self, request: RequestSpec) -> None:
        """Abort the in-flight call for request by closing its response.

        A response can only be closed once its headers have arrived. Before
        that, requests offers no way to interrupt the call, so it runs until
        the server answers or the timeout expires and is then discarded.
        Requests that are not in flight are left alone.
        """
        key = id(request)
        with self._inflight_lock:
            if key not in self._inflight:
                return
            self._aborted.add(key)
            response = self._inflight[key]
        logger.debug(f"Aborting {request.method} {request.url}")
        if response is not None:
            response.close()

    def _raise_if_aborted(self, request: RequestSpec) -> None:
        with self._inflight_lock:
            aborted = id(request) in self._aborted
        if aborted:
            raise TransportError(f"Request aborted: {request.method} {request.url}")


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True, mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value
