"""Exceptions raised by the resource client.

Every error derives from KeycloakError so callers can catch the whole family
with a single except clause. Errors detected while building a request
(ArgumentMissingError, UnresolvedPathError, UnsupportedOperationError) are
raised before any network I/O happens.
"""


class KeycloakError(Exception):
    """Base exception for all resource client errors."""

    pass


class KeycloakConfigError(KeycloakError):
    """Raised when there's a configuration error.

    Examples:
        - Missing environment variables
        - Empty required client parameters
    """

    pass


class TemplateError(KeycloakError):
    """Raised when a URL template or endpoint description is malformed.

    Examples:
        - Empty literal segment ("/admin//realms")
        - The same placeholder name used twice in one template
        - Two different placeholder names declared at the same tree position
    """

    pass


class ArgumentMissingError(KeycloakError):
    """Raised when a required request body or placeholder value is absent."""

    def __init__(self, argument: str):
        super().__init__(f"Required argument '{argument}' was not supplied")
        self.argument = argument


class UnresolvedPathError(KeycloakError):
    """Raised when a template placeholder has no binding at request-build time."""

    def __init__(self, placeholder: str, template: str):
        super().__init__(f"Placeholder '{placeholder}' is unbound in template '{template}'")
        self.placeholder = placeholder
        self.template = template


class UnsupportedOperationError(KeycloakError):
    """Raised when a verb or an indexer is not available at a node."""

    pass


class TransportError(KeycloakError):
    """Raised when the HTTP transport fails.

    The status code is set when the server answered with an error status,
    and None for network-level failures (connection refused, timeout, ...).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class KeycloakAuthError(TransportError):
    """Raised when obtaining an access token fails.

    Examples:
        - Invalid client credentials
        - Token endpoint unreachable
        - Malformed token response
    """

    pass


class KeycloakAPIError(TransportError):
    """Raised when an API request comes back with an error status.

    Examples:
        - 404 Not Found (realm doesn't exist)
        - 403 Forbidden (insufficient permissions)
        - 500 Internal Server Error
    """

    pass


class DeserializationError(KeycloakError):
    """Raised when a response body does not match the declared shape."""

    pass


class RequestCancelledError(KeycloakError):
    """Raised when the caller cancelled an operation before it completed."""

    pass
