"""Identity provider exceptions for error handling."""


class IdentityProviderError(Exception):
    """Base exception for all identity provider operations."""
    pass


class IdentityAPIError(IdentityProviderError):
    """HTTP error from the identity provider admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class TokenValidationError(IdentityProviderError):
    """Raised when a bearer token fails verification."""
    pass


class IdentityProviderNotConfigured(IdentityProviderError):
    """No identity provider URL configured for this deployment."""
    pass
