"""GitHub authentication handlers.

Only static tokens are supported; the token itself is read from the
environment by the configuration layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .exceptions import GitHubAuthenticationError


@dataclass(frozen=True)
class AuthToken:
    """Credential plus the scheme used in the Authorization header."""

    token: str
    token_type: str = "Bearer"

    def to_header(self) -> dict[str, str]:
        return {"Authorization": f"{self.token_type} {self.token}"}

    def __repr__(self) -> str:
        return f"AuthToken(token_type={self.token_type!r}, token='***')"


class AuthProvider(ABC):
    """Supplies the credential attached to every API request."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Credential for the next request."""
        pass


class TokenAuth(AuthProvider):
    """Bearer token authentication."""

    DEFAULT_TOKEN_TYPE = "Bearer"  # nosec B105

    def __init__(self, token: str, token_type: str | None = None):
        """Wrap a static token.

        Args:
            token: Token value, surrounding whitespace is dropped
            token_type: Header scheme, ``Bearer`` by default

        Raises:
            GitHubAuthenticationError: If the token is empty
        """
        if not token or not token.strip():
            raise GitHubAuthenticationError("GitHub token is required")
        self._token = AuthToken(
            token=token.strip(), token_type=token_type or self.DEFAULT_TOKEN_TYPE
        )

    async def get_token(self) -> AuthToken:
        return self._token

