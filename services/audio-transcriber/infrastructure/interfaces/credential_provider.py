"""Abstract interface for credential providers."""

from abc import ABC, abstractmethod

from domain.models import BearerToken


class CredentialProvider(ABC):
    """Abstract base class for access-token sources."""

    @abstractmethod
    def get_token(self, scopes: tuple[str, ...]) -> BearerToken:
        """
        Returns a bearer token valid for the given scopes.

        Args:
            scopes: OAuth scopes the token must cover.

        Returns:
            The token and its expiry when known.

        Raises:
            ConfigurationError: If credentials are missing or invalid.
        """

    def verify(self, scopes: tuple[str, ...]) -> None:
        """
        Confirms the credentials can issue a token for the given scopes.

        Runs once at startup; the token itself is discarded.

        Raises:
            ConfigurationError: If credentials are missing or invalid.
        """
        self.get_token(scopes)
