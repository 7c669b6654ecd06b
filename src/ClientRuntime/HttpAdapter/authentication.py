"""Authentication provider contracts and stock providers.

The adapter authenticates every :class:`RequestInformation` before converting
it.  When a response carries a claims challenge, the authentication-challenge
middleware calls the same provider again with
``{"claims": <opaque value>}`` in the additional context; a provider must then
produce a credential that satisfies that challenge.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlparse

from .errors import ConfigurationError
from .request_information import RequestInformation

logger = logging.getLogger(__name__)

__all__ = [
    "AUTHORIZATION_HEADER",
    "CLAIMS_KEY",
    "AuthenticationProvider",
    "AnonymousAuthenticationProvider",
    "AccessTokenProvider",
    "AllowedHostsValidator",
    "BaseBearerTokenAuthenticationProvider",
]

AUTHORIZATION_HEADER = "Authorization"
CLAIMS_KEY = "claims"

_LOCALHOSTS = {"localhost", "127.0.0.1", "[::1]", "::1"}


class AuthenticationProvider(ABC):
    @abstractmethod
    async def authenticate_request(
        self,
        request: RequestInformation,
        additional_authentication_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Attach credentials to ``request``."""


class AnonymousAuthenticationProvider(AuthenticationProvider):
    """Leaves requests untouched."""

    async def authenticate_request(
        self,
        request: RequestInformation,
        additional_authentication_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        return None


class AllowedHostsValidator:
    """Restricts token acquisition to a set of hosts (all hosts when empty)."""

    def __init__(self, allowed_hosts: Iterable[str] = ()) -> None:
        self._allowed_hosts = {host.lower() for host in allowed_hosts}

    @property
    def allowed_hosts(self) -> set:
        return set(self._allowed_hosts)

    def is_url_host_valid(self, url: str) -> bool:
        if not self._allowed_hosts:
            return True
        host = (urlparse(url).hostname or "").lower()
        return host in self._allowed_hosts


class AccessTokenProvider(ABC):
    @abstractmethod
    async def get_authorization_token(
        self,
        url: str,
        additional_authentication_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Return an access token for ``url``, honouring a claims context when present."""

    def get_allowed_hosts_validator(self) -> AllowedHostsValidator:
        return AllowedHostsValidator()


class BaseBearerTokenAuthenticationProvider(AuthenticationProvider):
    """Sets ``Authorization: Bearer <token>`` from an :class:`AccessTokenProvider`.

    An existing Authorization header is kept unless the call carries a claims
    challenge, in which case it is replaced with a freshly acquired token.
    Tokens are only sent over HTTPS, with localhost exempt.
    """

    def __init__(self, access_token_provider: AccessTokenProvider) -> None:
        if access_token_provider is None:
            raise ConfigurationError("access_token_provider cannot be None")
        self.access_token_provider = access_token_provider

    async def authenticate_request(
        self,
        request: RequestInformation,
        additional_authentication_context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = additional_authentication_context or {}
        if context.get(CLAIMS_KEY) and request.headers.contains(AUTHORIZATION_HEADER):
            request.headers.remove(AUTHORIZATION_HEADER)
        if request.headers.contains(AUTHORIZATION_HEADER):
            return

        url = request.url
        parsed = urlparse(url)
        if parsed.scheme != "https" and (parsed.hostname or "").lower() not in _LOCALHOSTS:
            raise ConfigurationError("Only https is supported when sending bearer tokens")
        if not self.access_token_provider.get_allowed_hosts_validator().is_url_host_valid(url):
            logger.debug("Host not in allowed hosts; skipping token acquisition", extra={"host": parsed.hostname})
            return

        token = await self.access_token_provider.get_authorization_token(url, context)
        if token:
            request.headers.add(AUTHORIZATION_HEADER, f"Bearer {token}")
