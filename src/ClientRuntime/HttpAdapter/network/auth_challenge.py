"""Continuous access evaluation: re-authenticate once on a claims challenge.

A ``401`` whose ``WWW-Authenticate`` header carries ``claims="..."`` means the
token was revoked or lacks a required claim.  The handler asks the
authentication provider for a fresh ``Authorization`` header with those claims
and resends the request exactly once; any other response passes through.
"""

import logging
import re
from typing import Optional

import httpx

from ..authentication import AUTHORIZATION_HEADER, CLAIMS_KEY, AuthenticationProvider
from ..cancellation import CancellationToken
from ..errors import ConfigurationError
from ..request_information import RequestInformation
from .instrumentation import start_span
from .middleware import Middleware, clone_request, drain_response, is_replayable
from .policy import REQUEST_INFORMATION_EXTENSION, UNAUTHORIZED

logger = logging.getLogger(__name__)

_CLAIMS_PATTERN = re.compile(r'claims="([^"]+)"', re.IGNORECASE)


def extract_claims(response: httpx.Response) -> Optional[str]:
    """Return the claims challenge of a 401 response, if it carries one.

    Examples:
        >>> response = httpx.Response(401, headers={"WWW-Authenticate": 'Bearer claims="eyJ4In0="'})
        >>> extract_claims(response)
        'eyJ4In0='
        >>> extract_claims(httpx.Response(401)) is None
        True
    """
    if response.status_code != UNAUTHORIZED:
        return None
    for challenge in response.headers.get_list("www-authenticate"):
        match = _CLAIMS_PATTERN.search(challenge)
        if match:
            return match.group(1)
    return None


class AuthenticationChallengeHandler(Middleware):
    """Resends a request once with a token that satisfies the server's claims."""

    def __init__(self, authentication_provider: AuthenticationProvider) -> None:
        super().__init__()
        if authentication_provider is None:
            raise ConfigurationError("authentication_provider cannot be None")
        self.authentication_provider = authentication_provider

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        response = await self.send_next(request, cancellation)
        claims = extract_claims(response)
        if claims is None:
            return response

        information = request.extensions.get(REQUEST_INFORMATION_EXTENSION)
        if not isinstance(information, RequestInformation) or not is_replayable(request):
            logger.debug("Claims challenge received but request cannot be replayed", extra={"url": str(request.url)})
            return response

        with start_span(request, "AuthenticationChallengeHandler_send", **{"http.response.status_code": 401}):
            await drain_response(response)
            challenged = information.copy()
            challenged.headers.remove(AUTHORIZATION_HEADER)
            await self.authentication_provider.authenticate_request(challenged, {CLAIMS_KEY: claims})

            retry_request = clone_request(request)
            if AUTHORIZATION_HEADER in retry_request.headers:
                del retry_request.headers[AUTHORIZATION_HEADER]
            authorization = challenged.headers.get(AUTHORIZATION_HEADER)
            if authorization:
                retry_request.headers[AUTHORIZATION_HEADER] = authorization[0]

            logger.info("Retrying request after claims challenge", extra={"url": str(request.url)})
            return await self.send_next(retry_request, cancellation)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={type(self.authentication_provider).__name__})"


__all__ = ["AuthenticationChallengeHandler", "extract_claims"]
