"""User-agent middleware: appends the runtime's product token.

``User-Agent: <existing> client-runtime-python/1.0.0``; the token is added at
most once, so resends through the chain do not repeat it.
"""

from typing import Optional

import httpx

from ..cancellation import CancellationToken
from .middleware import Middleware
from .options import UserAgentHandlerOption, get_request_option

USER_AGENT_HEADER = "User-Agent"


def product_token(option: UserAgentHandlerOption) -> str:
    return f"{option.product_name}/{option.product_version}"


class UserAgentHandler(Middleware):
    def __init__(self, user_agent_option: Optional[UserAgentHandlerOption] = None) -> None:
        super().__init__()
        self.user_agent_option = user_agent_option or UserAgentHandlerOption()

    async def send(self, request: httpx.Request, cancellation: Optional[CancellationToken] = None) -> httpx.Response:
        option = get_request_option(request, UserAgentHandlerOption) or self.user_agent_option
        if option.enabled:
            token = product_token(option)
            current = request.headers.get(USER_AGENT_HEADER, "")
            if token not in current.split():
                request.headers[USER_AGENT_HEADER] = f"{current} {token}".strip()
        return await self.send_next(request, cancellation)


__all__ = ["UserAgentHandler", "USER_AGENT_HEADER", "product_token"]
