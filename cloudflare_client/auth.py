#
#
#

import logging

import httpx

from .exceptions import CloudflareConfigurationError


class BearerAuth(httpx.Auth):
    """Attaches ``Authorization: Bearer <token>`` to every outbound request.

    The header is set on each send, so retried attempts carry it too. The
    request is otherwise forwarded unchanged.
    """

    def __init__(self, token: str):
        if not token or not token.strip():
            raise CloudflareConfigurationError(
                ['Cloudflare api_token is required.']
            )
        self.log = logging.getLogger('cloudflare_client.auth')
        self._header = f'Bearer {token}'

    def auth_flow(self, request):
        self.log.debug(
            'auth_flow: adding Authorization header for %s', request.url
        )
        request.headers['Authorization'] = self._header
        yield request
