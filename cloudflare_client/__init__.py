#
#
#

import logging
from typing import Any, Dict, List, Optional

import httpx

from .auth import BearerAuth
from .config import CloudflareConfig
from .envelope import EnvelopeProcessor
from .exceptions import (
    AdmissionRejected,
    ApiEnvelopeError,
    CircuitOpenError,
    CloudflareConfigurationError,
    CloudflareException,
    DeserializationError,
    PartialResultError,
    RateLimitExhausted,
    RequestTimeout,
    TransportStatusError,
)
from .limiter import AdmissionLimiter
from .pagination import PaginationEngine
from .resilience import CircuitBreaker, ResiliencePipeline

__version__ = '1.0.0'

__all__ = [
    'AdmissionRejected',
    'ApiEnvelopeError',
    'CircuitOpenError',
    'CloudflareClient',
    'CloudflareConfig',
    'CloudflareConfigurationError',
    'CloudflareException',
    'DeserializationError',
    'PartialResultError',
    'RateLimitExhausted',
    'RequestTimeout',
    'TransportStatusError',
]


class CloudflareClient(object):
    def __init__(
        self,
        config: CloudflareConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        name: str = 'default',
    ):
        self.log = logging.getLogger(f'CloudflareClient[{name}]')
        self.log.debug(
            '__init__: name=%s, token=***, base_url=%s', name, config.base_url
        )
        config.validate()
        self.config = config

        self._auth = BearerAuth(config.api_token)
        self._owns_http = http_client is None
        self._http = http_client or self._create_http_client(config, transport)
        self._limiter = AdmissionLimiter(
            config.rate_limiting.permit_limit,
            config.rate_limiting.queue_limit,
            name=name,
        )
        self._pipeline = ResiliencePipeline(
            config.rate_limiting,
            CircuitBreaker(config.circuit_breaker, name=name),
            timeout=config.timeout,
            name=name,
        )
        self._processor = EnvelopeProcessor(
            logging.getLogger(f'EnvelopeProcessor[{name}]')
        )
        self._pagination = PaginationEngine(self, name=name)

    def _create_http_client(self, config, transport):
        user_agent = (
            config.user_agent
            or f'cloudflare-client/{__version__} httpx/{httpx.__version__}'
        )
        return httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(
                config.timeout, connect=config.connect_timeout
            ),
            headers={'User-Agent': user_agent, 'Accept': 'application/json'},
            transport=transport,
        )

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    # --- Request core ------------------------------------------------------

    async def _send(self, method, path, params=None, json=None, headers=None):
        request = self._http.build_request(
            method, path, params=params, json=json, headers=headers
        )
        self.log.debug('_send: method=%s, url=%s', method, request.url)
        async with self._limiter.permit():
            response = await self._pipeline.send(request, self._transmit)
        self.log.debug(
            '_send: status=%d, method=%s, url=%s',
            response.status_code,
            method,
            request.url,
        )
        return response

    async def _transmit(self, request):
        return await self._http.send(request, auth=self._auth)

    async def request_envelope(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        result_type: Any = Any,
    ):
        response = await self._send(method, path, params, json, headers)
        return self._processor.process_envelope(response, result_type)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        result_type: Any = Any,
    ):
        response = await self._send(method, path, params, json, headers)
        return self._processor.process(response, result_type)

    async def request_raw(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        response = await self._send(method, path, params, json, headers)
        return self._processor.process_raw(response)

    async def get(self, path, params=None, result_type=Any, headers=None):
        return await self.request(
            'GET', path, params=params, headers=headers, result_type=result_type
        )

    async def post(self, path, json=None, result_type=Any, headers=None):
        return await self.request(
            'POST', path, json=json, headers=headers, result_type=result_type
        )

    async def put(self, path, json=None, result_type=Any, headers=None):
        return await self.request(
            'PUT', path, json=json, headers=headers, result_type=result_type
        )

    async def patch(self, path, json=None, result_type=Any, headers=None):
        return await self.request(
            'PATCH', path, json=json, headers=headers, result_type=result_type
        )

    async def delete(self, path, result_type=Any, headers=None):
        return await self.request(
            'DELETE', path, headers=headers, result_type=result_type
        )

    async def get_string(self, path, params=None, headers=None) -> str:
        return await self.request_raw(
            'GET', path, params=params, headers=headers
        )

    # --- Pagination --------------------------------------------------------

    async def get_page(
        self, path, page=1, per_page=None, item_type=Any, headers=None
    ):
        return await self._pagination.get_page(
            path,
            page=page,
            per_page=per_page,
            item_type=item_type,
            headers=headers,
        )

    async def get_cursor_page(
        self, path, cursor=None, per_page=None, item_type=Any, **kwargs
    ):
        return await self._pagination.get_cursor_page(
            path,
            cursor=cursor,
            per_page=per_page,
            item_type=item_type,
            **kwargs,
        )

    def get_paginated(
        self, path, per_page=None, item_type=Any, headers=None, salvage=True
    ):
        return self._pagination.get_paginated(
            path,
            per_page=per_page,
            item_type=item_type,
            headers=headers,
            salvage=salvage,
        )

    def get_cursor_paginated(
        self, path, per_page=None, item_type=Any, **kwargs
    ):
        return self._pagination.get_cursor_paginated(
            path, per_page=per_page, item_type=item_type, **kwargs
        )

    async def get_all(self, path, per_page=None, item_type=Any) -> List[Any]:
        self.log.debug('get_all: path=%s, per_page=%s', path, per_page)
        return [
            item
            async for item in self.get_paginated(
                path, per_page=per_page, item_type=item_type
            )
        ]
