#
#
#

from typing import Any
from urllib.parse import quote

from .clients import ApiClient


class ApiResource(object):
    """Base for endpoint families (zones, DNS records, buckets, ...).

    Subclasses supply paths and result types; the client does the rest.
    """

    def __init__(self, client: ApiClient):
        self._client = client

    def _path(self, template, *args):
        return template.format(*(quote(str(a), safe='') for a in args))

    async def _get(self, path, params=None, result_type=Any, headers=None):
        return await self._client.request(
            'GET', path, params=params, headers=headers, result_type=result_type
        )

    async def _post(self, path, data=None, result_type=Any, headers=None):
        return await self._client.request(
            'POST', path, json=data, headers=headers, result_type=result_type
        )

    async def _put(self, path, data=None, result_type=Any, headers=None):
        return await self._client.request(
            'PUT', path, json=data, headers=headers, result_type=result_type
        )

    async def _patch(self, path, data=None, result_type=Any, headers=None):
        return await self._client.request(
            'PATCH', path, json=data, headers=headers, result_type=result_type
        )

    async def _delete(self, path, result_type=Any, headers=None):
        return await self._client.request(
            'DELETE', path, headers=headers, result_type=result_type
        )

    async def _get_string(self, path, params=None, headers=None):
        return await self._client.request_raw(
            'GET', path, params=params, headers=headers
        )

    def _paginate(self, path, per_page=None, item_type=Any, headers=None):
        return self._client.get_paginated(
            path, per_page=per_page, item_type=item_type, headers=headers
        )

    def _cursor_paginate(self, path, per_page=None, item_type=Any, **kwargs):
        return self._client.get_cursor_paginated(
            path, per_page=per_page, item_type=item_type, **kwargs
        )
