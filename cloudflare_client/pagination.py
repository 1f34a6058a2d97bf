#
#
#

import logging
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    NamedTuple,
    Optional,
)

import httpx

from .clients import EnvelopeRequester
from .envelope import CursorInfo, PageInfo
from .exceptions import CloudflareException, PartialResultError
from .strategies import CursorStrategy, PageNumberStrategy, resolve_cursor


class PagePaginatedResult(NamedTuple):
    items: List[Any]
    page_info: Optional[PageInfo]


class CursorPaginatedResult(NamedTuple):
    items: List[Any]
    cursor_info: Optional[CursorInfo]


class PaginationEngine:
    """Drives page-number and cursor listings through an ``EnvelopeRequester``.

    Pages are requested strictly one after another and a page's items are
    all yielded before the next page is requested. Every call to
    ``get_paginated``/``get_cursor_paginated`` starts a fresh listing;
    abandoning the iterator issues no further requests.

    When a page fails after at least one page was yielded, the failure is
    raised as ``PartialResultError`` carrying the items already produced and
    the page number or cursor to resume from. A failure on the first page
    propagates unchanged since there is nothing to salvage.
    """

    def __init__(self, requester: EnvelopeRequester, name: str = 'default'):
        self.requester = requester
        self.log = logging.getLogger(f'PaginationEngine[{name}]')

    # --- Single pages ------------------------------------------------------

    async def get_page(
        self,
        path: str,
        page: int = 1,
        per_page: Optional[int] = None,
        item_type: Any = Any,
        headers: Optional[Dict[str, str]] = None,
    ) -> PagePaginatedResult:
        strategy = PageNumberStrategy(per_page)
        envelope = await self.requester.request_envelope(
            'GET',
            path,
            params=strategy.params(page),
            headers=headers,
            result_type=List[item_type],
        )
        return PagePaginatedResult(
            list(envelope.result or []), envelope.result_info
        )

    async def get_cursor_page(
        self,
        path: str,
        cursor: Optional[str] = None,
        per_page: Optional[int] = None,
        item_type: Any = Any,
        headers: Optional[Dict[str, str]] = None,
        wrapper_type: Any = None,
        extract: Optional[Callable[[Any], List[Any]]] = None,
    ) -> CursorPaginatedResult:
        strategy = CursorStrategy(per_page)
        result_type = self._result_type(item_type, wrapper_type, extract)
        envelope = await self.requester.request_envelope(
            'GET',
            path,
            params=strategy.params(cursor),
            headers=headers,
            result_type=result_type,
        )
        cursor = resolve_cursor(envelope)
        info = envelope.cursor_result_info
        if info is not None:
            info = info.model_copy(update={'cursor': cursor})
        elif envelope.result_info is not None:
            # Endpoint family that reports its cursor inside result_info
            info = CursorInfo(
                count=envelope.result_info.count,
                per_page=envelope.result_info.per_page,
                cursor=cursor,
            )
        return CursorPaginatedResult(
            self._items(envelope.result, extract), info
        )

    # --- Auto-pagination ---------------------------------------------------

    def get_paginated(
        self,
        path: str,
        per_page: Optional[int] = None,
        item_type: Any = Any,
        headers: Optional[Dict[str, str]] = None,
        salvage: bool = True,
    ) -> AsyncIterator[Any]:
        """Yield every item of a page-number listing, in server order.

        With ``salvage`` on, every yielded item is also kept until the
        listing ends so a failure can hand them back in
        ``PartialResultError.items``; memory then grows with the listing.
        Pass ``salvage=False`` to hold only the current page, in which case
        ``items`` is empty and ``resume`` still names the failed page.
        """
        return self._drain(
            path,
            PageNumberStrategy(per_page),
            List[item_type],
            None,
            headers,
            salvage,
        )

    def get_cursor_paginated(
        self,
        path: str,
        per_page: Optional[int] = None,
        item_type: Any = Any,
        headers: Optional[Dict[str, str]] = None,
        wrapper_type: Any = None,
        extract: Optional[Callable[[Any], List[Any]]] = None,
        salvage: bool = True,
    ) -> AsyncIterator[Any]:
        """Yield every item of a cursor listing, in server order.

        For endpoints whose items sit inside a named object rather than being
        the ``result`` itself, pass ``wrapper_type`` (the ``result`` type)
        and ``extract`` (returns the item list from one page's result).
        ``salvage`` works as for ``get_paginated``.
        """
        return self._drain(
            path,
            CursorStrategy(per_page),
            self._result_type(item_type, wrapper_type, extract),
            extract,
            headers,
            salvage,
        )

    async def _drain(
        self, path, strategy, result_type, extract, headers, salvage=True
    ):
        state = strategy.initial()
        kept = []
        pages = 0
        yielded = 0
        while True:
            self.log.debug(
                '_drain: path=%s, state=%s, pages=%d', path, state, pages
            )
            try:
                envelope = await self.requester.request_envelope(
                    'GET',
                    path,
                    params=strategy.params(state),
                    headers=headers,
                    result_type=result_type,
                )
            except (CloudflareException, httpx.HTTPError) as e:
                if not pages:
                    raise
                self.log.warning(
                    '_drain: path=%s failed after %d pages, %d items yielded',
                    path,
                    pages,
                    yielded,
                )
                raise PartialResultError(kept, pages, state) from e

            pages += 1
            for item in self._items(envelope.result, extract):
                if salvage:
                    kept.append(item)
                yielded += 1
                yield item

            state = strategy.next(state, envelope)
            if state is None:
                self.log.debug(
                    '_drain: path=%s, done after %d pages, %d items',
                    path,
                    pages,
                    yielded,
                )
                return

    def _result_type(self, item_type, wrapper_type, extract):
        if extract is not None:
            return wrapper_type if wrapper_type is not None else Any
        return List[item_type]

    def _items(self, result, extract) -> List[Any]:
        if result is None:
            return []
        if extract is not None:
            return list(extract(result) or [])
        return list(result)
