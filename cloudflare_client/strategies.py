#
#
#

"""Pagination strategies for the two Cloudflare listing protocols.

This module implements the Strategy pattern to handle the differences
between page-number listings (``page``/``per_page``) and cursor listings
(``cursor``/``per_page``). The engine drives either one through the same
loop; a strategy only knows which query parameters to send and how to read
the continuation signal from a response.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from .envelope import Envelope

log = logging.getLogger('cloudflare_client.strategies')


class PaginationStrategy(Protocol):
    """Protocol for listing continuation strategies.

    State is an opaque token owned by the engine's loop: a page number for
    page listings, a cursor (or None) for cursor listings.
    """

    def initial(self) -> Any:
        """Return the state used for the first request."""
        ...

    def params(self, state: Any) -> Dict[str, Any]:
        """Return the query parameters requesting the page for ``state``.

        Args:
            state: Value returned by ``initial`` or ``next``
        """
        ...

    def next(self, state: Any, envelope: Envelope) -> Optional[Any]:
        """Return the state for the following request, or None to stop.

        Args:
            state: State used to request ``envelope``
            envelope: Parsed response for that request
        """
        ...


class PageNumberStrategy:
    """Strategy for ``page``/``per_page`` listings.

    Continues only while ``result_info`` is present, the current page was not
    empty, and the current page is below ``total_pages``. Item counts are
    never compared with ``total_count``.
    """

    def __init__(self, per_page: Optional[int] = None, start_page: int = 1):
        self.per_page = per_page
        self.start_page = start_page

    def initial(self) -> int:
        return self.start_page

    def params(self, page: int) -> Dict[str, Any]:
        ret = {'page': page}
        if self.per_page is not None:
            ret['per_page'] = self.per_page
        return ret

    def next(self, page: int, envelope: Envelope) -> Optional[int]:
        info = envelope.result_info
        if info is None or info.count <= 0:
            return None
        # Both the requested and the echoed page must be below the total so
        # a server that keeps echoing an old page number cannot loop us
        if page >= info.total_pages or info.page >= info.total_pages:
            return None
        return page + 1


class CursorStrategy:
    """Strategy for ``cursor``/``per_page`` listings.

    The cursor may come back in ``cursor_result_info`` or, for some endpoint
    families, inside ``result_info``; both are checked. A non-empty cursor is
    the only continuation signal.
    """

    def __init__(self, per_page: Optional[int] = None):
        self.per_page = per_page

    def initial(self) -> Optional[str]:
        return None

    def params(self, cursor: Optional[str]) -> Dict[str, Any]:
        ret = {}
        if self.per_page is not None:
            ret['per_page'] = self.per_page
        if cursor:
            ret['cursor'] = cursor
        return ret

    def next(
        self, cursor: Optional[str], envelope: Envelope
    ) -> Optional[str]:
        found = resolve_cursor(envelope)
        if not found:
            return None
        if found == cursor:
            log.warning(
                'next: server repeated cursor %r, stopping listing', cursor
            )
            return None
        return found


def resolve_cursor(envelope: Envelope) -> Optional[str]:
    if envelope.cursor_result_info is not None:
        if envelope.cursor_result_info.cursor:
            return envelope.cursor_result_info.cursor
    if envelope.result_info is not None and envelope.result_info.cursor:
        return envelope.result_info.cursor
    return None
