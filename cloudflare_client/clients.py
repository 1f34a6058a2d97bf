#
#
#

"""Protocol definitions for the request core.

This module defines structural typing (PEP 544) for the collaborators of
the pagination engine and of endpoint resources, allowing type checking and
test doubles without requiring explicit inheritance.
"""

from typing import Any, Dict, Optional, Protocol

from .envelope import Envelope


class EnvelopeRequester(Protocol):
    """Protocol for anything that can send one enveloped request.

    ``CloudflareClient`` conforms to this; the pagination engine only needs
    this one operation.
    """

    async def request_envelope(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        result_type: Any = Any,
    ) -> Envelope:
        """Send a request and return the parsed, successful envelope.

        Args:
            method: HTTP verb
            path: Path relative to the API base URL, may carry a query
            params: Extra query parameters, merged into the path's query
            json: JSON request body
            headers: Extra request headers
            result_type: Type the envelope ``result`` is validated against

        Returns:
            Envelope whose ``success`` is true
        """
        ...


class ApiClient(EnvelopeRequester, Protocol):
    """Protocol for the surface endpoint resources build on."""

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        result_type: Any = Any,
    ) -> Any:
        """Send a request and return the typed envelope ``result``."""
        ...

    async def request_raw(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> str:
        """Send a request and return the body verbatim."""
        ...
