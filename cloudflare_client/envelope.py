#
#
#

"""The Cloudflare response envelope and its processing.

Every enveloped endpoint answers with::

    {"success": bool, "errors": [...], "messages": [...], "result": ...,
     "result_info": {...}, "cursor_result_info": {...}}

``EnvelopeProcessor`` turns a completed ``httpx.Response`` into either the
typed ``result`` or one of the classified errors in ``exceptions``. Two
signals decide success: the HTTP status first, then the envelope's own
``success`` flag, which wins when the two disagree.
"""

import logging
from functools import lru_cache
from typing import Any, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from .exceptions import (
    ApiEnvelopeError,
    DeserializationError,
    TransportStatusError,
)

T = TypeVar('T')

DIAGNOSTIC_HEADERS = ('cf-ray', 'retry-after', 'date')


class ApiError(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int
    message: str


class ApiMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: Optional[int] = None
    message: str = ''


class PageInfo(BaseModel):
    """``result_info`` of a page-number listing.

    ``count`` is the number of items on the current page only.
    """

    model_config = ConfigDict(frozen=True)

    page: int = 1
    per_page: int = 0
    count: int = 0
    total_count: int = 0
    total_pages: int = 0
    cursor: Optional[str] = None


class CursorInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = 0
    per_page: int = 0
    cursor: Optional[str] = None


class Envelope(BaseModel, Generic[T]):
    success: bool
    errors: List[ApiError] = []
    messages: List[Union[ApiMessage, str]] = []
    result: Optional[T] = None
    result_info: Optional[PageInfo] = None
    cursor_result_info: Optional[CursorInfo] = None

    @property
    def page_info(self) -> Optional[PageInfo]:
        return self.result_info

    @property
    def cursor_info(self) -> Optional[CursorInfo]:
        return self.cursor_result_info


class EnvelopeProcessor:
    def __init__(self, log=None):
        self.log = log or logging.getLogger('cloudflare_client.envelope')

    def process(self, response, result_type: Any = Any):
        """Return the typed ``result`` of an enveloped response.

        ``result`` may legitimately be ``None``, e.g. for deletes.

        Raises:
            ApiEnvelopeError: The envelope reported failure
            TransportStatusError: Non-success status without an error envelope
            DeserializationError: The body is not a valid envelope
        """
        return self.process_envelope(response, result_type).result

    def process_envelope(
        self, response, result_type: Any = Any
    ) -> Envelope:
        body = response.text
        self._raise_for_status(response, body)

        # The result is only typed once success is confirmed; a failed
        # envelope's result is ignored whatever it contains.
        try:
            envelope = Envelope[Any].model_validate_json(body)
        except ValidationError as e:
            self._log_deserialization_failure(response, body)
            raise DeserializationError(body) from e

        if not envelope.success:
            self._log_failure(response, envelope.errors, body)
            raise ApiEnvelopeError(envelope.errors, response.status_code, body)

        if result_type is not Any and envelope.result is not None:
            try:
                result = _adapter(result_type).validate_python(envelope.result)
            except ValidationError as e:
                self._log_deserialization_failure(response, body)
                raise DeserializationError(body) from e
            envelope = envelope.model_copy(update={'result': result})

        self.log.debug(
            'process: processed successful response from %s',
            response.request.url,
        )
        return envelope

    def process_raw(self, response) -> str:
        """Return the body verbatim for non-enveloped endpoints.

        Failures still go through the same status-code error path as
        enveloped responses.
        """
        body = response.text
        self._raise_for_status(response, body)
        return body

    def _raise_for_status(self, response, body: str) -> None:
        if response.is_success:
            return

        self.log.error(
            '_raise_for_status: request to %s failed with status code %d '
            '(%s), body=%s',
            response.request.url,
            response.status_code,
            response.reason_phrase,
            body,
        )
        diagnostics = self._diagnostics(response)
        if diagnostics:
            self.log.warning(
                '_raise_for_status: diagnostics cf-ray=%s, retry-after=%s, '
                'date=%s',
                diagnostics.get('cf-ray', 'n/a'),
                diagnostics.get('retry-after', 'n/a'),
                diagnostics.get('date', 'n/a'),
            )

        try:
            envelope = Envelope[Any].model_validate_json(body)
        except ValidationError:
            envelope = None
        if envelope is not None and envelope.errors:
            self._log_failure(response, envelope.errors, body)
            raise ApiEnvelopeError(envelope.errors, response.status_code, body)

        raise TransportStatusError(
            response.status_code, response.reason_phrase, body, diagnostics
        )

    def _diagnostics(self, response) -> dict:
        ret = {}
        for name in DIAGNOSTIC_HEADERS:
            values = response.headers.get_list(name)
            if values:
                ret[name] = ', '.join(values)
        return ret

    def _log_failure(self, response, errors, body):
        self.log.warning(
            'process: request to %s returned a failure response: %s, body=%s',
            response.request.url,
            ', '.join(f'[{e.code}] {e.message}' for e in errors),
            body,
        )

    def _log_deserialization_failure(self, response, body):
        self.log.error(
            'process: failed to deserialize response from %s, body=%s',
            response.request.url,
            body,
        )


@lru_cache(maxsize=256)
def _adapter(result_type):
    return TypeAdapter(result_type)
