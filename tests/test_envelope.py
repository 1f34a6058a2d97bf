#
# Tests for envelope parsing and response classification
#

from typing import List, Optional
from unittest import TestCase

import httpx
from pydantic import BaseModel

from cloudflare_client.envelope import ApiError, ApiMessage, EnvelopeProcessor
from cloudflare_client.enums import ZoneStatus
from cloudflare_client.exceptions import (
    ApiEnvelopeError,
    DeserializationError,
    TransportStatusError,
)


class Zone(BaseModel):
    id: str
    name: str
    status: Optional[ZoneStatus] = None


def _response(status_code=200, json=None, content=None, headers=None):
    request = httpx.Request('GET', 'https://api.unit.tests/client/v4/zones')
    if json is not None:
        return httpx.Response(
            status_code, json=json, headers=headers, request=request
        )
    return httpx.Response(
        status_code, content=content or b'', headers=headers, request=request
    )


class TestEnvelopeProcessor(TestCase):
    def setUp(self):
        self.processor = EnvelopeProcessor()

    def test_success_returns_result(self):
        response = _response(
            json={
                'success': True,
                'errors': [],
                'messages': [],
                'result': {'id': 'z1', 'name': 'unit.tests'},
            }
        )
        self.assertEqual(
            {'id': 'z1', 'name': 'unit.tests'},
            self.processor.process(response),
        )

    def test_success_typed_result(self):
        response = _response(
            json={
                'success': True,
                'result': [
                    {'id': 'z1', 'name': 'a.tests', 'status': 'active'},
                    {'id': 'z2', 'name': 'b.tests', 'status': 'brand_new'},
                ],
            }
        )
        zones = self.processor.process(response, List[Zone])
        self.assertEqual(['z1', 'z2'], [z.id for z in zones])
        self.assertEqual(ZoneStatus.ACTIVE, zones[0].status)
        # Unknown server values are kept, not rejected
        self.assertEqual('brand_new', zones[1].status.value)
        self.assertFalse(zones[1].status.is_known)

    def test_success_null_result(self):
        response = _response(
            json={'success': True, 'errors': [], 'result': None}
        )
        self.assertIsNone(self.processor.process(response, Zone))

    def test_success_false_at_200_is_envelope_error(self):
        response = _response(
            json={
                'success': False,
                'errors': [{'code': 1003, 'message': 'Invalid zone'}],
                'messages': [],
                'result': None,
            }
        )
        with self.assertRaises(ApiEnvelopeError) as ctx:
            self.processor.process(response)
        self.assertEqual(
            (ApiError(code=1003, message='Invalid zone'),),
            ctx.exception.errors,
        )
        self.assertEqual(200, ctx.exception.status_code)
        self.assertIn('[1003] Invalid zone', str(ctx.exception))

    def test_failed_envelope_ignores_result_shape(self):
        # result does not match Zone at all, the failure still wins
        response = _response(
            json={
                'success': False,
                'errors': [{'code': 7003, 'message': 'Could not route'}],
                'result': 'garbage',
            }
        )
        with self.assertRaises(ApiEnvelopeError):
            self.processor.process(response, Zone)

    def test_error_status_with_envelope(self):
        response = _response(
            status_code=403,
            json={
                'success': False,
                'errors': [
                    {'code': 9109, 'message': 'Unauthorized'},
                    {'code': 10000, 'message': 'Authentication error'},
                ],
            },
        )
        with self.assertRaises(ApiEnvelopeError) as ctx:
            self.processor.process(response)
        self.assertEqual(
            [9109, 10000], [e.code for e in ctx.exception.errors]
        )
        self.assertEqual(403, ctx.exception.status_code)

    def test_error_status_without_envelope(self):
        response = _response(
            status_code=502,
            content=b'<html>Bad gateway</html>',
            headers={
                'cf-ray': '8a1b2c3d4e5f-AMS',
                'date': 'Sat, 17 Oct 2026 10:00:00 GMT',
                'x-other': 'ignored',
            },
        )
        with self.assertRaises(TransportStatusError) as ctx:
            self.processor.process(response)
        error = ctx.exception
        self.assertEqual(502, error.status_code)
        self.assertEqual('Bad Gateway', error.reason)
        self.assertEqual('<html>Bad gateway</html>', error.body)
        self.assertEqual(
            {
                'cf-ray': '8a1b2c3d4e5f-AMS',
                'date': 'Sat, 17 Oct 2026 10:00:00 GMT',
            },
            error.headers,
        )

    def test_error_status_with_empty_errors(self):
        response = _response(
            status_code=500, json={'success': False, 'errors': []}
        )
        with self.assertRaises(TransportStatusError):
            self.processor.process(response)

    def test_invalid_json_is_deserialization_error(self):
        response = _response(content=b'{"success": tru')
        with self.assertRaises(DeserializationError) as ctx:
            self.processor.process(response)
        self.assertEqual('{"success": tru', ctx.exception.body)
        self.assertIsNotNone(ctx.exception.__cause__)

    def test_result_shape_mismatch_is_deserialization_error(self):
        response = _response(
            json={'success': True, 'result': {'unexpected': True}}
        )
        with self.assertRaises(DeserializationError):
            self.processor.process(response, List[Zone])

    def test_messages_accept_strings_and_objects(self):
        response = _response(
            json={
                'success': True,
                'messages': ['plain', {'code': 1, 'message': 'structured'}],
                'result': {},
            }
        )
        envelope = self.processor.process_envelope(response)
        self.assertEqual('plain', envelope.messages[0])
        self.assertEqual(
            ApiMessage(code=1, message='structured'), envelope.messages[1]
        )

    def test_message_without_text_is_accepted(self):
        response = _response(
            json={'success': True, 'result': 1, 'messages': [{'code': 10000}]}
        )
        envelope = self.processor.process_envelope(response)
        self.assertEqual(1, envelope.result)
        self.assertEqual(ApiMessage(code=10000), envelope.messages[0])
        self.assertEqual('', envelope.messages[0].message)

    def test_pagination_metadata(self):
        response = _response(
            json={
                'success': True,
                'result': [],
                'result_info': {
                    'page': 2,
                    'per_page': 25,
                    'count': 4,
                    'total_count': 54,
                    'total_pages': 3,
                },
                'cursor_result_info': {'count': 4, 'per_page': 25},
            }
        )
        envelope = self.processor.process_envelope(response)
        self.assertEqual(2, envelope.page_info.page)
        self.assertEqual(54, envelope.page_info.total_count)
        self.assertIsNone(envelope.page_info.cursor)
        self.assertIsNone(envelope.cursor_info.cursor)

    def test_process_raw_returns_body_verbatim(self):
        body = 'unit.tests.\t3600\tIN\tA\t1.2.3.4\n'
        response = _response(content=body.encode('utf-8'))
        self.assertEqual(body, self.processor.process_raw(response))

    def test_process_raw_shares_error_path(self):
        response = _response(
            status_code=404,
            json={
                'success': False,
                'errors': [{'code': 1001, 'message': 'Zone not found'}],
            },
        )
        with self.assertRaises(ApiEnvelopeError):
            self.processor.process_raw(response)

        response = _response(status_code=503, content=b'unavailable')
        with self.assertRaises(TransportStatusError):
            self.processor.process_raw(response)
