#
#
#


class CloudflareException(Exception):
    pass


class CloudflareConfigurationError(CloudflareException):
    def __init__(self, failures):
        self.failures = tuple(failures)
        super().__init__('; '.join(self.failures))


class TransportStatusError(CloudflareException):
    def __init__(self, status_code, reason, body, headers=None):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.headers = dict(headers or {})
        super().__init__(
            f'Cloudflare API request failed with status code {status_code} '
            f'({reason}). Response Body: {body}'
        )


class ApiEnvelopeError(CloudflareException):
    def __init__(self, errors, status_code=None, body=None):
        self.errors = tuple(errors)
        self.status_code = status_code
        self.body = body
        details = ', '.join(f'[{e.code}] {e.message}' for e in self.errors)
        super().__init__(
            f'Cloudflare API returned a failure response: '
            f'{details or "no error details"}'
        )


class DeserializationError(CloudflareException):
    def __init__(self, body):
        self.body = body
        super().__init__(
            'Failed to deserialize Cloudflare API response. '
            f'Raw response: {body}'
        )


class RateLimitExhausted(CloudflareException):
    def __init__(self, response, attempts):
        self.response = response
        self.attempts = attempts
        request = response.request
        super().__init__(
            f'Rate limited on {request.method} {request.url} after '
            f'{attempts} attempts'
        )


class PartialResultError(CloudflareException):
    def __init__(self, items, pages_fetched, resume):
        self.items = list(items)
        self.pages_fetched = pages_fetched
        self.resume = resume
        super().__init__(
            f'Listing failed after {pages_fetched} pages '
            f'({len(self.items)} items retrieved)'
        )


class AdmissionRejected(CloudflareException):
    def __init__(self, permit_limit, queue_limit):
        self.permit_limit = permit_limit
        self.queue_limit = queue_limit
        super().__init__(
            f'Request rejected: {permit_limit} requests in flight and '
            f'{queue_limit} queued'
        )


class CircuitOpenError(CloudflareException):
    def __init__(self, retry_in=None):
        self.retry_in = retry_in
        super().__init__('Circuit breaker is open')


class RequestTimeout(CloudflareException):
    def __init__(self, method, url, timeout):
        self.method = method
        self.url = url
        self.timeout = timeout
        super().__init__(f'{method} {url} timed out after {timeout}s')
