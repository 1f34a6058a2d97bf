#
#
#

"""Client configuration.

Configuration is an explicit value handed to ``CloudflareClient`` at
construction time. Nothing here is global; two clients built from equal
configs still own separate limiter and breaker state.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import CloudflareConfigurationError

DEFAULT_BASE_URL = 'https://api.cloudflare.com/client/v4/'


@dataclass(frozen=True)
class RateLimitingConfig:
    """429 retry and admission settings.

    Args:
        enabled: Retry idempotent requests that were rate limited
        max_retries: Retries after the first attempt (0 disables retries)
        permit_limit: Concurrent in-flight requests per client
        queue_limit: Callers allowed to wait for a free permit
        base_delay: Exponential backoff base in seconds
        max_delay: Ceiling for computed backoff and proactive throttling
            in seconds
        total_timeout: Budget in seconds for one logical request, all
            retries and waits included
        enable_proactive_throttling: Delay requests until the quota resets
            once ``RateLimit-*`` headers report it running low
        quota_low_threshold: Fraction of the quota left (remaining / limit)
            below which throttling begins
    """

    enabled: bool = True
    max_retries: int = 2
    permit_limit: int = 20
    queue_limit: int = 50
    base_delay: float = 1.0
    max_delay: float = 60.0
    total_timeout: float = 60.0
    enable_proactive_throttling: bool = True
    quota_low_threshold: float = 0.1

    @property
    def retries_enabled(self) -> bool:
        return self.enabled and self.max_retries > 0


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Transient-fault breaker settings.

    The breaker opens once ``failure_ratio`` of the calls seen during the
    last ``sampling_duration`` seconds failed, provided at least
    ``minimum_throughput`` calls were seen.
    """

    failure_ratio: float = 0.5
    minimum_throughput: int = 10
    sampling_duration: float = 30.0
    break_duration: float = 5.0


@dataclass(frozen=True)
class CloudflareConfig:
    api_token: str
    base_url: str = DEFAULT_BASE_URL
    account_id: Optional[str] = None
    timeout: float = 30.0
    connect_timeout: float = 10.0
    user_agent: Optional[str] = None
    rate_limiting: RateLimitingConfig = field(
        default_factory=RateLimitingConfig
    )
    circuit_breaker: CircuitBreakerConfig = field(
        default_factory=CircuitBreakerConfig
    )

    def __repr__(self):
        return (
            f'CloudflareConfig(api_token=***, base_url={self.base_url!r}, '
            f'account_id={self.account_id!r}, timeout={self.timeout})'
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'CloudflareConfig':
        """Build a config from a plain mapping, e.g. a parsed YAML section.

        Unknown keys are rejected so typos surface at startup rather than
        silently falling back to defaults.
        """
        data = dict(data)
        rate_limiting = data.pop('rate_limiting', None) or {}
        circuit_breaker = data.pop('circuit_breaker', None) or {}
        failures = []
        failures += _unknown_keys(cls, data, '')
        failures += _unknown_keys(
            RateLimitingConfig, rate_limiting, 'rate_limiting.'
        )
        failures += _unknown_keys(
            CircuitBreakerConfig, circuit_breaker, 'circuit_breaker.'
        )
        if failures:
            raise CloudflareConfigurationError(failures)
        if 'api_token' not in data:
            raise CloudflareConfigurationError(
                ['Cloudflare api_token is required.']
            )
        return cls(
            rate_limiting=RateLimitingConfig(**rate_limiting),
            circuit_breaker=CircuitBreakerConfig(**circuit_breaker),
            **data,
        )

    def validate(self) -> None:
        failures: List[str] = []

        if not self.api_token or not self.api_token.strip():
            failures.append(
                'Cloudflare api_token is required. Create one in the '
                'Cloudflare dashboard under My Profile > API Tokens.'
            )
        if not self.base_url or not self.base_url.strip():
            failures.append('Cloudflare base_url is required.')
        elif not self.base_url.startswith(('https://', 'http://')):
            failures.append(
                f'Cloudflare base_url must be an http(s) URL, got '
                f'{self.base_url!r}.'
            )
        if self.timeout <= 0:
            failures.append('timeout must be greater than 0.')
        if self.connect_timeout <= 0:
            failures.append('connect_timeout must be greater than 0.')

        rl = self.rate_limiting
        if rl.max_retries < 0:
            failures.append('rate_limiting.max_retries must be >= 0.')
        if rl.permit_limit < 1:
            failures.append('rate_limiting.permit_limit must be >= 1.')
        if rl.queue_limit < 0:
            failures.append('rate_limiting.queue_limit must be >= 0.')
        if rl.base_delay < 0:
            failures.append('rate_limiting.base_delay must be >= 0.')
        if rl.max_delay < rl.base_delay:
            failures.append(
                'rate_limiting.max_delay must be >= rate_limiting.base_delay.'
            )
        if rl.total_timeout <= 0:
            failures.append(
                'rate_limiting.total_timeout must be greater than 0.'
            )
        if not 0 <= rl.quota_low_threshold <= 1:
            failures.append(
                'rate_limiting.quota_low_threshold must be in the range '
                '[0, 1].'
            )

        cb = self.circuit_breaker
        if not 0 < cb.failure_ratio <= 1:
            failures.append(
                'circuit_breaker.failure_ratio must be in the range (0, 1].'
            )
        if cb.minimum_throughput < 1:
            failures.append('circuit_breaker.minimum_throughput must be >= 1.')
        if cb.sampling_duration <= 0:
            failures.append(
                'circuit_breaker.sampling_duration must be greater than 0.'
            )
        if cb.break_duration < 0:
            failures.append('circuit_breaker.break_duration must be >= 0.')

        if failures:
            raise CloudflareConfigurationError(failures)


def _unknown_keys(cls, data: Dict[str, Any], prefix: str) -> List[str]:
    known = {f.name for f in fields(cls)}
    return [
        f'Unknown configuration key {prefix}{key!r}.'
        for key in sorted(data)
        if key not in known
    ]
