"""
CSPM API client wrapper and request policy management.
"""
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import requests

from .models import Credentials, LicenseContext


SUBSCRIPTION_KEY_HEADER = 'Ocp-Apim-Subscription-Key'


@dataclass(frozen=True)
class RetryPolicy:
    """
    How many times an API call is attempted and how long to wait in between.

    The default is a single attempt: the first failure propagates.
    """
    max_attempts: int = 1
    backoff_intervals: Tuple[int, ...] = (30,)

    def delay_for(self, attempt: int) -> int:
        if attempt < len(self.backoff_intervals):
            return self.backoff_intervals[attempt]
        return self.backoff_intervals[-1]


class ApiClientWrapper:
    """Wrapper for the CSPM REST API with error handling and optional retry logic."""

    def __init__(self, license_context: LicenseContext, credentials: Credentials,
                 session: Optional[requests.Session] = None,
                 retry_policy: Optional[RetryPolicy] = None,
                 timeout: Optional[float] = 60, sleep=time.sleep):
        """Initialize the API client for one license."""
        self.license_context = license_context
        self.credentials = credentials
        self.session = session or requests.Session()
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout or None
        self._sleep = sleep

        self.session.headers.update({
            SUBSCRIPTION_KEY_HEADER: credentials.subscription_key,
            'Accept': 'application/json',
        })

    def url(self, path: str) -> str:
        """Absolute URL for an API path on the license's domain."""
        return f"{self.license_context.base_url}/{path.lstrip('/')}"

    @staticmethod
    def bearer_headers(token: str) -> Dict[str, str]:
        return {'Authorization': f'Bearer {token}'}

    def make_api_call_with_retry(self, api_call):
        """
        Make an API call, retrying according to the retry policy.

        Args:
            api_call: Function that makes the API call

        Returns:
            API response data

        Raises:
            Exception: The last failure once all attempts are used up
        """
        max_attempts = self.retry_policy.max_attempts
        for attempt in range(max_attempts):
            try:
                return api_call()
            except (requests.exceptions.RequestException, ValueError) as e:
                if attempt == max_attempts - 1:
                    raise

                response = getattr(e, 'response', None)
                is_rate_limit = response is not None and response.status_code == 429
                delay = self.retry_policy.delay_for(attempt)
                if is_rate_limit:
                    print(f"      ⏳ Rate limit hit, waiting {delay}s (retry {attempt + 1}/{max_attempts - 1})")
                else:
                    print(f"      ⚠️ API error, waiting {delay}s (retry {attempt + 1}/{max_attempts - 1}): {str(e)[:100]}")
                self._sleep(delay)

        raise RuntimeError("Retry policy allows no attempts")

    def _send(self, method: str, url: str, **kwargs) -> Any:
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response.json()

    def get_json(self, url: str, token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET a URL with bearer auth and return the decoded JSON body."""
        def api_call():
            return self._send('GET', url, headers=self.bearer_headers(token), params=params)

        return self.make_api_call_with_retry(api_call)

    def post_json(self, url: str, body: Dict[str, Any], params: Optional[Dict[str, Any]] = None) -> Any:
        """POST a JSON body and return the decoded JSON response."""
        def api_call():
            return self._send('POST', url, json=body, params=params)

        return self.make_api_call_with_retry(api_call)
