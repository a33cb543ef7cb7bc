"""
Base HTTP client with robust error handling.

Thread-safe, with timeouts, retries and a circuit breaker. Request bodies
are serialised once with orjson; the same bytes are handed to the header
factory (for HMAC signing) and put on the wire.
"""

import time
from typing import Any, Callable, Optional
from urllib.parse import urljoin
import logging

import orjson
import requests
from requests.adapters import HTTPAdapter

from ..config import ClobSettings
from ..exceptions import (
    APIError,
    TimeoutError,
    RateLimitError,
    AuthenticationError
)
from ..metrics import Metrics
from ..utils.retry import RetryStrategy, CircuitBreaker

logger = logging.getLogger(__name__)

# (method, path, body) -> headers; called once per attempt
HeaderFactory = Callable[[str, str, Optional[bytes]], dict[str, str]]


def serialize_body(payload: Any) -> bytes:
    """Compact JSON, the exact bytes that get signed and sent."""
    return orjson.dumps(payload)


class BaseAPIClient:
    """
    Base HTTP client with error handling, retries and circuit breaking.

    Thread-safe for concurrent use.
    """

    def __init__(
        self,
        base_url: str,
        settings: ClobSettings,
        circuit_breaker: Optional[CircuitBreaker] = None,
        metrics: Optional[Metrics] = None
    ):
        """
        Initialize base API client.

        Args:
            base_url: API base URL
            settings: Client settings
            circuit_breaker: Optional circuit breaker
            metrics: Optional metrics collector
        """
        self.base_url = base_url
        self.settings = settings
        self.circuit_breaker = circuit_breaker
        self.metrics = metrics or Metrics(enabled=False)

        self.retry_strategy = RetryStrategy(
            max_retries=settings.max_retries,
            base_delay=1.0,
            max_delay=settings.retry_backoff_max,
            exponential_base=settings.retry_backoff_base,
            circuit_breaker=circuit_breaker
        )

        self.session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=10,
            pool_maxsize=50,
            max_retries=0,  # RetryStrategy owns retries
            pool_block=False
        )
        self.session.mount('https://', adapter)
        self.session.mount('http://', adapter)

        self.session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Connection": "keep-alive",
        })

        self.timeout = (settings.connect_timeout, settings.request_timeout)

    def _raise_for_status(self, response: requests.Response, method: str, path: str) -> None:
        error_msg = f"{method} {path} failed with {response.status_code}"
        error_data: Any = None
        try:
            error_data = orjson.loads(response.content)
            error_msg += f": {error_data}"
        except orjson.JSONDecodeError:
            error_msg += f": {response.text[:200]}"

        if response.status_code in (401, 403):
            raise AuthenticationError(error_msg, {"status_code": response.status_code})
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                error_msg,
                endpoint=path,
                retry_after=float(retry_after) if retry_after else None
            )
        raise APIError(error_msg, status_code=response.status_code, response=error_data)

    def _make_request(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        header_factory: Optional[HeaderFactory] = None,
        params: Optional[dict[str, Any]] = None,
        body: Optional[bytes] = None
    ) -> Any:
        """
        Make one HTTP request.

        Args:
            method: HTTP method
            path: Request path (signed path, no query string)
            headers: Static extra headers
            header_factory: Builds auth headers for this attempt
            params: Query parameters
            body: Pre-serialised JSON body

        Returns:
            Decoded JSON response ({} for an empty body)

        Raises:
            AuthenticationError: On 401/403
            RateLimitError: On 429
            APIError: On other HTTP errors, bad JSON or connection failure
            TimeoutError: On timeout
        """
        url = urljoin(self.base_url, path)

        request_headers = dict(headers or {})
        if header_factory is not None:
            request_headers.update(header_factory(method, path, body))

        if self.settings.log_requests:
            logger.debug(f"{method} {url} params={params}")

        status = "error"
        start = time.perf_counter()
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=request_headers,
                params=params,
                data=body,
                timeout=self.timeout
            )
            status = str(response.status_code)

            if response.status_code >= 400:
                self._raise_for_status(response, method, path)

            if not response.content:
                return {}
            try:
                return orjson.loads(response.content)
            except orjson.JSONDecodeError as e:
                logger.error(f"Invalid JSON response: {response.text[:200]}")
                raise APIError(f"Invalid JSON response: {e}",
                               status_code=response.status_code) from e

        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout: {method} {url}")
            raise TimeoutError(f"Request timeout: {e}") from e

        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error: {method} {url}")
            raise APIError(f"Connection error: {e}") from e

        finally:
            self.metrics.track_api_request(method, path, status)
            self.metrics.track_api_latency(method, path, time.perf_counter() - start)

    def request(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        header_factory: Optional[HeaderFactory] = None,
        params: Optional[dict[str, Any]] = None,
        body: Optional[bytes] = None,
        retry: bool = True
    ) -> Any:
        """
        Make a request, through the retry strategy unless retry=False.

        Order submission must pass retry=False.
        """
        try:
            return self._dispatch(method, path, headers, header_factory, params, body, retry)
        finally:
            if self.circuit_breaker:
                self.metrics.set_circuit_breaker_state(
                    self.circuit_breaker.name, self.circuit_breaker.state
                )

    def _dispatch(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]],
        header_factory: Optional[HeaderFactory],
        params: Optional[dict[str, Any]],
        body: Optional[bytes],
        retry: bool
    ) -> Any:
        if retry:
            return self.retry_strategy.execute(
                self._make_request,
                method,
                path,
                headers=headers,
                header_factory=header_factory,
                params=params,
                body=body
            )

        if self.circuit_breaker:
            return self.circuit_breaker.call(
                self._make_request,
                method,
                path,
                headers=headers,
                header_factory=header_factory,
                params=params,
                body=body
            )
        return self._make_request(
            method,
            path,
            headers=headers,
            header_factory=header_factory,
            params=params,
            body=body
        )

    def get(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        header_factory: Optional[HeaderFactory] = None,
        retry: bool = True
    ) -> Any:
        """Make GET request."""
        return self.request("GET", path, header_factory=header_factory,
                            params=params, retry=retry)

    def post(
        self,
        path: str,
        payload: Any = None,
        header_factory: Optional[HeaderFactory] = None,
        retry: bool = True
    ) -> Any:
        """Make POST request with a JSON payload."""
        body = serialize_body(payload) if payload is not None else None
        return self.request("POST", path, header_factory=header_factory,
                            body=body, retry=retry)

    def delete(
        self,
        path: str,
        payload: Any = None,
        header_factory: Optional[HeaderFactory] = None,
        retry: bool = True
    ) -> Any:
        """Make DELETE request, optionally with a JSON payload."""
        body = serialize_body(payload) if payload is not None else None
        return self.request("DELETE", path, header_factory=header_factory,
                            body=body, retry=retry)

    def close(self) -> None:
        """Close session and cleanup resources."""
        self.session.close()
        logger.info("API client session closed")
