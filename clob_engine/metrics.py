"""
Prometheus metrics for monitoring.

Each Metrics instance owns its registry so several clients can live in one
process (and in one test session) without duplicate-registration errors.
"""

from typing import Optional
import logging

from prometheus_client import CollectorRegistry, Counter, Histogram, Gauge, start_http_server

logger = logging.getLogger(__name__)

CIRCUIT_STATES = {"CLOSED": 0, "OPEN": 1, "HALF_OPEN": 2}


class Metrics:
    """
    Prometheus metrics collector.

    Tracks:
    - API request count and latency
    - Orders signed per side and signature type
    - Order submissions per status
    - Circuit breaker state
    """

    def __init__(
        self,
        enabled: bool = True,
        port: Optional[int] = None,
        registry: Optional[CollectorRegistry] = None
    ):
        """
        Initialize metrics.

        Args:
            enabled: Enable metrics collection
            port: Start an HTTP exporter on this port (None = no exporter)
            registry: Registry to register into (private one if None)
        """
        self.enabled = enabled
        self.registry = registry or CollectorRegistry()

        if not self.enabled:
            return

        self.api_requests = Counter(
            'clob_api_requests_total',
            'Total API requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.api_latency = Histogram(
            'clob_api_latency_seconds',
            'API request latency',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.orders_signed = Counter(
            'clob_orders_signed_total',
            'Orders signed',
            ['side', 'signature_type'],
            registry=self.registry
        )

        self.order_submissions = Counter(
            'clob_order_submissions_total',
            'Order submissions by outcome',
            ['status'],
            registry=self.registry
        )

        self.circuit_breaker_state = Gauge(
            'clob_circuit_breaker_state',
            'Circuit breaker state (0=closed, 1=open, 2=half-open)',
            ['name'],
            registry=self.registry
        )

        if port is not None:
            start_http_server(port, registry=self.registry)
            logger.info(f"Metrics server started on port {port}")

    def track_api_request(self, method: str, endpoint: str, status: str) -> None:
        """Record API request."""
        if self.enabled:
            self.api_requests.labels(method=method, endpoint=endpoint, status=status).inc()

    def track_api_latency(self, method: str, endpoint: str, duration: float) -> None:
        """Record API request latency in seconds."""
        if self.enabled:
            self.api_latency.labels(method=method, endpoint=endpoint).observe(duration)

    def track_order_signed(self, side: str, signature_type: str) -> None:
        if self.enabled:
            self.orders_signed.labels(side=side, signature_type=signature_type).inc()

    def track_order_submission(self, status: str) -> None:
        if self.enabled:
            self.order_submissions.labels(status=status).inc()

    def set_circuit_breaker_state(self, name: str, state: str) -> None:
        """Set circuit breaker state."""
        if self.enabled:
            self.circuit_breaker_state.labels(name=name).set(CIRCUIT_STATES.get(state, 0))
