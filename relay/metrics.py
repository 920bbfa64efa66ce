"""
Prometheus metrics for the chat relay.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- Channel event counter (event, result)
- OTP request counter (result)
- Connected channel gauge

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

# HTTP request counter with labels for method, path, and status code
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# Request latency histogram in seconds
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

# Inbound channel events
# result: ok, rejected, malformed
socket_events_total = Counter(
    "socket_events_total",
    "Total inbound channel events by outcome",
    labelnames=["event", "result"]
)

# OTP outcomes
# result: issued, invalid_format, verified, failed
otp_requests_total = Counter(
    "otp_requests_total",
    "Total OTP issuance and verification outcomes",
    labelnames=["result"]
)

connected_channels = Gauge(
    "connected_channels",
    "Currently connected channels"
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    normalized_path = path.split("?")[0]

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_socket_event(event: str, result: str) -> None:
    """
    Record the outcome of an inbound channel event.

    Args:
        event: Event name, or "unknown" when the frame had none
        result: "ok", "rejected" (reported to the client) or "malformed"
    """
    socket_events_total.labels(event=event, result=result).inc()


def record_otp_outcome(result: str) -> None:
    otp_requests_total.labels(result=result).inc()


def set_connected_channels(count: int) -> None:
    connected_channels.set(count)


def get_metrics() -> bytes:
    """
    Generate Prometheus exposition format metrics.

    Returns:
        Metrics in Prometheus text format as bytes
    """
    return generate_latest()


def get_metrics_content_type() -> str:
    """
    Get the content type for Prometheus metrics.

    Returns:
        Content type string for Prometheus exposition format
    """
    return CONTENT_TYPE_LATEST
