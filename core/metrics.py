"""
Prometheus metrics for outbound PayPal traffic.

The counters live in the default prometheus_client registry, so any
exporter the host application already runs picks them up.
"""

from prometheus_client import Counter, Histogram

nvp_calls = Counter(
    "paypal_nvp_calls_total",
    "Total number of NVP calls that returned a response",
    ["method", "ack"],
)

nvp_latency = Histogram(
    "paypal_nvp_latency_seconds",
    "Round trip time of NVP calls",
    ["method"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ipn_validations = Counter(
    "paypal_ipn_validations_total",
    "Total number of IPN validation requests",
    ["verdict"],  # VERIFIED, INVALID or other
)

transport_failures = Counter(
    "paypal_transport_failures_total",
    "Requests that failed below the HTTP layer",
    ["code"],
)


def verdict_label(verdict: str) -> str:
    """Collapse free-form IPN bodies (error pages) into a bounded label set."""
    if verdict in ("VERIFIED", "INVALID"):
        return verdict
    return "other"
