"""Prometheus metrics instrumentation for call signaling.

Exposes counters for the call request lifecycle, settlement and credential
issuance. Metrics are exposed via HTTP on port 8001 (configurable) when
METRICS_ENABLED is set.

Metrics exported:
- call_requests_total: Counter of request transitions by outcome
- call_sessions_settled_total: Counter of settled sessions by call type
- call_settlement_amount_total: Sum of settled amounts by call type
- rtc_credential_failures_total: Counter of credential issuance failures

Usage:
    from app.services.metrics import start_metrics_server, call_requests

    start_metrics_server(port=8001)
    call_requests.labels(outcome='accepted').inc()
"""

from prometheus_client import Counter, start_http_server
import logging

logger = logging.getLogger(__name__)

# Request lifecycle counters
call_requests = Counter(
    'call_requests_total',
    'Call request transitions',
    labelnames=['outcome']  # outcome: created, accepted, rejected, expired, cas_miss
)

# Settlement counters
sessions_settled = Counter(
    'call_sessions_settled_total',
    'Call sessions settled',
    labelnames=['call_type']
)

settlement_amount = Counter(
    'call_settlement_amount_total',
    'Total amount credited to hosts by settlement',
    labelnames=['call_type']
)

# Credential issuance failures
credential_failures = Counter(
    'rtc_credential_failures_total',
    'RTC credential issuance failures',
    labelnames=['reason']  # reason: not_configured, signing
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
