"""Prometheus metrics for the gateway"""
from prometheus_client import Counter, Histogram, Gauge, Info

# Request metrics
REQUEST_COUNT = Counter(
    'claude_gateway_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'model', 'provider', 'status_code']
)

REQUEST_DURATION = Histogram(
    'claude_gateway_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint', 'model', 'provider'],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, float('inf'))
)

ACTIVE_REQUESTS = Gauge(
    'claude_gateway_active_requests',
    'Number of active requests',
    ['endpoint']
)

# Token usage metrics
TOKEN_USAGE = Counter(
    'claude_gateway_tokens_total',
    'Total number of tokens used',
    ['model', 'provider', 'token_type']
)

USAGE_REPORT_FAILURES = Counter(
    'claude_gateway_usage_report_failures_total',
    'Usage reports the reporter failed to record',
    ['model']
)

# Upstream metrics
UPSTREAM_ERRORS = Counter(
    'claude_gateway_upstream_errors_total',
    'Errors returned by or while talking to the backend',
    ['provider', 'error_type']
)

CLIENT_DISCONNECTS = Counter(
    'claude_gateway_client_disconnects_total',
    'Streaming requests abandoned because the caller disconnected',
    ['model', 'provider']
)

# Application info
APP_INFO = Info('claude_gateway_app', 'Application information')
