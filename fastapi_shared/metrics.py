"""Prometheus metrics for the shared middleware."""

from prometheus_client import Counter

# App Check outcomes: exempt, bypassed, missing, cache_hit, verified, rejected, error
APP_CHECK_REQUESTS_TOTAL = Counter(
    "app_check_requests_total",
    "App Check middleware decisions",
    ["outcome"],
)

# Remote log delivery
LOG_EVENTS_SENT_TOTAL = Counter(
    "log_events_sent_total",
    "Log events shipped to the remote collector",
    ["sink", "success"],
)

RATE_LIMIT_EXCEEDED_TOTAL = Counter(
    "rate_limit_exceeded_total",
    "Requests rejected by the rate limiter",
    ["endpoint"],
)
