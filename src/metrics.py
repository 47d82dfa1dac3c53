"""Prometheus metrics for TokenBot.

Exposes an HTTP endpoint (default :9090/metrics) that Prometheus can scrape.
All metric objects are module-level singletons: import and use directly.

Metrics exposed:
  tokenbot_api_requests_total        counter  endpoint=search|detail, outcome=ok|http_error|…
  tokenbot_api_request_seconds       histogram endpoint=search|detail
  tokenbot_stale_responses_total     counter  controller=search|detail
  tokenbot_lookups_total             counter  kind=inline|command|detail, result=ok|empty|error
"""
import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

api_requests_total = Counter(
    "tokenbot_api_requests_total",
    "Number of token API requests by outcome",
    ["endpoint", "outcome"],   # outcome = ok | http_error | network_error | decode_error | cancelled
)

api_request_seconds = Histogram(
    "tokenbot_api_request_seconds",
    "Wall-clock duration of a token API request (seconds)",
    ["endpoint"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10],
)

stale_responses_total = Counter(
    "tokenbot_stale_responses_total",
    "Responses discarded because a newer request superseded them",
    ["controller"],
)

lookups_total = Counter(
    "tokenbot_lookups_total",
    "Number of user lookups served",
    ["kind", "result"],        # kind = inline | command | detail
)


# ---------------------------------------------------------------------------
# Server bootstrap
# ---------------------------------------------------------------------------

def start_metrics_server(port: int = 9090) -> None:
    """Start the Prometheus metrics HTTP server in a background thread.

    Logs a warning and continues if the port is already in use.
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server listening on :{port}/metrics")
    except OSError as exc:
        logger.warning(f"Could not start metrics server on port {port}: {exc}")
