"""
Prometheus metrics definitions for the Twosense connector.

Counters track token exchanges, fetched pages/events, poll cycle outcomes
and lookup outcomes. Long-running hosts expose the default registry; the
CLI is short-lived and pushes it to a Pushgateway instead.

Naming: snake_case with a twosense_ prefix.
"""

import logging

from prometheus_client import REGISTRY, Counter, Histogram, pushadd_to_gateway

logger = logging.getLogger("twosense.metrics")

# ==============================================================================
# COUNTERS
# ==============================================================================

token_requests_total = Counter(
    "twosense_token_requests_total",
    "Client-credentials token exchanges",
    ["status"],
    # status: success, failed
)

pages_fetched_total = Counter(
    "twosense_pages_fetched_total",
    "Event pages fetched from the events endpoint",
    ["operation"],
    # operation: historical, poll
)

events_fetched_total = Counter(
    "twosense_events_fetched_total",
    "Events aggregated from completed fetches",
    ["operation"],
)

poll_cycles_total = Counter(
    "twosense_poll_cycles_total",
    "Poll cycles by outcome",
    ["outcome"],
    # outcome: initialized, empty, emitted, failed
)

lookups_total = Counter(
    "twosense_lookups_total",
    "Single-entity lookups by outcome",
    ["resource", "outcome"],
    # resource: session, trust_score
    # outcome: found, not_found, no_recent_score, api_error, failed
)

# ==============================================================================
# HISTOGRAMS
# ==============================================================================

operation_duration_seconds = Histogram(
    "twosense_operation_duration_seconds",
    "Wall time of a full connector operation including token exchange",
    ["operation"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


def push_metrics(gateway: str, job: str = "twosense_connector", instance: str = "default") -> bool:
    """Push the default registry to a Pushgateway.

    Fails open: a push error is logged and reported, never raised.

    Args:
        gateway: Pushgateway address (host:port)
        job: Pushgateway job name
        instance: grouping_key instance label (poll instance name)

    Returns:
        True if the push succeeded.
    """
    try:
        pushadd_to_gateway(
            gateway,
            job=job,
            registry=REGISTRY,
            grouping_key={"instance": instance},
        )
        return True
    except Exception as e:
        logger.warning("metrics_push_failed", extra={"gateway": gateway, "error": str(e)})
        return False
