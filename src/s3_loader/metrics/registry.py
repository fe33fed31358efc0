"""
Loader metrics in the Prometheus global REGISTRY.
Import this module (or enable the Prometheus monitoring backend) at startup.
"""

from prometheus_client import Counter, Histogram


# --- Delivery Metrics ---

DELIVERY_FAILURES_TOTAL = Counter(
    "s3_loader_delivery_failures_total",
    "Total number of failed S3 upload attempts",
    ["storage"],
)

DELIVERY_RETRY_ELAPSED_SECONDS = Histogram(
    "s3_loader_delivery_retry_elapsed_seconds",
    "Seconds since the first attempt when an upload attempt failed",
    ["storage"],
    buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
)

SHUTDOWNS_TOTAL = Counter(
    "s3_loader_forced_shutdowns_total",
    "Forced shutdowns after exceeding the maximum connection time",
)

# --- Batch Metrics ---

BATCH_RECORDS_TOTAL = Counter(
    "s3_loader_batch_records_total",
    "Records contained in delivered batches",
)

BATCH_LATENCY_SECONDS = Histogram(
    "s3_loader_batch_latency_seconds",
    "Age of the earliest record in a batch when the batch was delivered",
    buckets=[0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600, 1800],
)


class MetricsRegistry:
    """Centralized access to the loader metrics."""

    delivery_failures_total = DELIVERY_FAILURES_TOTAL
    delivery_retry_elapsed_seconds = DELIVERY_RETRY_ELAPSED_SECONDS
    shutdowns_total = SHUTDOWNS_TOTAL
    batch_records_total = BATCH_RECORDS_TOTAL
    batch_latency_seconds = BATCH_LATENCY_SECONDS


# Singleton instance
metrics_registry = MetricsRegistry()
