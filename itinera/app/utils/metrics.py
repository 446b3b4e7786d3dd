"""Prometheus metrics for authentication and itinerary mutations."""

from prometheus_client import Counter, Histogram

auth_resolutions_total = Counter(
    "auth_resolutions_total",
    "Auth gate resolutions by outcome",
    ["outcome"],
)

itinerary_mutations_total = Counter(
    "itinerary_mutations_total",
    "Itinerary mutations by operation and outcome",
    ["operation", "outcome"],
)

itinerary_mutation_latency_ms = Histogram(
    "itinerary_mutation_latency_ms",
    "Itinerary mutation latency in milliseconds, lock wait included",
    ["operation"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500],
)


class PrometheusAuthMetrics:
    """Prometheus-based auth gate metrics."""

    def record_resolution(self, outcome: str) -> None:
        """Count one gate decision (``resolved`` or a rejection reason)."""
        auth_resolutions_total.labels(outcome=outcome).inc()


class PrometheusMutationMetrics:
    """Prometheus-based itinerary mutation metrics."""

    def record(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record one mutation attempt."""
        itinerary_mutations_total.labels(operation=operation, outcome=outcome).inc()
        itinerary_mutation_latency_ms.labels(operation=operation).observe(latency_ms)
