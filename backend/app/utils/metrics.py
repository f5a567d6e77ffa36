"""Prometheus metrics for generation, regeneration and the credit ledger."""

from prometheus_client import Counter, Histogram

itinerary_generations_total = Counter(
    "itinerary_generations_total",
    "Full itinerary generation attempts",
    ["outcome"],
)

slot_regenerations_total = Counter(
    "slot_regenerations_total",
    "Single-slot regeneration attempts",
    ["outcome"],
)

provider_latency_ms = Histogram(
    "provider_latency_ms",
    "Generation provider call latency in milliseconds",
    ["operation", "outcome"],
    buckets=[100, 500, 1000, 2500, 5000, 10000, 20000, 40000, 60000],
)

credits_consumed_total = Counter(
    "credits_consumed_total",
    "Generation credits consumed (unlimited accounts excluded)",
)

packages_applied_total = Counter(
    "packages_applied_total",
    "Package purchases applied to accounts",
    ["tier"],
)

itinerary_slot_gaps_total = Counter(
    "itinerary_slot_gaps_total",
    "Missing or duplicated canonical slots detected in generated itineraries",
    ["kind"],
)


class PrometheusGenerationMetrics:
    """Prometheus-based generation metrics implementation."""

    def record_generation(self, outcome: str) -> None:
        """Count a full generation attempt."""
        itinerary_generations_total.labels(outcome=outcome).inc()

    def record_regeneration(self, outcome: str) -> None:
        """Count a slot regeneration attempt."""
        slot_regenerations_total.labels(outcome=outcome).inc()

    def record_provider_latency(self, operation: str, outcome: str, latency_ms: float) -> None:
        """Record provider call latency."""
        provider_latency_ms.labels(operation=operation, outcome=outcome).observe(latency_ms)

    def inc_credit_consumed(self) -> None:
        """Increment consumed credit counter."""
        credits_consumed_total.inc()

    def inc_package_applied(self, tier: str) -> None:
        """Increment applied package counter."""
        packages_applied_total.labels(tier=tier).inc()

    def inc_slot_gaps(self, count: int, kind: str = "missing") -> None:
        """Add detected slot gaps (kind is "missing" or "duplicate")."""
        if count:
            itinerary_slot_gaps_total.labels(kind=kind).inc(count)
