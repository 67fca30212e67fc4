"""
Prometheus metrics for the booking backend.

Service timings come from the @measure_operation decorator; the capacity
ledger and payment gateway record their own outcome counters.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so tests and multiple app instances don't collide with defaults
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "classbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "classbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "classbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

capacity_operations_total = Counter(
    "classbook_capacity_operations_total",
    "Capacity ledger operations by outcome",
    ["operation", "outcome"],
    registry=REGISTRY,
)

payment_gateway_calls_total = Counter(
    "classbook_payment_gateway_calls_total",
    "Payment gateway calls by operation and outcome",
    ["operation", "outcome"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_capacity_operation(operation: str, outcome: str) -> None:
        capacity_operations_total.labels(operation=operation, outcome=outcome).inc()

    @staticmethod
    def record_gateway_call(operation: str, outcome: str) -> None:
        payment_gateway_calls_total.labels(operation=operation, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
