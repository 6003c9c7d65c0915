"""Prometheus instrumentation for the signer.

Labels stay low-cardinality: operation names and error kinds only.
"""
from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

OPERATIONS = Counter(
    "kmsigner_operations_total",
    "Signer operations by outcome (ok or error kind).",
    ["operation", "result"],
    registry=REGISTRY,
)
VERIFY_FAILURES = Counter(
    "kmsigner_verification_failures_total",
    "Freshly produced signatures rejected by re-verification.",
    ["check"],
    registry=REGISTRY,
)
CUSTODIAN_LATENCY = Histogram(
    "kmsigner_custodian_latency_ms",
    "Custodian call latency (ms).",
    ["call"],
    buckets=(5, 10, 25, 50, 75, 100, 150, 250, 500, 1000, 2500, 5000, 10000),
    registry=REGISTRY,
)


def record_operation(operation: str, result: str) -> None:
    OPERATIONS.labels(operation=operation, result=result).inc()


def record_verify_failure(check: str) -> None:
    VERIFY_FAILURES.labels(check=check).inc()


def observe_custodian(call: str, latency_ms: float) -> None:
    CUSTODIAN_LATENCY.labels(call=call).observe(latency_ms)


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
