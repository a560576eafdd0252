"""
Prometheus Metrics for the greenhouse backend

Metrics Categories:
- Ingest: telemetry pushes by outcome
- Provisioning: attempts by outcome, duration
- Control: actuator updates, control-state polls
"""
import time
from typing import Optional
from prometheus_client import (
    Counter, Histogram,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

# Custom registry (allows multiple instances for testing)
registry = CollectorRegistry()

# ============================================================
# Ingest Metrics
# ============================================================

telemetry_ingest_total = Counter(
    'telemetry_ingest_total',
    'Telemetry pushes received from greenhouse devices',
    ['status'],
    registry=registry
)

# ============================================================
# Provisioning Metrics
# ============================================================

provisioning_attempts_total = Counter(
    'provisioning_attempts_total',
    'Greenhouse provisioning attempts',
    ['outcome'],
    registry=registry
)

provisioning_duration_seconds = Histogram(
    'provisioning_duration_seconds',
    'Provisioning transaction duration in seconds',
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
    registry=registry
)

# ============================================================
# Control Metrics
# ============================================================

actuator_updates_total = Counter(
    'actuator_updates_total',
    'Actuator flag updates applied',
    ['actuator', 'value'],
    registry=registry
)

control_state_polls_total = Counter(
    'control_state_polls_total',
    'Control state reads by devices',
    ['status'],
    registry=registry
)

# ============================================================
# Helper Functions
# ============================================================

class MetricsTimer:
    """Context manager for timing operations"""

    def __init__(self, histogram, labels: Optional[dict] = None):
        self.histogram = histogram
        self.labels = labels or {}
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.perf_counter() - self.start_time
        if self.labels:
            self.histogram.labels(**self.labels).observe(duration)
        else:
            self.histogram.observe(duration)


def track_telemetry(status: str):
    """Track telemetry push (stored / unauthorized / error)"""
    telemetry_ingest_total.labels(status=status).inc()


def track_provisioning(outcome: str):
    """Track provisioning attempt (created / conflict / invalid / error)"""
    provisioning_attempts_total.labels(outcome=outcome).inc()


def track_actuator_update(actuator: str, value: bool):
    """Track actuator flag update"""
    actuator_updates_total.labels(actuator=actuator, value=str(value).lower()).inc()


def track_control_poll(status: str):
    """Track device control-state poll"""
    control_state_polls_total.labels(status=status).inc()


def get_metrics_text() -> bytes:
    """Get metrics in Prometheus text format"""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    """Get Prometheus content type"""
    return CONTENT_TYPE_LATEST
