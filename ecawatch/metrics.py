# -*- coding: utf-8 -*-
"""
Prometheus Metrics - ECA Watch

Prometheus metrics for the emission ledger and its collaborators with
graceful fallback when prometheus_client is not installed.

Metrics:
    1. ecawatch_readings_recorded_total (Counter)
    2. ecawatch_recording_duration_seconds (Histogram)
    3. ecawatch_rejections_total (Counter)
    4. ecawatch_notices_filed_total (Counter)
    5. ecawatch_registered_vessels (Gauge)
    6. ecawatch_notices_stored (Gauge)
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Graceful prometheus_client import
# ---------------------------------------------------------------------------

try:
    from prometheus_client import Counter, Gauge, Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    logger.info(
        "prometheus_client not installed; ecawatch metrics disabled"
    )


# ---------------------------------------------------------------------------
# Metric definitions
# ---------------------------------------------------------------------------

if PROMETHEUS_AVAILABLE:
    # 1. Accepted readings by zone and verdict
    ecawatch_readings_recorded_total = Counter(
        "ecawatch_readings_recorded_total",
        "Total sulfur readings accepted by the emission ledger",
        labelnames=["zone", "result"],
    )

    # 2. Recording duration
    ecawatch_recording_duration_seconds = Histogram(
        "ecawatch_recording_duration_seconds",
        "Emission recording duration in seconds",
        labelnames=["zone"],
        buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
    )

    # 3. Rejected calls by reason
    ecawatch_rejections_total = Counter(
        "ecawatch_rejections_total",
        "Total rejected state-changing calls by reason",
        labelnames=["reason"],
    )

    # 4. Notices filed by zone
    ecawatch_notices_filed_total = Counter(
        "ecawatch_notices_filed_total",
        "Total non-compliance notices filed",
        labelnames=["zone"],
    )

    # 5. Registered vessels gauge
    ecawatch_registered_vessels = Gauge(
        "ecawatch_registered_vessels",
        "Current number of registered vessels",
    )

    # 6. Stored notices gauge
    ecawatch_notices_stored = Gauge(
        "ecawatch_notices_stored",
        "Current number of notices in the notification log",
    )

else:
    # No-op placeholders
    ecawatch_readings_recorded_total = None  # type: ignore[assignment]
    ecawatch_recording_duration_seconds = None  # type: ignore[assignment]
    ecawatch_rejections_total = None  # type: ignore[assignment]
    ecawatch_notices_filed_total = None  # type: ignore[assignment]
    ecawatch_registered_vessels = None  # type: ignore[assignment]
    ecawatch_notices_stored = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Helper functions (safe to call even without prometheus_client)
# ---------------------------------------------------------------------------


def record_reading(zone: str, compliant: bool, duration_seconds: float) -> None:
    """Record an accepted reading.

    Args:
        zone: Emission zone ("eca" or "non_eca").
        compliant: Compliance verdict of the reading.
        duration_seconds: Recording duration in seconds.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    result = "compliant" if compliant else "non_compliant"
    ecawatch_readings_recorded_total.labels(zone=zone, result=result).inc()
    ecawatch_recording_duration_seconds.labels(zone=zone).observe(
        duration_seconds,
    )


def record_rejection(reason: str) -> None:
    """Record a rejected call by reason category.

    Args:
        reason: Error code of the rejection.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    ecawatch_rejections_total.labels(reason=reason).inc()


def record_notice(zone: str) -> None:
    """Record a filed notice.

    Args:
        zone: Emission zone of the triggering reading.
    """
    if not PROMETHEUS_AVAILABLE:
        return
    ecawatch_notices_filed_total.labels(zone=zone).inc()


def update_vessels_count(count: int) -> None:
    """Set the registered vessels gauge."""
    if not PROMETHEUS_AVAILABLE:
        return
    ecawatch_registered_vessels.set(count)


def update_notices_count(count: int) -> None:
    """Set the stored notices gauge."""
    if not PROMETHEUS_AVAILABLE:
        return
    ecawatch_notices_stored.set(count)


__all__ = [
    "PROMETHEUS_AVAILABLE",
    # Metric objects
    "ecawatch_readings_recorded_total",
    "ecawatch_recording_duration_seconds",
    "ecawatch_rejections_total",
    "ecawatch_notices_filed_total",
    "ecawatch_registered_vessels",
    "ecawatch_notices_stored",
    # Helper functions
    "record_reading",
    "record_rejection",
    "record_notice",
    "update_vessels_count",
    "update_notices_count",
]
