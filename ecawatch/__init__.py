# -*- coding: utf-8 -*-
"""
ECA Watch: Vessel Sulfur-Emission Compliance Ledger
===================================================

Records maritime sulfur-emission readings, evaluates each against the
Emission Control Area (ECA) or global limit, and files an audit-grade
non-compliance notice for every violation. It supports:

- Vessel registry with administrator-only upsert registration
- Emission ledger with owner-authorized, append-only per-vessel history
- Notification log with a single administrator-assigned filer
- Atomic history append and notice filing
- SHA-256 chain-hashed provenance of every ledger mutation
- Prometheus metrics with graceful fallback
- Thread-safe configuration with ECAWATCH_ env prefix

Key Components:
    - vessel_registry: VesselRegistry
    - notification_log: NotificationLog
    - emission_ledger: EmissionLedger
    - provenance: ProvenanceTracker
    - config: EcaWatchConfig with ECAWATCH_ env prefix
    - metrics: Prometheus metrics
    - setup: EcaWatchService facade

Example:
    >>> from ecawatch import Caller, EcaWatchService
    >>> service = EcaWatchService()
    >>> service.startup()
    >>> admin = Caller(principal_id=service.config.administrator_id)
    >>> service.register_vessel("IMO1234567", "owner-1", "Panama", admin)
    >>> record = service.record_emission(
    ...     "IMO1234567", 90, "Baltic Sea", True, "Denmark",
    ...     Caller(principal_id="owner-1"),
    ... )
    >>> record.is_compliant
    True
"""

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from ecawatch.config import (
    EcaWatchConfig,
    get_config,
    set_config,
    reset_config,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
from ecawatch.exceptions import (
    EcaWatchException,
    LedgerException,
    UnregisteredVessel,
    InvalidInput,
    AuthorizationError,
    NotVesselOwner,
    NotAuthorizedFiler,
    NotAdministrator,
    ServiceNotRunning,
)

# ---------------------------------------------------------------------------
# Models (constants, policy, core, events)
# ---------------------------------------------------------------------------
from ecawatch.models import (
    # Constants
    ECA_LIMIT,
    NON_ECA_LIMIT,
    ECA_VIOLATION_MESSAGE,
    NON_ECA_VIOLATION_MESSAGE,
    # Enumerations
    EmissionZone,
    # Policy
    threshold_for,
    evaluate_compliance,
    violation_message,
    # Core models
    Caller,
    Vessel,
    EmissionRecord,
    ComplianceNotice,
    EmissionRecorded,
    VesselComplianceSummary,
)

# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------
from ecawatch.vessel_registry import VesselRegistry
from ecawatch.notification_log import NotificationLog
from ecawatch.emission_ledger import EmissionLedger
from ecawatch.provenance import ProvenanceTracker, ProvenanceEntry

# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------
from ecawatch.metrics import PROMETHEUS_AVAILABLE

# ---------------------------------------------------------------------------
# Service setup facade
# ---------------------------------------------------------------------------
from ecawatch.setup import (
    EcaWatchService,
    get_service,
    reset_service,
)

__all__ = [
    "__version__",
    # Configuration
    "EcaWatchConfig",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "EcaWatchException",
    "LedgerException",
    "UnregisteredVessel",
    "InvalidInput",
    "AuthorizationError",
    "NotVesselOwner",
    "NotAuthorizedFiler",
    "NotAdministrator",
    "ServiceNotRunning",
    # Constants
    "ECA_LIMIT",
    "NON_ECA_LIMIT",
    "ECA_VIOLATION_MESSAGE",
    "NON_ECA_VIOLATION_MESSAGE",
    # Enumerations
    "EmissionZone",
    # Policy
    "threshold_for",
    "evaluate_compliance",
    "violation_message",
    # Core models
    "Caller",
    "Vessel",
    "EmissionRecord",
    "ComplianceNotice",
    "EmissionRecorded",
    "VesselComplianceSummary",
    # Ledgers
    "VesselRegistry",
    "NotificationLog",
    "EmissionLedger",
    "ProvenanceTracker",
    "ProvenanceEntry",
    # Metrics
    "PROMETHEUS_AVAILABLE",
    # Service facade
    "EcaWatchService",
    "get_service",
    "reset_service",
]
