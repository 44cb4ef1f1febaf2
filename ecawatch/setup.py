# -*- coding: utf-8 -*-
"""
ECA Watch Service Setup

Provides the ``EcaWatchService`` facade, which wires the vessel registry,
the notification log and the emission ledger around one configuration and
one provenance tracker, plus ``get_service()`` / ``reset_service()`` for a
lazily created process-wide instance.

The three ledgers stay separately owned stores: the facade only holds
references and passes them to the emission ledger at construction.
Writes through the facade (registration, readings, filer reassignment)
require a started service and raise ``ServiceNotRunning`` otherwise;
reads stay available after shutdown.

Usage:
    >>> from ecawatch.setup import EcaWatchService
    >>> service = EcaWatchService()
    >>> service.startup()
    >>> service.register_vessel("IMO1234567", "owner-1", "Panama", admin)
    >>> record = service.record_emission(
    ...     "IMO1234567", 170, "English Channel", True, "USA", owner,
    ... )
    >>> service.list_notices()[0].flag_state
    'Panama'
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

from ecawatch.config import EcaWatchConfig, get_config
from ecawatch.emission_ledger import EmissionLedger
from ecawatch.exceptions import ServiceNotRunning
from ecawatch.metrics import PROMETHEUS_AVAILABLE
from ecawatch.models import Caller, ComplianceNotice, EmissionRecord, Vessel
from ecawatch.notification_log import NotificationLog
from ecawatch.provenance import ProvenanceTracker
from ecawatch.vessel_registry import VesselRegistry

logger = logging.getLogger(__name__)


# ===================================================================
# EcaWatchService facade
# ===================================================================

_singleton_lock = threading.Lock()
_singleton_instance: Optional["EcaWatchService"] = None


class EcaWatchService:
    """Unified facade over the three ECA Watch ledgers.

    Attributes:
        config: EcaWatchConfig instance.
        provenance: ProvenanceTracker shared by the log and the ledger,
            or None when provenance is disabled.
        registry: VesselRegistry instance.
        notification_log: NotificationLog instance.
        ledger: EmissionLedger instance.

    Example:
        >>> service = EcaWatchService()
        >>> history = service.get_emission_history("IMO1234567")
    """

    def __init__(self, config: Optional[EcaWatchConfig] = None) -> None:
        """Initialize the service facade.

        Args:
            config: Optional config. Uses global config if None.
        """
        self.config = config or get_config()
        self.config.apply_log_level()

        self.provenance: Optional[ProvenanceTracker] = (
            ProvenanceTracker() if self.config.enable_provenance else None
        )
        self.registry = VesselRegistry(config=self.config)
        self.notification_log = NotificationLog(
            config=self.config, provenance=self.provenance,
        )
        self.ledger = EmissionLedger(
            self.registry,
            self.notification_log,
            config=self.config,
            provenance=self.provenance,
        )

        self._started = False
        logger.info("EcaWatchService facade created")

    # ------------------------------------------------------------------
    # Delegated operations
    # ------------------------------------------------------------------

    def register_vessel(
        self, vessel_id: str, owner: str, flag_state: str, caller: Caller,
    ) -> Vessel:
        """Register or overwrite a vessel (administrator only)."""
        self._require_started("register_vessel")
        return self.registry.register(vessel_id, owner, flag_state, caller)

    def record_emission(
        self,
        vessel_id: str,
        sulfur_content: int,
        position: str,
        is_eca: bool,
        port_state: str,
        caller: Caller,
    ) -> EmissionRecord:
        """Record a reading through the emission ledger."""
        self._require_started("record_emission")
        return self.ledger.record_emission(
            vessel_id, sulfur_content, position, is_eca, port_state, caller,
        )

    def get_emission_history(self, vessel_id: str) -> Tuple[EmissionRecord, ...]:
        return self.ledger.get_emission_history(vessel_id)

    def list_notices(self) -> Tuple[ComplianceNotice, ...]:
        return self.notification_log.list_all()

    def reassign_filer(self, filer_id: str, caller: Caller) -> None:
        """Point the notification log at a new filer (administrator only)."""
        self._require_started("reassign_filer")
        self.notification_log.set_authorized_filer(filer_id, caller)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def startup(self) -> None:
        """Start the service. Safe to call multiple times."""
        if self._started:
            logger.debug("EcaWatchService already started; skipping")
            return
        self._started = True
        logger.info("EcaWatchService startup complete")

    def shutdown(self) -> None:
        """Shut the service down. Ledger contents stay readable."""
        if not self._started:
            return
        self._started = False
        logger.info("EcaWatchService shut down")

    @property
    def started(self) -> bool:
        return self._started

    def _require_started(self, operation: str) -> None:
        """Reject facade writes while the service is not started."""
        if not self._started:
            logger.warning("EcaWatchService rejected %s: not started", operation)
            raise ServiceNotRunning(operation=operation, component="EcaWatchService")

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """Get a service metrics summary.

        Returns:
            Dictionary with exact ledger counts.
        """
        notices = self.notification_log.count
        readings = self.ledger.record_count
        return {
            "prometheus_available": PROMETHEUS_AVAILABLE,
            "started": self._started,
            "registered_vessels": self.registry.count,
            "readings_recorded": readings,
            "notices_filed": notices,
            "violation_rate": notices / readings * 100 if readings > 0 else 0,
            "authorized_filer": self.notification_log.authorized_filer,
            "provenance_entries": (
                self.provenance.entry_count if self.provenance is not None else 0
            ),
        }


# ===================================================================
# Thread-safe singleton access
# ===================================================================


def get_service() -> EcaWatchService:
    """Get or create the process-wide EcaWatchService, started on creation."""
    global _singleton_instance
    if _singleton_instance is None:
        with _singleton_lock:
            if _singleton_instance is None:
                _singleton_instance = EcaWatchService()
                _singleton_instance.startup()
    return _singleton_instance


def reset_service() -> None:
    """Drop the process-wide instance (primarily for test teardown)."""
    global _singleton_instance
    with _singleton_lock:
        if _singleton_instance is not None:
            _singleton_instance.shutdown()
        _singleton_instance = None


__all__ = [
    "EcaWatchService",
    "get_service",
    "reset_service",
]
