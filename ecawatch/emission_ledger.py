# -*- coding: utf-8 -*-
"""
Emission Ledger - ECA Watch

Accepts sulfur-emission readings from vessel owners, evaluates each
against the zone limit, keeps an append-only per-vessel history, and
files a notice on the notification log for every violation.

The ``record_emission()`` method runs the full recording pipeline:
    1. Registration check            (UnregisteredVessel)
    2. Ownership check               (NotVesselOwner)
    3. Input validation              (InvalidInput)
    4. Compliance evaluation
    5. Stage the history append
    6. File a notice when non-compliant
    7. Commit the history append
    8. Provenance
    9. Announce the notice, metrics and the EmissionRecorded event

Steps 1 to 8 run while holding the ledger, registry and log locks, in
that order, so the registration checked in step 2 is the one the notice
is filed against. The staged history tuple is built before the notice is
stored and committed by a single rebinding afterwards: a failed filing
leaves the history untouched, and since history and notice reads take
the same locks no reader sees a notice without its record. Subscribers
of both the log and the ledger run in step 9, after the locks are
released.

Example:
    >>> from ecawatch.emission_ledger import EmissionLedger
    >>> ledger = EmissionLedger(registry, notification_log)
    >>> record = ledger.record_emission(
    ...     "IMO1234567", 170, "54.3N 10.1E", True, "USA",
    ...     caller=Caller(principal_id="owner-1"),
    ... )
    >>> record.is_compliant
    False
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from ecawatch.config import EcaWatchConfig, get_config
from ecawatch.exceptions import (
    EcaWatchException,
    InvalidInput,
    NotVesselOwner,
    UnregisteredVessel,
    format_exception_chain,
)
from ecawatch.metrics import record_notice, record_reading, record_rejection
from ecawatch.models import (
    Caller,
    ComplianceNotice,
    EmissionRecord,
    EmissionRecorded,
    VesselComplianceSummary,
    evaluate_compliance,
    violation_message,
)
from ecawatch.notification_log import NotificationLog
from ecawatch.provenance import ProvenanceTracker
from ecawatch.vessel_registry import VesselRegistry

logger = logging.getLogger(__name__)

_COMPONENT = "EmissionLedger"


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


RecordedCallback = Callable[[EmissionRecorded], None]


class EmissionLedger:
    """Per-vessel emission history with cross-ledger notice filing.

    The ledger holds read access to the registry and the filer capability
    on the notification log. It files notices under its own identity,
    ``filer_id``, which must be the log's authorized filer.

    Attributes:
        config: Ledger configuration.
        registry: Vessel registry the ledger reads from.
        notification_log: Log the ledger files notices on.
        filer_id: Identity used when filing notices.
    """

    def __init__(
        self,
        registry: VesselRegistry,
        notification_log: NotificationLog,
        config: Optional[EcaWatchConfig] = None,
        filer_id: Optional[str] = None,
        provenance: Optional[ProvenanceTracker] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the EmissionLedger.

        Args:
            registry: Vessel registry collaborator.
            notification_log: Notification log collaborator.
            config: Optional config. Uses global singleton if None.
            filer_id: Identity to file notices under. Defaults to
                ``config.ledger_filer_id``.
            provenance: Optional shared provenance tracker.
            clock: Source of record timestamps.
        """
        self.config = config or get_config()
        self.registry = registry
        self.notification_log = notification_log
        self.filer_id = filer_id or self.config.ledger_filer_id
        self._filer = Caller(principal_id=self.filer_id)
        self._provenance = provenance
        self._clock = clock

        # vessel_id -> immutable history, replaced on every append
        self._history: Dict[str, Tuple[EmissionRecord, ...]] = {}
        self._sequence = 0
        self._subscribers: List[RecordedCallback] = []
        self._lock = threading.RLock()

        logger.info("EmissionLedger initialized (filer=%s)", self.filer_id)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_emission(
        self,
        vessel_id: str,
        sulfur_content: int,
        position: str,
        is_eca: bool,
        port_state: str,
        caller: Caller,
    ) -> EmissionRecord:
        """Record a sulfur reading for a vessel.

        Args:
            vessel_id: Registered vessel id.
            sulfur_content: Scaled sulfur percentage (100 is 0.10 %).
            position: Free-text location descriptor.
            is_eca: Whether the reading was taken inside an ECA.
            port_state: Region label for the reading.
            caller: Identity submitting the reading.

        Returns:
            The accepted EmissionRecord.

        Raises:
            UnregisteredVessel: If the vessel is not registered.
            NotVesselOwner: If caller is not the vessel's owner, or the
                owner cannot be looked up.
            InvalidInput: If the reading fails validation.
            NotAuthorizedFiler: If the ledger is no longer the log's
                authorized filer and the reading is a violation. Nothing
                is recorded in that case.
        """
        start_time = time.time()
        notice: Optional[ComplianceNotice] = None

        # ledger -> registry -> log, the only multi-lock order in the package
        with self._lock, self.registry.lock, self.notification_log.lock:
            if not self.registry.is_registered(vessel_id):
                raise self._rejected(
                    UnregisteredVessel(vessel_id=vessel_id, component=_COMPONENT),
                )

            self._check_owner(vessel_id, caller)
            self._validate_reading(sulfur_content, position, is_eca, port_state)

            is_compliant = evaluate_compliance(is_eca, sulfur_content)
            record = EmissionRecord(
                sequence=self._sequence + 1,
                timestamp=self._clock(),
                vessel_id=vessel_id,
                sulfur_content=sulfur_content,
                position=position,
                is_eca=is_eca,
                is_compliant=is_compliant,
                port_state=port_state,
            )
            staged = self._history.get(vessel_id, ()) + (record,)

            if not is_compliant:
                notice = self._append_notice(record)

            self._history[vessel_id] = staged
            self._sequence = record.sequence

            if self._provenance is not None:
                self._provenance.record(
                    entity_type="emission",
                    entity_id=vessel_id,
                    action="record",
                    data_hash=record.compute_hash(),
                    user_id=caller.principal_id,
                    details={"sequence": record.sequence},
                )

        if notice is not None:
            self.notification_log.announce(notice)
            if self.config.enable_metrics:
                record_notice(record.zone.value)
        if self.config.enable_metrics:
            record_reading(record.zone.value, is_compliant, time.time() - start_time)
        logger.info(
            "Recorded emission #%d for vessel %s: sulfur=%d eca=%s compliant=%s",
            record.sequence, vessel_id, sulfur_content, is_eca, is_compliant,
        )
        self._notify(EmissionRecorded.from_record(record))
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_emission_history(self, vessel_id: str) -> Tuple[EmissionRecord, ...]:
        """Return the vessel's readings in acceptance order.

        Unknown and unregistered vessels have an empty history.
        """
        with self._lock:
            history = self._history.get(vessel_id, ())
        logger.debug("History read for %s: %d records", vessel_id, len(history))
        return history

    def summarize(self, vessel_id: str) -> VesselComplianceSummary:
        """Build exact compliance statistics from a vessel's history.

        Args:
            vessel_id: Vessel to summarize.

        Returns:
            VesselComplianceSummary over the current history snapshot.
        """
        history = self.get_emission_history(vessel_id)
        compliant = sum(1 for r in history if r.is_compliant)
        return VesselComplianceSummary(
            vessel_id=vessel_id,
            total_readings=len(history),
            compliant_readings=compliant,
            non_compliant_readings=len(history) - compliant,
            eca_readings=sum(1 for r in history if r.is_eca),
            max_sulfur_content=max(
                (r.sulfur_content for r in history), default=None,
            ),
            last_reading_at=history[-1].timestamp if history else None,
        )

    @property
    def record_count(self) -> int:
        """Return the number of accepted readings across all vessels."""
        return self._sequence

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: RecordedCallback) -> None:
        """Register a callback invoked with every EmissionRecorded event."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: RecordedCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_owner(self, vessel_id: str, caller: Caller) -> None:
        """Raise NotVesselOwner unless caller owns the vessel."""
        try:
            owner = self.registry.owner_of(vessel_id)
        except Exception as exc:
            logger.warning(
                "Ownership lookup failed for %s:\n%s",
                vessel_id, format_exception_chain(exc),
            )
            raise self._rejected(NotVesselOwner(
                caller_id=caller.principal_id,
                vessel_id=vessel_id,
                message=f"Ownership of vessel '{vessel_id}' could not be verified",
                component=_COMPONENT,
                context={"cause_type": type(exc).__name__},
            )) from exc

        if not caller.matches(owner):
            raise self._rejected(NotVesselOwner(
                caller_id=caller.principal_id,
                vessel_id=vessel_id,
                component=_COMPONENT,
            ))

    def _validate_reading(
        self,
        sulfur_content: Any,
        position: Any,
        is_eca: Any,
        port_state: Any,
    ) -> None:
        """Raise InvalidInput listing every malformed field."""
        max_len = self.config.max_text_length
        invalid: Dict[str, str] = {}

        if isinstance(sulfur_content, bool) or not isinstance(sulfur_content, int):
            invalid["sulfur_content"] = "must be an integer"
        elif sulfur_content < 0:
            invalid["sulfur_content"] = "must be non-negative"

        if not isinstance(is_eca, bool):
            invalid["is_eca"] = "must be a boolean"

        if not isinstance(position, str) or not position.strip():
            invalid["position"] = "must be a non-empty string"
        elif len(position) > max_len:
            invalid["position"] = f"must be at most {max_len} characters"

        if not isinstance(port_state, str):
            invalid["port_state"] = "must be a string"
        elif len(port_state) > max_len:
            invalid["port_state"] = f"must be at most {max_len} characters"

        if invalid:
            raise self._rejected(InvalidInput(
                "Invalid emission reading",
                component=_COMPONENT,
                invalid_fields=invalid,
            ))

    def _append_notice(self, record: EmissionRecord) -> ComplianceNotice:
        """Store the violation notice for a non-compliant record."""
        flag_state = self.registry.flag_state(record.vessel_id)
        try:
            return self.notification_log.append(
                record.vessel_id,
                violation_message(record.is_eca),
                flag_state,
                record.port_state,
                caller=self._filer,
            )
        except EcaWatchException:
            logger.warning(
                "Reading for %s not recorded: notice filing failed",
                record.vessel_id,
            )
            raise

    def _notify(self, event: EmissionRecorded) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as exc:
                logger.error("EmissionRecorded subscriber failed: %s", exc)

    def _rejected(self, exc: EcaWatchException) -> EcaWatchException:
        """Log and count a rejection, returning the exception to raise."""
        logger.warning("EmissionLedger rejected call: %s", exc)
        if self.config.enable_metrics:
            record_rejection(exc.error_code)
        return exc


__all__ = [
    "EmissionLedger",
    "RecordedCallback",
]
