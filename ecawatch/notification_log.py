# -*- coding: utf-8 -*-
"""
Notification Log - ECA Watch

Append-only log of non-compliance notices. Exactly one identity, the
authorized filer, may file notices; it starts as the emission ledger's
filer identity and only the administrator can reassign it (for example
after redeploying the emission ledger, without losing the log).

Notices are held in an immutable tuple that is replaced on every filing.
Reads take the log's lock, so a writer that holds ``lock`` while it
commits related state (the emission ledger does) is never observed half
done. ``file`` is ``append`` followed by ``announce``; subscribers receive
every notice once it is announced.

Example:
    >>> from ecawatch.models import Caller
    >>> from ecawatch.notification_log import NotificationLog
    >>> log = NotificationLog(administrator_id="admin", authorized_filer="ledger")
    >>> notice = log.file(
    ...     "IMO1234567",
    ...     "Non-compliance: Exceeds 0.10% sulfur limit in ECA.",
    ...     "Panama",
    ...     "USA",
    ...     caller=Caller(principal_id="ledger"),
    ... )
    >>> len(log.list_all())
    1
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional, Tuple

from ecawatch.config import EcaWatchConfig, get_config
from ecawatch.exceptions import (
    EcaWatchException,
    NotAdministrator,
    NotAuthorizedFiler,
)
from ecawatch.metrics import record_rejection, update_notices_count
from ecawatch.models import Caller, ComplianceNotice
from ecawatch.provenance import ProvenanceTracker

logger = logging.getLogger(__name__)

_COMPONENT = "NotificationLog"

NoticeCallback = Callable[[ComplianceNotice], None]


class NotificationLog:
    """Append-only compliance notice log with a single authorized filer.

    Attributes:
        config: Log configuration.
        administrator_id: Identity allowed to reassign the filer. Fixed at
            construction.
        authorized_filer: The one identity currently allowed to file.
    """

    def __init__(
        self,
        administrator_id: Optional[str] = None,
        authorized_filer: Optional[str] = None,
        config: Optional[EcaWatchConfig] = None,
        provenance: Optional[ProvenanceTracker] = None,
    ) -> None:
        """Initialize the NotificationLog.

        Args:
            administrator_id: Administrator identity. Defaults to
                ``config.administrator_id``.
            authorized_filer: Initial filer identity. Defaults to
                ``config.ledger_filer_id``.
            config: Optional config. Uses global singleton if None.
            provenance: Optional shared provenance tracker.
        """
        self.config = config or get_config()
        self._administrator_id = administrator_id or self.config.administrator_id
        self._authorized_filer = authorized_filer or self.config.ledger_filer_id
        self._provenance = provenance
        self._notices: Tuple[ComplianceNotice, ...] = ()
        self._subscribers: List[NoticeCallback] = []
        self._lock = threading.RLock()
        logger.info(
            "NotificationLog initialized (admin=%s, filer=%s)",
            self._administrator_id, self._authorized_filer,
        )

    @property
    def administrator_id(self) -> str:
        return self._administrator_id

    @property
    def authorized_filer(self) -> str:
        return self._authorized_filer

    @property
    def lock(self) -> threading.RLock:
        """Write lock, also taken by reads of the notice list."""
        return self._lock

    # ------------------------------------------------------------------
    # Filing
    # ------------------------------------------------------------------

    def file(
        self,
        vessel_id: str,
        message: str,
        flag_state: str,
        port_state: str,
        caller: Caller,
    ) -> ComplianceNotice:
        """File a non-compliance notice.

        Args:
            vessel_id: Vessel the violation belongs to.
            message: Fixed-form violation description.
            flag_state: Vessel flag state at filing time.
            port_state: Port state of the triggering reading.
            caller: Identity filing the notice.

        Returns:
            The appended ComplianceNotice.

        Raises:
            NotAuthorizedFiler: If caller is not the authorized filer.
        """
        notice = self.append(vessel_id, message, flag_state, port_state, caller)
        self.announce(notice)
        return notice

    def append(
        self,
        vessel_id: str,
        message: str,
        flag_state: str,
        port_state: str,
        caller: Caller,
    ) -> ComplianceNotice:
        """Store a notice without announcing it.

        Used by writers that must commit other state under ``lock`` before
        the notice becomes visible to subscribers; they call ``announce``
        once that state is committed. Same checks and errors as ``file``.
        """
        with self._lock:
            if not caller.matches(self._authorized_filer):
                raise self._rejected(NotAuthorizedFiler(
                    caller_id=caller.principal_id,
                    component=_COMPONENT,
                    context={"vessel_id": vessel_id},
                ))

            notice = ComplianceNotice(
                sequence=len(self._notices) + 1,
                vessel_id=vessel_id,
                message=message,
                flag_state=flag_state,
                port_state=port_state,
            )
            self._notices = self._notices + (notice,)

            if self._provenance is not None:
                self._provenance.record(
                    entity_type="notice",
                    entity_id=vessel_id,
                    action="file",
                    data_hash=notice.compute_hash(),
                    user_id=caller.principal_id,
                    details={"notice_id": notice.notice_id},
                )
        return notice

    def announce(self, notice: ComplianceNotice) -> None:
        """Publish a stored notice to metrics, the log and subscribers."""
        if self.config.enable_metrics:
            update_notices_count(self.count)
        logger.info(
            "Filed notice %s for vessel %s (flag_state=%s, port_state=%s)",
            notice.notice_id, notice.vessel_id, notice.flag_state,
            notice.port_state,
        )
        self._notify(notice)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def set_authorized_filer(self, filer_id: str, caller: Caller) -> None:
        """Replace the authorized filer identity.

        Args:
            filer_id: New filer identity.
            caller: Identity performing the change.

        Raises:
            NotAdministrator: If caller is not the administrator.
        """
        if not caller.matches(self._administrator_id):
            raise self._rejected(NotAdministrator(
                caller_id=caller.principal_id,
                action="set_authorized_filer",
                component=_COMPONENT,
            ))

        with self._lock:
            previous = self._authorized_filer
            self._authorized_filer = filer_id
            if self._provenance is not None:
                self._provenance.record(
                    entity_type="filer",
                    entity_id=_COMPONENT,
                    action="reassign",
                    data_hash=ProvenanceTracker._hash_dict(
                        {"previous": previous, "current": filer_id},
                    ),
                    user_id=caller.principal_id,
                )

        logger.info("Authorized filer reassigned: %s -> %s", previous, filer_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_all(self) -> Tuple[ComplianceNotice, ...]:
        """Return every notice in filing order."""
        with self._lock:
            return self._notices

    def list_for_vessel(self, vessel_id: str) -> Tuple[ComplianceNotice, ...]:
        """Return the notices filed for one vessel in filing order."""
        return tuple(n for n in self.list_all() if n.vessel_id == vessel_id)

    @property
    def count(self) -> int:
        """Return the number of filed notices."""
        return len(self.list_all())

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: NoticeCallback) -> None:
        """Register a callback invoked with every filed notice."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: NoticeCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _notify(self, notice: ComplianceNotice) -> None:
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception as exc:
                logger.error("Notice subscriber failed: %s", exc)

    def _rejected(self, exc: EcaWatchException) -> EcaWatchException:
        """Log and count a rejection, returning the exception to raise."""
        logger.warning("NotificationLog rejected call: %s", exc)
        if self.config.enable_metrics:
            record_rejection(exc.error_code)
        return exc


__all__ = [
    "NoticeCallback",
    "NotificationLog",
]
