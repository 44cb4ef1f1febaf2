# -*- coding: utf-8 -*-
"""
Vessel Registry - ECA Watch

Thread-safe in-memory registry of vessel identity records keyed by vessel
id (e.g. an IMO number). Registration is an upsert restricted to the
administrator identity: re-registering an id replaces its owner and flag
state and keeps no record of the previous values.

The emission ledger only reads from the registry through
``is_registered``, ``owner_of`` and ``flag_state``.

Example:
    >>> from ecawatch.vessel_registry import VesselRegistry
    >>> from ecawatch.models import Caller
    >>> registry = VesselRegistry(administrator_id="admin")
    >>> registry.register("IMO1234567", "owner-1", "Panama", Caller(principal_id="admin"))
    >>> registry.flag_state("IMO1234567")
    'Panama'
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from ecawatch.config import EcaWatchConfig, get_config
from ecawatch.exceptions import (
    EcaWatchException,
    InvalidInput,
    NotAdministrator,
    UnregisteredVessel,
)
from ecawatch.metrics import record_rejection, update_vessels_count
from ecawatch.models import Caller, Vessel

logger = logging.getLogger(__name__)

_COMPONENT = "VesselRegistry"


class VesselRegistry:
    """In-memory vessel registry with an administrator-only upsert.

    Attributes:
        config: Registry configuration.
        administrator_id: Identity allowed to register vessels. Fixed at
            construction.

    Example:
        >>> registry = VesselRegistry()
        >>> registry.is_registered("IMO1234567")
        False
    """

    def __init__(
        self,
        administrator_id: Optional[str] = None,
        config: Optional[EcaWatchConfig] = None,
    ) -> None:
        """Initialize the VesselRegistry.

        Args:
            administrator_id: Administrator identity. Defaults to
                ``config.administrator_id``.
            config: Optional config. Uses global singleton if None.
        """
        self.config = config or get_config()
        self._administrator_id = administrator_id or self.config.administrator_id
        self._vessels: Dict[str, Vessel] = {}
        self._lock = threading.RLock()
        logger.info(
            "VesselRegistry initialized (admin=%s, max_vessels=%d)",
            self._administrator_id, self.config.max_vessels,
        )

    @property
    def administrator_id(self) -> str:
        return self._administrator_id

    @property
    def lock(self) -> threading.RLock:
        """Write lock; holding it keeps registrations from changing."""
        return self._lock

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def register(
        self,
        vessel_id: str,
        owner: str,
        flag_state: str,
        caller: Caller,
    ) -> Vessel:
        """Register a vessel or overwrite an existing registration.

        Args:
            vessel_id: Stable vessel identifier.
            owner: Identity of the controlling party.
            flag_state: Jurisdiction label.
            caller: Identity performing the registration.

        Returns:
            The stored Vessel record.

        Raises:
            NotAdministrator: If caller is not the administrator.
            InvalidInput: If an id is blank or the registry is full.
        """
        if not caller.matches(self._administrator_id):
            raise self._rejected(NotAdministrator(
                caller_id=caller.principal_id, action="register", component=_COMPONENT,
            ))

        invalid = {}
        if not isinstance(vessel_id, str) or not vessel_id.strip():
            invalid["vessel_id"] = "must be a non-empty string"
        if not isinstance(owner, str) or not owner.strip():
            invalid["owner"] = "must be a non-empty string"
        if not isinstance(flag_state, str):
            invalid["flag_state"] = "must be a string"
        if invalid:
            raise self._rejected(InvalidInput(
                "Invalid vessel registration", component=_COMPONENT,
                invalid_fields=invalid,
            ))

        with self._lock:
            overwrite = vessel_id in self._vessels
            if not overwrite and len(self._vessels) >= self.config.max_vessels:
                raise self._rejected(InvalidInput(
                    f"Registry at capacity ({self.config.max_vessels} vessels)",
                    component=_COMPONENT,
                    context={"vessel_id": vessel_id},
                ))

            vessel = Vessel(vessel_id=vessel_id, owner=owner, flag_state=flag_state)
            self._vessels[vessel_id] = vessel
            count = len(self._vessels)

        if self.config.enable_metrics:
            update_vessels_count(count)
        logger.info(
            "%s vessel %s (owner=%s, flag_state=%s)",
            "Re-registered" if overwrite else "Registered",
            vessel_id, owner, flag_state,
        )
        return vessel

    # ------------------------------------------------------------------
    # Read surface consumed by the emission ledger
    # ------------------------------------------------------------------

    def is_registered(self, vessel_id: str) -> bool:
        return vessel_id in self._vessels

    def owner_of(self, vessel_id: str) -> str:
        """Return the owner identity of a registered vessel.

        Raises:
            UnregisteredVessel: If the vessel is unknown.
        """
        vessel = self._vessels.get(vessel_id)
        if vessel is None:
            raise UnregisteredVessel(vessel_id=vessel_id, component=_COMPONENT)
        return vessel.owner

    def flag_state(self, vessel_id: str) -> str:
        """Return the vessel's flag state, or an empty string if unregistered."""
        vessel = self._vessels.get(vessel_id)
        return vessel.flag_state if vessel is not None else ""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_vessel(self, vessel_id: str) -> Optional[Vessel]:
        return self._vessels.get(vessel_id)

    def list_vessels(self) -> List[Vessel]:
        """Return all registered vessels ordered by vessel id."""
        vessels = list(self._vessels.values())
        return sorted(vessels, key=lambda v: v.vessel_id)

    @property
    def count(self) -> int:
        """Return the number of registered vessels."""
        return len(self._vessels)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rejected(self, exc: EcaWatchException) -> EcaWatchException:
        """Log and count a rejection, returning the exception to raise."""
        logger.warning("VesselRegistry rejected call: %s", exc)
        if self.config.enable_metrics:
            record_rejection(exc.error_code)
        return exc


__all__ = [
    "VesselRegistry",
]
