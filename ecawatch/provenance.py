# -*- coding: utf-8 -*-
"""
Provenance Tracker - ECA Watch

SHA-256 chain-hashed audit trail of ledger mutations: accepted emission
readings, filed notices and filer reassignments. Each entry links to the
previous one, so rewriting any entry breaks verification of every entry
after it.

Example:
    >>> from ecawatch.provenance import ProvenanceTracker
    >>> tracker = ProvenanceTracker()
    >>> chain_hash = tracker.record(
    ...     entity_type="emission",
    ...     entity_id="IMO1234567",
    ...     action="record",
    ...     data_hash=record.compute_hash(),
    ...     user_id="owner-1",
    ... )
    >>> assert tracker.verify_chain("IMO1234567")
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _new_uuid() -> str:
    """Generate a new UUID4 string."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# ProvenanceEntry model
# ---------------------------------------------------------------------------


class ProvenanceEntry(BaseModel):
    """A single provenance chain entry.

    Attributes:
        entry_id: Unique entry identifier.
        entity_type: Type of entity (emission, notice, filer).
        entity_id: Identifier of the affected entity (usually a vessel id).
        action: Action performed (record, file, reassign).
        data_hash: SHA-256 hash of the entity data at this point.
        user_id: Identity that performed the action.
        timestamp: When the action occurred.
        chain_hash: SHA-256 hash linking to the previous entry.
        details: Additional context about the action.
    """

    entry_id: str = Field(
        default_factory=_new_uuid, description="Provenance entry ID",
    )
    entity_type: str = Field(..., description="Entity type (emission, notice, filer)")
    entity_id: str = Field(..., description="Identifier of the affected entity")
    action: str = Field(..., description="Action performed")
    data_hash: str = Field(..., description="SHA-256 hash of entity data at this point")
    user_id: str = Field(default="system", description="Identity that performed the action")
    timestamp: datetime = Field(default_factory=_utcnow, description="Action timestamp")
    chain_hash: str = Field(default="", description="Chain hash linking to previous entry")
    details: Dict[str, Any] = Field(default_factory=dict, description="Additional context")


# ---------------------------------------------------------------------------
# ProvenanceTracker
# ---------------------------------------------------------------------------


class ProvenanceTracker:
    """Tracks ledger mutations with SHA-256 chain hashing.

    Example:
        >>> tracker = ProvenanceTracker()
        >>> tracker.record("notice", "IMO1234567", "file", "hash...", "ledger")
        >>> assert tracker.verify_chain("IMO1234567")
    """

    _GENESIS_HASH = hashlib.sha256(b"ecawatch-ledger-genesis").hexdigest()

    def __init__(self) -> None:
        """Initialize the ProvenanceTracker."""
        self._entries: List[ProvenanceEntry] = []
        self._last_chain_hash: str = self._GENESIS_HASH
        self._entity_index: Dict[str, List[int]] = {}
        self._lock = threading.Lock()
        logger.info("ProvenanceTracker initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def record(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        data_hash: str,
        user_id: str = "system",
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Record a provenance entry for a ledger mutation.

        Args:
            entity_type: Type of entity (emission, notice, filer).
            entity_id: Identifier of the affected entity.
            action: Action performed.
            data_hash: SHA-256 hash of the entity data.
            user_id: Identity that performed the action.
            details: Additional context.

        Returns:
            The chain_hash of the new provenance entry.
        """
        entry = ProvenanceEntry(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            data_hash=data_hash,
            user_id=user_id,
            details=details or {},
        )
        entry_hash = self._hash_dict(self._entry_data(entry))

        with self._lock:
            chain_hash = self._link(self._last_chain_hash, entry_hash)
            entry.chain_hash = chain_hash

            idx = len(self._entries)
            self._entries.append(entry)
            self._last_chain_hash = chain_hash
            self._entity_index.setdefault(entity_id, []).append(idx)

        logger.debug(
            "Recorded provenance: %s %s %s (%s)",
            action, entity_type, entity_id, entry.entry_id,
        )
        return chain_hash

    def get_chain(self, entity_id: str) -> List[ProvenanceEntry]:
        """Get the provenance chain for a specific entity.

        Args:
            entity_id: The entity to retrieve the chain for.

        Returns:
            List of ProvenanceEntry records in chronological order.
        """
        indices = self._entity_index.get(entity_id, [])
        return [self._entries[i] for i in indices]

    def verify_chain(self, entity_id: str) -> bool:
        """Verify the integrity of the provenance chain for an entity.

        Replays the global chain from genesis and checks every entry that
        belongs to ``entity_id``.

        Args:
            entity_id: The entity to verify.

        Returns:
            True if chain is intact, False if tampered.
        """
        with self._lock:
            entries = list(self._entries)
            entity_entry_set = set(self._entity_index.get(entity_id, []))

        if not entity_entry_set:
            return True

        current_hash = self._GENESIS_HASH
        for global_idx, entry in enumerate(entries):
            expected_hash = self._link(
                current_hash, self._hash_dict(self._entry_data(entry)),
            )
            if global_idx in entity_entry_set and entry.chain_hash != expected_hash:
                logger.warning(
                    "Chain verification failed at entry %s (index %d)",
                    entry.entry_id, global_idx,
                )
                return False
            current_hash = expected_hash

        return True

    def get_all_entries(self) -> List[ProvenanceEntry]:
        """Get all provenance entries in chronological order."""
        return list(self._entries)

    def export_json(self) -> str:
        """Export all provenance records as a JSON string."""
        records = [entry.model_dump(mode="json") for entry in self._entries]
        return json.dumps(records, indent=2, default=str)

    @property
    def entry_count(self) -> int:
        """Return the number of provenance entries."""
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _entry_data(entry: ProvenanceEntry) -> Dict[str, Any]:
        return {
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "action": entry.action,
            "data_hash": entry.data_hash,
            "user_id": entry.user_id,
            "timestamp": entry.timestamp.isoformat(),
        }

    @staticmethod
    def _link(previous_hash: str, entry_hash: str) -> str:
        combined = f"{previous_hash}:{entry_hash}"
        return hashlib.sha256(combined.encode()).hexdigest()

    @staticmethod
    def _hash_dict(data: Dict[str, Any]) -> str:
        """Compute SHA-256 hash of a dictionary.

        Args:
            data: Dictionary to hash.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        serialized = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(serialized.encode()).hexdigest()


__all__ = [
    "ProvenanceEntry",
    "ProvenanceTracker",
]
