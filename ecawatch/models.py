# -*- coding: utf-8 -*-
"""
ECA Watch Data Models

Pydantic v2 data models shared by the vessel registry, the emission
ledger and the notification log.

Models:
    - Enums: EmissionZone
    - Identity: Caller
    - Core: Vessel, EmissionRecord, ComplianceNotice
    - Events: EmissionRecorded
    - Reporting: VesselComplianceSummary
    - Constants: ECA_LIMIT, NON_ECA_LIMIT, ECA_VIOLATION_MESSAGE,
                 NON_ECA_VIOLATION_MESSAGE

Sulfur content is a scaled integer percentage: 100 is 0.10 % and 500 is
0.50 %. ``is_compliant`` is always derived from ``(is_eca, sulfur_content)``
and is validated on every EmissionRecord construction.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Constants
# =============================================================================

ECA_LIMIT = 100
NON_ECA_LIMIT = 500

ECA_VIOLATION_MESSAGE = "Non-compliance: Exceeds 0.10% sulfur limit in ECA."
NON_ECA_VIOLATION_MESSAGE = "Non-compliance: Exceeds 0.50% sulfur limit outside ECA."


# =============================================================================
# Enumerations
# =============================================================================


class EmissionZone(str, Enum):
    """Regulatory zone a reading was taken in."""
    ECA = "eca"
    NON_ECA = "non_eca"

    @classmethod
    def of(cls, is_eca: bool) -> EmissionZone:
        return cls.ECA if is_eca else cls.NON_ECA


# =============================================================================
# Compliance policy
# =============================================================================


def threshold_for(is_eca: bool) -> int:
    """Return the applicable sulfur limit for the zone."""
    return ECA_LIMIT if is_eca else NON_ECA_LIMIT


def evaluate_compliance(is_eca: bool, sulfur_content: int) -> bool:
    """Return whether a reading is within its zone limit (inclusive)."""
    return sulfur_content <= threshold_for(is_eca)


def violation_message(is_eca: bool) -> str:
    """Return the fixed notice message for a violation in the zone."""
    return ECA_VIOLATION_MESSAGE if is_eca else NON_ECA_VIOLATION_MESSAGE


# =============================================================================
# Utility
# =============================================================================


def _utcnow() -> datetime:
    """Return current UTC datetime with microseconds zeroed."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _new_uuid() -> str:
    """Generate a new UUID4 string."""
    return str(uuid.uuid4())


# =============================================================================
# Identity
# =============================================================================


class Caller(BaseModel):
    """Identity of the party invoking a state-changing operation.

    Supplied by the execution environment, which is trusted to have
    authenticated it. An unauthenticated caller matches no owner, filer or
    administrator.
    """
    model_config = ConfigDict(frozen=True)

    principal_id: str = Field(..., min_length=1, description="Caller identity")
    authenticated: bool = Field(
        default=True, description="Whether the environment authenticated the caller",
    )

    def matches(self, identity: Optional[str]) -> bool:
        """Return True if this authenticated caller is ``identity``."""
        return self.authenticated and identity is not None and self.principal_id == identity


# =============================================================================
# Core Data Models
# =============================================================================


class Vessel(BaseModel):
    """A registered vessel. At most one live record per ``vessel_id``."""
    model_config = ConfigDict(frozen=True)

    vessel_id: str = Field(..., min_length=1, description="Stable vessel id, e.g. IMO number")
    owner: str = Field(..., min_length=1, description="Identity of the controlling party")
    flag_state: str = Field(..., description="Jurisdiction the vessel is registered under")
    registered_at: datetime = Field(
        default_factory=_utcnow, description="Time of the latest registration",
    )


class EmissionRecord(BaseModel):
    """A single accepted sulfur reading. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    sequence: int = Field(..., ge=1, description="Global acceptance order")
    timestamp: datetime = Field(default_factory=_utcnow, description="Acceptance time")
    vessel_id: str = Field(..., description="Registered vessel the reading belongs to")
    sulfur_content: int = Field(..., ge=0, description="Scaled sulfur percentage")
    position: str = Field(..., description="Free-text location descriptor")
    is_eca: bool = Field(..., description="Whether the reading is inside an ECA")
    is_compliant: bool = Field(..., description="Derived compliance verdict")
    port_state: str = Field(..., description="Region label supplied with the reading")

    @model_validator(mode="after")
    def _verdict_matches_reading(self) -> EmissionRecord:
        """Reject a record whose verdict is not derived from its reading."""
        if self.is_compliant != evaluate_compliance(self.is_eca, self.sulfur_content):
            raise ValueError(
                "is_compliant does not match sulfur_content "
                f"{self.sulfur_content} for is_eca={self.is_eca}"
            )
        return self

    @property
    def zone(self) -> EmissionZone:
        return EmissionZone.of(self.is_eca)

    def compute_hash(self) -> str:
        """Compute SHA-256 hash of the record for provenance tracking.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        record_str = json.dumps(
            self.model_dump(mode="json"), sort_keys=True, default=str,
        )
        return hashlib.sha256(record_str.encode()).hexdigest()


class ComplianceNotice(BaseModel):
    """Audit record filed for exactly one non-compliant EmissionRecord."""
    model_config = ConfigDict(frozen=True)

    notice_id: str = Field(default_factory=_new_uuid, description="Notice ID")
    sequence: int = Field(..., ge=1, description="Filing order in the log")
    timestamp: datetime = Field(default_factory=_utcnow, description="Filing time")
    vessel_id: str = Field(..., description="Vessel the violation belongs to")
    message: str = Field(..., description="Fixed-form violation description")
    flag_state: str = Field(..., description="Vessel flag state at filing time")
    port_state: str = Field(..., description="Port state of the triggering reading")

    def compute_hash(self) -> str:
        """Compute SHA-256 hash of the notice for provenance tracking.

        Returns:
            Hex-encoded SHA-256 hash.
        """
        notice_str = json.dumps(
            self.model_dump(mode="json"), sort_keys=True, default=str,
        )
        return hashlib.sha256(notice_str.encode()).hexdigest()


# =============================================================================
# Events
# =============================================================================


class EmissionRecorded(BaseModel):
    """Event published to subscribers for every accepted reading."""
    model_config = ConfigDict(frozen=True)

    sequence: int
    timestamp: datetime
    vessel_id: str
    sulfur_content: int
    position: str
    is_eca: bool
    is_compliant: bool
    port_state: str

    @classmethod
    def from_record(cls, record: EmissionRecord) -> EmissionRecorded:
        return cls(**record.model_dump())


# =============================================================================
# Reporting
# =============================================================================


class VesselComplianceSummary(BaseModel):
    """Exact statistics over one vessel's emission history."""
    vessel_id: str
    total_readings: int = 0
    compliant_readings: int = 0
    non_compliant_readings: int = 0
    eca_readings: int = 0
    max_sulfur_content: Optional[int] = None
    last_reading_at: Optional[datetime] = None
    generated_at: datetime = Field(default_factory=_utcnow)

    @property
    def compliance_rate(self) -> float:
        """Percentage of compliant readings (0 when there are none)."""
        if self.total_readings == 0:
            return 0.0
        return self.compliant_readings / self.total_readings * 100


__all__ = [
    # Constants
    "ECA_LIMIT",
    "NON_ECA_LIMIT",
    "ECA_VIOLATION_MESSAGE",
    "NON_ECA_VIOLATION_MESSAGE",
    # Enums
    "EmissionZone",
    # Policy
    "threshold_for",
    "evaluate_compliance",
    "violation_message",
    # Models
    "Caller",
    "Vessel",
    "EmissionRecord",
    "ComplianceNotice",
    "EmissionRecorded",
    "VesselComplianceSummary",
]
