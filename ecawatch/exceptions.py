"""ECA Watch Exception Hierarchy.

Every rejected ledger call raises one of the exceptions below. Each carries
enough context to tell the failure kind apart without parsing the message.

Exception Hierarchy:
    EcaWatchException (base)
    ├── LedgerException
    │   ├── UnregisteredVessel
    │   └── InvalidInput
    ├── AuthorizationError
    │   ├── NotVesselOwner
    │   ├── NotAuthorizedFiler
    │   └── NotAdministrator
    └── ServiceNotRunning

All exceptions include rich context:
- error_code: Unique error identifier
- component: Name of the ledger that raised the error
- context: Dictionary with error-specific details
- timestamp: When the error occurred

Example:
    >>> from ecawatch.exceptions import UnregisteredVessel
    >>> raise UnregisteredVessel(vessel_id="IMO_GHOST")
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ==============================================================================
# Base Exception
# ==============================================================================

class EcaWatchException(Exception):
    """Base exception for all ECA Watch errors.

    Attributes:
        message: Human-readable error message
        error_code: Unique error identifier (e.g., "ECA_LEDGER_INVALID_INPUT")
        component: Ledger component that raised the error (optional)
        context: Dictionary with error-specific details
        timestamp: When the error occurred
    """

    ERROR_PREFIX = "ECA"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize the exception with rich context.

        Args:
            message: Human-readable error message
            error_code: Unique error identifier (auto-generated if not provided)
            component: Ledger component that raised the error
            context: Dictionary with error-specific details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self._generate_error_code()
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def _generate_error_code(self) -> str:
        """Generate an error code from the exception class name.

        Returns:
            Error code like "ECA_AUTH_NOT_VESSEL_OWNER"
        """
        error_type = re.sub(r'(?<!^)(?=[A-Z])', '_', self.__class__.__name__).upper()
        return f"{self.ERROR_PREFIX}_{error_type}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary with all error details
        """
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def __str__(self) -> str:
        parts = [f"[{self.error_code}]"]
        if self.component:
            parts.append(f"Component: {self.component}")
        parts.append(self.message)
        return " - ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message='{self.message}', "
            f"error_code='{self.error_code}', "
            f"component='{self.component}')"
        )


# ==============================================================================
# Ledger Exceptions
# ==============================================================================

class LedgerException(EcaWatchException):
    """Base exception for rejected ledger input."""
    ERROR_PREFIX = "ECA_LEDGER"


class UnregisteredVessel(LedgerException):
    """The vessel id is unknown to the vessel registry.

    Example:
        >>> raise UnregisteredVessel(vessel_id="IMO_GHOST")
    """

    def __init__(
        self,
        message: Optional[str] = None,
        vessel_id: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize unregistered vessel error.

        Args:
            message: Error message (derived from vessel_id if omitted)
            vessel_id: The unknown vessel id
            component: Ledger component
            context: Error context
        """
        context = context or {}
        context["vessel_id"] = vessel_id
        self.vessel_id = vessel_id
        super().__init__(
            message or f"Vessel '{vessel_id}' is not registered",
            component=component,
            context=context,
        )


class InvalidInput(LedgerException):
    """Reading or registration input failed range/format validation.

    Example:
        >>> raise InvalidInput(
        ...     message="sulfur_content must be a non-negative integer",
        ...     invalid_fields={"sulfur_content": "negative"},
        ... )
    """

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        invalid_fields: Optional[Dict[str, str]] = None,
    ):
        """Initialize invalid input error.

        Args:
            message: Error message
            component: Ledger component
            context: Error context
            invalid_fields: Dictionary of field_name -> reason
        """
        if invalid_fields:
            context = context or {}
            context["invalid_fields"] = invalid_fields
        self.invalid_fields = invalid_fields or {}
        super().__init__(message, component=component, context=context)


# ==============================================================================
# Authorization Exceptions
# ==============================================================================

class AuthorizationError(EcaWatchException):
    """Base exception for caller identity mismatches."""
    ERROR_PREFIX = "ECA_AUTH"

    def __init__(
        self,
        message: str,
        caller_id: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize authorization error.

        Args:
            message: Error message
            caller_id: Identity that attempted the call
            component: Ledger component
            context: Error context
        """
        context = context or {}
        context["caller_id"] = caller_id
        self.caller_id = caller_id
        super().__init__(message, component=component, context=context)


class NotVesselOwner(AuthorizationError):
    """The caller is not the registered owner of the vessel.

    Example:
        >>> raise NotVesselOwner(caller_id="mallory", vessel_id="IMO1234567")
    """

    def __init__(
        self,
        caller_id: Optional[str] = None,
        vessel_id: Optional[str] = None,
        message: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        context["vessel_id"] = vessel_id
        self.vessel_id = vessel_id
        super().__init__(
            message or f"Caller '{caller_id}' is not the owner of vessel '{vessel_id}'",
            caller_id=caller_id,
            component=component,
            context=context,
        )


class NotAuthorizedFiler(AuthorizationError):
    """The caller is not the notification log's designated filer."""

    def __init__(
        self,
        caller_id: Optional[str] = None,
        message: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message or f"Caller '{caller_id}' is not authorized to file notices",
            caller_id=caller_id,
            component=component,
            context=context,
        )


class NotAdministrator(AuthorizationError):
    """The caller is not the administrator of the ledger it tried to mutate."""

    def __init__(
        self,
        caller_id: Optional[str] = None,
        action: Optional[str] = None,
        message: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if action:
            context["action"] = action
        super().__init__(
            message or f"Caller '{caller_id}' is not an administrator",
            caller_id=caller_id,
            component=component,
            context=context,
        )


# ==============================================================================
# Service Exceptions
# ==============================================================================

class ServiceNotRunning(EcaWatchException):
    """A write reached the service facade while it was not started."""

    def __init__(
        self,
        operation: Optional[str] = None,
        message: Optional[str] = None,
        component: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(
            message or f"Cannot {operation or 'write'}: service is not started",
            component=component,
            context=context,
        )


# ==============================================================================
# Utilities
# ==============================================================================

def format_exception_chain(exc: Exception) -> str:
    """Format an exception chain for logging.

    Args:
        exc: Exception to format

    Returns:
        Formatted string with the full ``__cause__`` chain
    """
    lines = []
    current = exc

    while current is not None:
        if isinstance(current, EcaWatchException):
            lines.append(str(current))
            lines.append(f"  Context: {current.context}")
        else:
            lines.append(f"{type(current).__name__}: {current}")
        current = getattr(current, "__cause__", None)

    return "\n".join(lines)


__all__ = [
    "EcaWatchException",
    "LedgerException",
    "UnregisteredVessel",
    "InvalidInput",
    "AuthorizationError",
    "NotVesselOwner",
    "NotAuthorizedFiler",
    "NotAdministrator",
    "ServiceNotRunning",
    "format_exception_chain",
]
