# -*- coding: utf-8 -*-
"""
ECA Watch Configuration

Centralized configuration for the emission ledger and its collaborators
covering:
- Administrator and ledger filer identities
- Input validation limits
- Registry capacity
- Provenance and metrics toggles
- SDK log level

All settings can be overridden via environment variables with the
``ECAWATCH_`` prefix (e.g. ``ECAWATCH_ADMINISTRATOR_ID``).

The sulfur thresholds are regulatory constants and are not configurable.

Example:
    >>> from ecawatch.config import get_config
    >>> cfg = get_config()
    >>> print(cfg.administrator_id, cfg.max_text_length)
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Environment variable prefix
# ---------------------------------------------------------------------------

_ENV_PREFIX = "ECAWATCH_"


# ---------------------------------------------------------------------------
# EcaWatchConfig
# ---------------------------------------------------------------------------


@dataclass
class EcaWatchConfig:
    """Complete configuration for the ECA Watch ledgers.

    All attributes can be overridden via environment variables using the
    ``ECAWATCH_`` prefix.

    Attributes:
        administrator_id: Identity allowed to register vessels and to
            reassign the notification log's filer.
        ledger_filer_id: Identity the emission ledger files notices under,
            and the notification log's initial authorized filer.
        max_text_length: Maximum length of position and port state strings.
        max_vessels: Maximum number of distinct vessels in the registry.
        enable_provenance: Whether to record chain-hashed provenance entries.
        enable_metrics: Whether to publish Prometheus metrics.
        log_level: Python log level name for the ``ecawatch`` logger.
    """

    # -- Identities ----------------------------------------------------------
    administrator_id: str = "ecawatch-admin"
    ledger_filer_id: str = "ecawatch-emission-ledger"

    # -- Validation ----------------------------------------------------------
    max_text_length: int = 256

    # -- Capacity limits -----------------------------------------------------
    max_vessels: int = 100000

    # -- Auditing / observability --------------------------------------------
    enable_provenance: bool = True
    enable_metrics: bool = True
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Factory helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> EcaWatchConfig:
        """Build an EcaWatchConfig from environment variables.

        Every field can be overridden via ``ECAWATCH_<FIELD_UPPER>``.
        Boolean values accept ``true/1/yes`` (case-insensitive).
        Integer values are parsed via ``int()``.

        Returns:
            Populated EcaWatchConfig instance.
        """
        prefix = _ENV_PREFIX

        def _env(name: str, default: Any = None) -> Optional[str]:
            return os.environ.get(f"{prefix}{name}", default)

        def _bool(name: str, default: bool) -> bool:
            val = _env(name)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def _int(name: str, default: int) -> int:
            val = _env(name)
            if val is None:
                return default
            try:
                return int(val)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s%s=%s, using default %d",
                    prefix, name, val, default,
                )
                return default

        def _str(name: str, default: str) -> str:
            val = _env(name)
            if val is None or not val.strip():
                return default
            return val.strip()

        config = cls(
            administrator_id=_str("ADMINISTRATOR_ID", cls.administrator_id),
            ledger_filer_id=_str("LEDGER_FILER_ID", cls.ledger_filer_id),
            max_text_length=_int("MAX_TEXT_LENGTH", cls.max_text_length),
            max_vessels=_int("MAX_VESSELS", cls.max_vessels),
            enable_provenance=_bool("ENABLE_PROVENANCE", cls.enable_provenance),
            enable_metrics=_bool("ENABLE_METRICS", cls.enable_metrics),
            log_level=_str("LOG_LEVEL", cls.log_level).upper(),
        )

        logger.info(
            "EcaWatchConfig loaded: admin=%s, filer=%s, max_text_length=%d, "
            "max_vessels=%d, provenance=%s, metrics=%s",
            config.administrator_id,
            config.ledger_filer_id,
            config.max_text_length,
            config.max_vessels,
            config.enable_provenance,
            config.enable_metrics,
        )
        return config

    def apply_log_level(self) -> None:
        """Set the ``ecawatch`` package logger to ``log_level``."""
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            logger.warning("Unknown log level %r, keeping INFO", self.log_level)
            level = logging.INFO
        logging.getLogger("ecawatch").setLevel(level)


# ---------------------------------------------------------------------------
# Thread-safe singleton accessor
# ---------------------------------------------------------------------------

_config_instance: Optional[EcaWatchConfig] = None
_config_lock = threading.Lock()


def get_config() -> EcaWatchConfig:
    """Return the singleton EcaWatchConfig, creating from env if needed.

    Returns:
        EcaWatchConfig singleton instance.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = EcaWatchConfig.from_env()
    return _config_instance


def set_config(config: EcaWatchConfig) -> None:
    """Replace the singleton EcaWatchConfig (useful for testing).

    Args:
        config: New configuration to install.
    """
    global _config_instance
    with _config_lock:
        _config_instance = config
    logger.info("EcaWatchConfig replaced programmatically")


def reset_config() -> None:
    """Reset the singleton (primarily for test teardown)."""
    global _config_instance
    with _config_lock:
        _config_instance = None


__all__ = [
    "EcaWatchConfig",
    "get_config",
    "set_config",
    "reset_config",
]
