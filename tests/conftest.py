# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures."""

import pytest

from ecawatch.config import EcaWatchConfig, reset_config, set_config
from ecawatch.emission_ledger import EmissionLedger
from ecawatch.models import Caller
from ecawatch.notification_log import NotificationLog
from ecawatch.provenance import ProvenanceTracker
from ecawatch.setup import reset_service
from ecawatch.vessel_registry import VesselRegistry

ADMIN_ID = "port-authority-admin"
FILER_ID = "emission-ledger-v1"
OWNER_ID = "owner-O"
VESSEL_ID = "IMO1234567"


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Keep the config and service singletons from leaking between tests."""
    reset_config()
    reset_service()
    yield
    reset_service()
    reset_config()


@pytest.fixture
def config():
    cfg = EcaWatchConfig(
        administrator_id=ADMIN_ID,
        ledger_filer_id=FILER_ID,
        max_text_length=64,
        max_vessels=10,
    )
    set_config(cfg)
    return cfg


@pytest.fixture
def admin():
    return Caller(principal_id=ADMIN_ID)


@pytest.fixture
def owner():
    return Caller(principal_id=OWNER_ID)


@pytest.fixture
def stranger():
    return Caller(principal_id="mallory")


@pytest.fixture
def provenance():
    return ProvenanceTracker()


@pytest.fixture
def registry(config):
    return VesselRegistry(config=config)


@pytest.fixture
def notification_log(config, provenance):
    return NotificationLog(config=config, provenance=provenance)


@pytest.fixture
def ledger(config, registry, notification_log, provenance):
    return EmissionLedger(
        registry, notification_log, config=config, provenance=provenance,
    )


@pytest.fixture
def panama_vessel(registry, admin):
    """IMO1234567 owned by owner-O under the Panama flag."""
    return registry.register(VESSEL_ID, OWNER_ID, "Panama", admin)
