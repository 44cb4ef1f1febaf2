"""Tests for the EmissionLedger recording protocol.

Covers:
- Reference scenarios (violation in ECA, compliant reading, non-owner,
  unregistered vessel, outside-ECA boundary)
- Check ordering of UnregisteredVessel, NotVesselOwner and InvalidInput
- Atomicity of history append and notice filing
- History ordering, snapshots and concurrent submissions
- EmissionRecorded events, summaries and provenance
- Notices never visible without their record; owner changes wait for
  in-flight readings
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from ecawatch.emission_ledger import EmissionLedger
from ecawatch.exceptions import (
    InvalidInput,
    NotAuthorizedFiler,
    NotVesselOwner,
    UnregisteredVessel,
)
from ecawatch.models import (
    ECA_VIOLATION_MESSAGE,
    NON_ECA_VIOLATION_MESSAGE,
    Caller,
)
from ecawatch.vessel_registry import VesselRegistry

VESSEL_ID = "IMO1234567"
OWNER_ID = "owner-O"


def _submit(ledger, caller, sulfur=90, is_eca=True, port_state="USA",
            position="40.7N 74.0W", vessel_id=VESSEL_ID):
    return ledger.record_emission(
        vessel_id, sulfur, position, is_eca, port_state, caller,
    )


# ==============================================================================
# Reference scenarios
# ==============================================================================

class TestScenarios:
    """End-to-end reference scenarios."""

    def test_eca_violation_files_notice(self, ledger, notification_log, panama_vessel, owner):
        """170 inside an ECA is recorded as non-compliant and filed."""
        record = _submit(ledger, owner, sulfur=170, is_eca=True, port_state="USA")

        assert record.is_compliant is False
        assert ledger.get_emission_history(VESSEL_ID) == (record,)

        notices = notification_log.list_all()
        assert len(notices) == 1
        notice = notices[0]
        assert notice.vessel_id == VESSEL_ID
        assert notice.message == ECA_VIOLATION_MESSAGE
        assert notice.flag_state == "Panama"
        assert notice.port_state == "USA"

    def test_eca_compliant_reading_files_nothing(self, ledger, notification_log, panama_vessel, owner):
        """90 inside an ECA is compliant and files no notice."""
        _submit(ledger, owner, sulfur=170)
        before = len(ledger.get_emission_history(VESSEL_ID))

        record = _submit(ledger, owner, sulfur=90)

        assert record.is_compliant is True
        assert len(ledger.get_emission_history(VESSEL_ID)) == before + 1
        assert len(notification_log.list_all()) == 1

    def test_non_owner_rejected_without_side_effects(
        self, ledger, notification_log, panama_vessel, owner, stranger,
    ):
        """A non-owner fails with NotVesselOwner and changes nothing."""
        _submit(ledger, owner, sulfur=170)
        history = ledger.get_emission_history(VESSEL_ID)
        notices = notification_log.list_all()

        with pytest.raises(NotVesselOwner) as exc_info:
            _submit(ledger, stranger, sulfur=999)

        assert exc_info.value.vessel_id == VESSEL_ID
        assert exc_info.value.caller_id == "mallory"
        assert ledger.get_emission_history(VESSEL_ID) == history
        assert notification_log.list_all() == notices

    def test_unregistered_vessel_rejected(self, ledger, owner):
        with pytest.raises(UnregisteredVessel) as exc_info:
            _submit(ledger, owner, vessel_id="IMO_GHOST")
        assert exc_info.value.context["vessel_id"] == "IMO_GHOST"
        assert ledger.get_emission_history("IMO_GHOST") == ()

    def test_outside_eca_boundary_inclusive(self, ledger, notification_log, panama_vessel, owner):
        """500 outside an ECA is compliant, 501 is not."""
        at_limit = _submit(ledger, owner, sulfur=500, is_eca=False)
        over_limit = _submit(ledger, owner, sulfur=501, is_eca=False, port_state="Brazil")

        assert at_limit.is_compliant is True
        assert over_limit.is_compliant is False

        notices = notification_log.list_all()
        assert len(notices) == 1
        assert notices[0].message == NON_ECA_VIOLATION_MESSAGE
        assert notices[0].port_state == "Brazil"


# ==============================================================================
# Precondition ordering and validation
# ==============================================================================

class TestPreconditions:
    """Checks run in a fixed order, each with its own failure."""

    def test_unregistered_checked_before_owner(self, ledger, stranger):
        with pytest.raises(UnregisteredVessel):
            _submit(ledger, stranger, vessel_id="IMO_GHOST")

    def test_non_owner_wins_over_invalid_input(self, ledger, panama_vessel, stranger):
        """A non-owner sees NotVesselOwner even for malformed readings."""
        with pytest.raises(NotVesselOwner):
            _submit(ledger, stranger, sulfur=-5, position="")

    def test_unauthenticated_owner_rejected(self, ledger, panama_vessel):
        impostor = Caller(principal_id=OWNER_ID, authenticated=False)
        with pytest.raises(NotVesselOwner):
            _submit(ledger, impostor)

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"sulfur": -1}, "sulfur_content"),
            ({"sulfur": 1.5}, "sulfur_content"),
            ({"sulfur": True}, "sulfur_content"),
            ({"sulfur": "170"}, "sulfur_content"),
            ({"is_eca": "yes"}, "is_eca"),
            ({"position": ""}, "position"),
            ({"position": "   "}, "position"),
            ({"position": "x" * 65}, "position"),
            ({"port_state": None}, "port_state"),
            ({"port_state": "y" * 65}, "port_state"),
        ],
    )
    def test_invalid_input(self, ledger, notification_log, panama_vessel, owner, kwargs, field):
        with pytest.raises(InvalidInput) as exc_info:
            _submit(ledger, owner, **kwargs)
        assert field in exc_info.value.invalid_fields
        assert ledger.get_emission_history(VESSEL_ID) == ()
        assert notification_log.list_all() == ()

    def test_reports_every_invalid_field(self, ledger, panama_vessel, owner):
        with pytest.raises(InvalidInput) as exc_info:
            _submit(ledger, owner, sulfur=-1, position="")
        assert set(exc_info.value.invalid_fields) == {"sulfur_content", "position"}

    def test_empty_port_state_accepted(self, ledger, panama_vessel, owner):
        assert _submit(ledger, owner, port_state="").port_state == ""

    def test_ownership_lookup_failure_is_authorization_failure(
        self, config, notification_log, admin, owner,
    ):
        """A failing owner lookup surfaces as NotVesselOwner, not a crash."""

        class FlakyRegistry(VesselRegistry):
            def owner_of(self, vessel_id):
                raise RuntimeError("registry unavailable")

        registry = FlakyRegistry(config=config)
        registry.register(VESSEL_ID, OWNER_ID, "Panama", admin)
        ledger = EmissionLedger(registry, notification_log, config=config)

        with pytest.raises(NotVesselOwner) as exc_info:
            _submit(ledger, owner)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.context["cause_type"] == "RuntimeError"
        assert ledger.get_emission_history(VESSEL_ID) == ()


# ==============================================================================
# Atomicity
# ==============================================================================

class TestAtomicity:
    """History append and notice filing succeed or fail together."""

    def test_failed_filing_records_nothing(self, ledger, notification_log, panama_vessel, owner, admin):
        _submit(ledger, owner, sulfur=50)
        notification_log.set_authorized_filer("emission-ledger-v2", admin)

        with pytest.raises(NotAuthorizedFiler):
            _submit(ledger, owner, sulfur=170)

        assert len(ledger.get_emission_history(VESSEL_ID)) == 1
        assert notification_log.list_all() == ()
        assert ledger.record_count == 1

    def test_sequence_not_consumed_by_failed_filing(
        self, ledger, notification_log, panama_vessel, owner, admin,
    ):
        notification_log.set_authorized_filer("elsewhere", admin)
        with pytest.raises(NotAuthorizedFiler):
            _submit(ledger, owner, sulfur=170)

        record = _submit(ledger, owner, sulfur=10)
        assert record.sequence == 1

    def test_compliant_readings_unaffected_by_filer_change(
        self, ledger, notification_log, panama_vessel, owner, admin,
    ):
        notification_log.set_authorized_filer("elsewhere", admin)
        record = _submit(ledger, owner, sulfur=10)
        assert ledger.get_emission_history(VESSEL_ID) == (record,)

    def test_redeployed_ledger_files_on_same_log(
        self, config, registry, notification_log, panama_vessel, owner, admin,
    ):
        """Reassigning the filer lets a new ledger keep filing on the old log."""
        old = EmissionLedger(registry, notification_log, config=config)
        _submit(old, owner, sulfur=170)

        new = EmissionLedger(
            registry, notification_log, config=config, filer_id="emission-ledger-v2",
        )
        notification_log.set_authorized_filer("emission-ledger-v2", admin)
        _submit(new, owner, sulfur=180)

        assert len(notification_log.list_all()) == 2
        with pytest.raises(NotAuthorizedFiler):
            _submit(old, owner, sulfur=190)


# ==============================================================================
# History and notices
# ==============================================================================

class TestHistory:
    """Ordering, growth and read idempotence."""

    def test_history_grows_by_one_in_submission_order(self, ledger, panama_vessel, owner):
        readings = [10, 200, 90, 100, 101]
        for i, sulfur in enumerate(readings, start=1):
            _submit(ledger, owner, sulfur=sulfur)
            assert len(ledger.get_emission_history(VESSEL_ID)) == i

        history = ledger.get_emission_history(VESSEL_ID)
        assert [r.sulfur_content for r in history] == readings
        sequences = [r.sequence for r in history]
        assert sequences == sorted(sequences)
        assert len(set(sequences)) == len(sequences)

    def test_reads_are_idempotent(self, ledger, panama_vessel, owner):
        _submit(ledger, owner, sulfur=170)
        assert ledger.get_emission_history(VESSEL_ID) == ledger.get_emission_history(VESSEL_ID)

    def test_snapshot_unchanged_by_later_writes(self, ledger, panama_vessel, owner):
        _submit(ledger, owner, sulfur=10)
        snapshot = ledger.get_emission_history(VESSEL_ID)
        _submit(ledger, owner, sulfur=20)
        assert len(snapshot) == 1
        assert len(ledger.get_emission_history(VESSEL_ID)) == 2

    def test_unknown_vessel_has_empty_history(self, ledger):
        assert ledger.get_emission_history("IMO0000000") == ()

    def test_histories_are_per_vessel(self, ledger, registry, panama_vessel, admin, owner):
        registry.register("IMO7654321", OWNER_ID, "Liberia", admin)
        _submit(ledger, owner, sulfur=10)
        _submit(ledger, owner, sulfur=700, is_eca=False, vessel_id="IMO7654321")

        assert len(ledger.get_emission_history(VESSEL_ID)) == 1
        other = ledger.get_emission_history("IMO7654321")
        assert len(other) == 1
        assert other[0].sequence == 2

    def test_notice_uses_flag_state_at_filing_time(
        self, ledger, registry, notification_log, panama_vessel, admin, owner,
    ):
        _submit(ledger, owner, sulfur=170)
        registry.register(VESSEL_ID, OWNER_ID, "Marshall Islands", admin)
        _submit(ledger, owner, sulfur=180)

        first, second = notification_log.list_all()
        assert first.flag_state == "Panama"
        assert second.flag_state == "Marshall Islands"

    def test_one_notice_per_violation(self, ledger, notification_log, panama_vessel, owner):
        readings = [(50, True), (150, True), (450, False), (650, False), (101, True)]
        for sulfur, is_eca in readings:
            _submit(ledger, owner, sulfur=sulfur, is_eca=is_eca)

        history = ledger.get_emission_history(VESSEL_ID)
        violations = [r for r in history if not r.is_compliant]
        assert len(notification_log.list_all()) == len(violations) == 3

    def test_reregistered_owner_takes_over(self, ledger, registry, panama_vessel, admin, owner):
        registry.register(VESSEL_ID, "owner-P", "Panama", admin)
        with pytest.raises(NotVesselOwner):
            _submit(ledger, owner)
        assert _submit(ledger, Caller(principal_id="owner-P")).vessel_id == VESSEL_ID

    def test_concurrent_submissions_keep_order(self, ledger, panama_vessel, owner):
        def worker():
            for _ in range(25):
                _submit(ledger, owner, sulfur=150)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        history = ledger.get_emission_history(VESSEL_ID)
        assert len(history) == 100
        assert [r.sequence for r in history] == list(range(1, 101))
        assert len(ledger.notification_log.list_all()) == 100


# ==============================================================================
# Events, clock, summaries, provenance
# ==============================================================================

class TestObservability:
    """Subscribers, timestamps, summaries and provenance."""

    def test_emission_recorded_event(self, ledger, panama_vessel, owner):
        events = []
        ledger.subscribe(events.append)

        record = _submit(ledger, owner, sulfur=170, port_state="USA")

        assert len(events) == 1
        event = events[0]
        assert event.vessel_id == VESSEL_ID
        assert event.sulfur_content == 170
        assert event.position == record.position
        assert event.is_eca is True
        assert event.is_compliant is False
        assert event.port_state == "USA"

    def test_no_event_for_rejected_call(self, ledger, panama_vessel, stranger):
        events = []
        ledger.subscribe(events.append)
        with pytest.raises(NotVesselOwner):
            _submit(ledger, stranger)
        assert events == []

    def test_notice_signal_comes_from_log(self, ledger, notification_log, panama_vessel, owner):
        notices = []
        notification_log.subscribe(notices.append)
        _submit(ledger, owner, sulfur=170)
        _submit(ledger, owner, sulfur=10)
        assert notices == list(notification_log.list_all())

    def test_failing_subscriber_does_not_undo_recording(self, ledger, panama_vessel, owner):
        def broken(event):
            raise RuntimeError("subscriber down")

        ledger.subscribe(broken)
        record = _submit(ledger, owner)
        assert ledger.get_emission_history(VESSEL_ID) == (record,)

    def test_unsubscribe(self, ledger, panama_vessel, owner):
        events = []
        ledger.subscribe(events.append)
        ledger.unsubscribe(events.append)
        _submit(ledger, owner)
        assert events == []

    def test_clock_supplies_timestamps(self, config, registry, notification_log, panama_vessel, owner):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        ticks = iter(start + timedelta(minutes=i) for i in range(10))
        ledger = EmissionLedger(
            registry, notification_log, config=config, clock=lambda: next(ticks),
        )
        _submit(ledger, owner)
        _submit(ledger, owner)
        stamps = [r.timestamp for r in ledger.get_emission_history(VESSEL_ID)]
        assert stamps == [start, start + timedelta(minutes=1)]

    def test_summary(self, ledger, panama_vessel, owner):
        for sulfur, is_eca in [(50, True), (150, True), (450, False), (650, False)]:
            _submit(ledger, owner, sulfur=sulfur, is_eca=is_eca)

        summary = ledger.summarize(VESSEL_ID)
        assert summary.total_readings == 4
        assert summary.compliant_readings == 2
        assert summary.non_compliant_readings == 2
        assert summary.eca_readings == 2
        assert summary.max_sulfur_content == 650
        assert summary.compliance_rate == 50.0
        assert summary.last_reading_at is not None

    def test_summary_of_empty_history(self, ledger):
        summary = ledger.summarize("IMO_GHOST")
        assert summary.total_readings == 0
        assert summary.max_sulfur_content is None
        assert summary.compliance_rate == 0.0

    def test_provenance_chain(self, ledger, provenance, panama_vessel, owner):
        _submit(ledger, owner, sulfur=170)
        _submit(ledger, owner, sulfur=10)

        chain = provenance.get_chain(VESSEL_ID)
        assert [(e.entity_type, e.action) for e in chain] == [
            ("notice", "file"),
            ("emission", "record"),
            ("emission", "record"),
        ]
        assert provenance.verify_chain(VESSEL_ID)

    def test_no_provenance_for_rejected_call(self, ledger, provenance, panama_vessel, stranger):
        with pytest.raises(NotVesselOwner):
            _submit(ledger, stranger)
        assert provenance.entry_count == 0


# ==============================================================================
# Cross-ledger consistency
# ==============================================================================

class TestConsistency:
    """Notices and histories are only ever observed together."""

    def test_notice_subscriber_sees_committed_record(
        self, ledger, notification_log, panama_vessel, owner,
    ):
        seen = []
        notification_log.subscribe(lambda notice: seen.append((
            len(notification_log.list_all()),
            len(ledger.get_emission_history(VESSEL_ID)),
        )))

        _submit(ledger, owner, sulfur=170)
        _submit(ledger, owner, sulfur=180)

        assert seen == [(1, 1), (2, 2)]

    def test_reader_during_notice_callback_sees_both(
        self, ledger, notification_log, panama_vessel, owner,
    ):
        in_callback = threading.Event()
        release = threading.Event()

        def slow_subscriber(notice):
            in_callback.set()
            release.wait(timeout=5)

        notification_log.subscribe(slow_subscriber)
        writer = threading.Thread(target=_submit, args=(ledger, owner), kwargs={"sulfur": 170})
        writer.start()
        try:
            assert in_callback.wait(timeout=5)
            snapshot = (
                len(notification_log.list_all()),
                len(ledger.get_emission_history(VESSEL_ID)),
            )
        finally:
            release.set()
            writer.join(timeout=5)

        assert snapshot == (1, 1)

    def test_concurrent_reader_never_sees_orphan_notice(
        self, ledger, notification_log, panama_vessel, owner,
    ):
        done = threading.Event()
        snapshots = []

        def reader():
            while not done.is_set():
                notices = len(notification_log.list_all())
                history = len(ledger.get_emission_history(VESSEL_ID))
                snapshots.append((notices, history))

        thread = threading.Thread(target=reader)
        thread.start()
        try:
            for _ in range(50):
                _submit(ledger, owner, sulfur=170)
        finally:
            done.set()
            thread.join(timeout=5)

        assert snapshots
        assert all(notices <= history for notices, history in snapshots)

    def test_registration_held_until_reading_commits(
        self, ledger, registry, notification_log, panama_vessel, admin, owner, monkeypatch,
    ):
        """An owner change cannot land between the ownership check and the commit."""
        checked = threading.Event()
        release = threading.Event()
        lookup = registry.owner_of

        def slow_owner_of(vessel_id):
            result = lookup(vessel_id)
            checked.set()
            release.wait(timeout=5)
            return result

        monkeypatch.setattr(registry, "owner_of", slow_owner_of)

        records = []
        writer = threading.Thread(
            target=lambda: records.append(_submit(ledger, owner, sulfur=170)),
        )
        transfer = threading.Thread(
            target=registry.register, args=(VESSEL_ID, "owner-P", "Liberia", admin),
        )

        writer.start()
        try:
            assert checked.wait(timeout=5)
            transfer.start()
            transfer.join(timeout=0.2)
            assert transfer.is_alive()
        finally:
            release.set()
            writer.join(timeout=5)
            if transfer.ident is not None:
                transfer.join(timeout=5)

        assert len(records) == 1
        assert notification_log.list_all()[0].flag_state == "Panama"
        assert registry.get_vessel(VESSEL_ID).owner == "owner-P"
        with pytest.raises(NotVesselOwner):
            _submit(ledger, owner)
