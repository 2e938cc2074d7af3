"""
FIREDESK - Incident Lifecycle Tests
====================================
Dispatch, advance, close, cancel, alert acceptance and rejection against a
real sqlite store.
"""

import threading

import pytest

from firedesk.db import transaction
from firedesk.errors import (
    AlreadyTerminal, ConflictError, InvalidTransition, NotFound, ValidationError,
)
from firedesk.incidents import lifecycle
from firedesk.incidents.locks import KeyedLocks, _registry
from firedesk.incidents.models import (
    AlertRepository, AlertStatus, IncidentRepository, IncidentStatus, NarrativeRepository,
)
from tests.conftest import db_count, db_query


class TestPlanTransition:

    def test_dispatch_sources(self):
        for status in ("pending", "active"):
            assert lifecycle.plan_transition(status, lifecycle.DISPATCH) == IncidentStatus.DISPATCHED

    def test_terminal_checked_first(self):
        for status in ("completed", "cancelled", "referred"):
            with pytest.raises(AlreadyTerminal):
                lifecycle.plan_transition(status, lifecycle.DISPATCH)

    def test_skip_ahead_rejected(self):
        with pytest.raises(InvalidTransition) as exc:
            lifecycle.plan_transition("dispatched", lifecycle.ON_SCENE)
        assert not isinstance(exc.value, AlreadyTerminal)
        assert exc.value.from_status == "dispatched"
        assert exc.value.to_status == "on_scene"


class TestDispatch:

    def test_pending_incident_dispatches(self, factory):
        incident = factory.incident(priority="high")
        updated = lifecycle.dispatch(incident.incident_id, user="DISP1")
        assert updated.status == IncidentStatus.DISPATCHED
        assert updated.dispatched_at is not None
        assert updated.version == incident.version + 1

    def test_active_incident_dispatches(self, factory):
        incident = factory.incident(status="active")
        assert lifecycle.dispatch(incident.incident_id).status == IncidentStatus.DISPATCHED

    def test_dispatch_twice_is_invalid_not_terminal(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id)
        with pytest.raises(InvalidTransition) as exc:
            lifecycle.dispatch(incident.incident_id)
        assert type(exc.value) is InvalidTransition

    def test_dispatch_unknown_incident(self, factory):
        with pytest.raises(NotFound):
            lifecycle.dispatch("missing")

    def test_dispatch_writes_history(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id, user="DISP1")
        rows = db_query("SELECT * FROM IncidentHistory WHERE incident_id = ?", (incident.incident_id,))
        assert len(rows) == 1
        assert rows[0]["event_type"] == "INCIDENT_DISPATCHED"
        assert (rows[0]["from_status"], rows[0]["to_status"]) == ("pending", "dispatched")
        assert rows[0]["user"] == "DISP1"

    def test_dispatch_frees_station_load(self, factory, coordinator):
        incident = factory.incident("ST4", department_id="D4", unit_id=None)
        assert coordinator.check_referral_eligibility("ST4")[0] is False
        lifecycle.dispatch(incident.incident_id)
        assert coordinator.check_referral_eligibility("ST4") == (True, "")


class TestAdvance:

    def test_full_response_path_sets_timings(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id)
        assert lifecycle.advance_to_en_route(incident.incident_id).en_route_at is not None
        on_scene = lifecycle.advance_to_on_scene(incident.incident_id)
        assert on_scene.status == IncidentStatus.ON_SCENE
        assert on_scene.response_time_minutes is not None
        assert on_scene.resolution_time_minutes is None
        closed = lifecycle.close(incident.incident_id, "Fire extinguished")
        assert closed.resolution_time_minutes is not None
        assert closed.total_incident_time_minutes is not None

    def test_on_scene_requires_en_route(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id)
        with pytest.raises(InvalidTransition):
            lifecycle.advance_to_on_scene(incident.incident_id)

    def test_en_route_requires_dispatch(self, factory):
        incident = factory.incident()
        with pytest.raises(InvalidTransition):
            lifecycle.advance_to_en_route(incident.incident_id)


class TestCloseAndCancel:

    def test_close_appends_closure_entry(self, factory):
        incident = factory.incident()
        closed = lifecycle.close(incident.incident_id, "  False alarm  ", user="CAPT1")
        assert closed.status == IncidentStatus.COMPLETED
        assert closed.closed_at is not None
        assert [(n.entry_type, n.text, n.user) for n in closed.narrative] == [
            ("CLOSURE", "False alarm", "CAPT1"),
        ]

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_close_without_reason_touches_nothing(self, factory, reason):
        incident = factory.incident()
        with pytest.raises(ValidationError) as exc:
            lifecycle.close(incident.incident_id, reason)
        assert exc.value.codes() == ["MissingReason"]
        after = IncidentRepository.get(incident.incident_id)
        assert after.status == IncidentStatus.PENDING
        assert after.version == incident.version
        assert db_count("Narrative") == 0

    def test_cancel_appends_cancellation_entry(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id)
        cancelled = lifecycle.cancel(incident.incident_id, "Caller withdrew report")
        assert cancelled.status == IncidentStatus.CANCELLED
        assert cancelled.narrative[-1].entry_type == "CANCELLATION"

    def test_cancel_requires_reason(self, factory):
        incident = factory.incident()
        with pytest.raises(ValidationError):
            lifecycle.cancel(incident.incident_id, "")

    def test_terminal_incident_rejects_every_command(self, factory):
        incident = factory.incident()
        lifecycle.close(incident.incident_id, "Resolved")
        commands = [
            lambda: lifecycle.dispatch(incident.incident_id),
            lambda: lifecycle.advance_to_en_route(incident.incident_id),
            lambda: lifecycle.advance_to_on_scene(incident.incident_id),
            lambda: lifecycle.close(incident.incident_id, "Again"),
            lambda: lifecycle.cancel(incident.incident_id, "Again"),
        ]
        for command in commands:
            with pytest.raises(AlreadyTerminal) as exc:
                command()
            assert exc.value.message == "Incident is already completed."


class TestOptimisticVersion:

    def test_stale_version_raises_conflict(self, factory):
        incident = factory.incident()
        lifecycle.dispatch(incident.incident_id)
        with pytest.raises(ConflictError):
            with transaction() as conn:
                IncidentRepository.update_status(conn, incident, IncidentStatus.CANCELLED)
        assert IncidentRepository.get(incident.incident_id).status == IncidentStatus.DISPATCHED

    def test_failed_transaction_rolls_back(self, factory):
        incident = factory.incident()
        with pytest.raises(RuntimeError):
            with transaction() as conn:
                NarrativeRepository.add(conn, incident.incident_id, "NOTE", "draft")
                raise RuntimeError("boom")
        assert db_count("Narrative") == 0


class TestAlertIntake:

    def test_accept_creates_pending_incident(self, factory):
        alert = factory.alert("ST1", priority="critical")
        incident = lifecycle.accept_alert(alert.alert_id, "ST1", "D1", "U2", user="ST1-ADMIN")
        assert incident.status == IncidentStatus.PENDING
        assert (incident.station_id, incident.department_id, incident.unit_id) == ("ST1", "D1", "U2")
        assert incident.priority == "critical"
        assert AlertRepository.get(alert.alert_id).status == AlertStatus.ACCEPTED
        assert db_count("Incidents", "alert_id = ?", (alert.alert_id,)) == 1

    def test_accept_into_unitless_department(self, factory):
        alert = factory.alert("ST1")
        incident = lifecycle.accept_alert(alert.alert_id, "ST1", "D2", None)
        assert incident.unit_id is None

    def test_accept_requires_unit_when_department_has_units(self, factory):
        alert = factory.alert("ST1")
        with pytest.raises(ValidationError) as exc:
            lifecycle.accept_alert(alert.alert_id, "ST1", "D1", None)
        assert exc.value.codes() == ["UnitRequired"]
        assert AlertRepository.get(alert.alert_id).status == AlertStatus.ACTIVE
        assert db_count("Incidents") == 0

    def test_accept_rejects_other_stations_alert(self, factory):
        alert = factory.alert("ST2")
        with pytest.raises(ValidationError) as exc:
            lifecycle.accept_alert(alert.alert_id, "ST1", "D1", "U1")
        assert exc.value.codes() == ["StationMismatch"]

    def test_accept_twice_fails(self, factory):
        alert = factory.alert("ST1")
        lifecycle.accept_alert(alert.alert_id, "ST1", "D2", None)
        with pytest.raises(InvalidTransition):
            lifecycle.accept_alert(alert.alert_id, "ST1", "D2", None)
        assert db_count("Incidents") == 1

    def test_reject_keeps_reason(self, factory):
        alert = factory.alert("ST1")
        rejected = lifecycle.reject_alert(alert.alert_id, "Duplicate report")
        assert rejected.status == AlertStatus.REJECTED
        assert rejected.status_reason == "Duplicate report"

    def test_reject_requires_reason(self, factory):
        alert = factory.alert("ST1")
        with pytest.raises(ValidationError):
            lifecycle.reject_alert(alert.alert_id, " ")
        assert AlertRepository.get(alert.alert_id).status == AlertStatus.ACTIVE

    def test_reject_unknown_alert(self, factory):
        with pytest.raises(NotFound):
            lifecycle.reject_alert("missing", "Duplicate")


class TestKeyedLocks:

    def test_entry_lives_only_while_held(self):
        locks = KeyedLocks()
        with locks.hold("incident:1"):
            with locks.hold("incident:2"):
                assert len(locks) == 2
            assert len(locks) == 1
        assert len(locks) == 0

    def test_hold_releases_on_error(self):
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("incident:1"):
                raise RuntimeError("boom")
        assert len(locks) == 0
        with locks.hold("incident:1"):
            pass

    def test_waiter_keeps_entry_until_it_finishes(self):
        locks = KeyedLocks()
        entered = threading.Event()
        done = threading.Event()

        def second_holder():
            with locks.hold("incident:1"):
                entered.set()
            done.set()

        with locks.hold("incident:1"):
            worker = threading.Thread(target=second_holder)
            worker.start()
            assert not entered.wait(0.2)
            assert len(locks) == 1
        assert done.wait(5)
        worker.join(5)
        assert len(locks) == 0

    def test_commands_do_not_grow_the_registry(self, factory):
        before = len(_registry)
        for _ in range(20):
            incident = factory.incident()
            lifecycle.dispatch(incident.incident_id)
            lifecycle.close(incident.incident_id, "Resolved")
        alert = factory.alert("ST1")
        lifecycle.reject_alert(alert.alert_id, "Duplicate report")
        assert len(_registry) == before
