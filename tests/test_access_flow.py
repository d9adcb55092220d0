from datetime import timedelta

from gymdesk.flow.dispatcher import process_scan
from gymdesk.flow.states import ScanMode, resolve_action, get_status_metadata
from gymdesk.models.scan import AccessStatus, ActiveSession, ScanAction, ScanStatus
from gymdesk.services import (
    access_service,
    member_service,
    scan_log_service,
    session_service,
    subscription_service,
)
from gymdesk.utils.time_utils import local_now

from conftest import run, make_user, make_subscription


def add_member(user_id="BCF-1001", name="Juan Dela Cruz", active=True):
    now = local_now()
    end = now + timedelta(days=10) if active else now - timedelta(days=1)
    run(member_service.add_user(make_user(user_id, name)))
    run(subscription_service.add_or_update_subscription(
        make_subscription(user_id, start=now - timedelta(days=20), end=end)
    ))


def test_unknown_member_is_invalid(db):
    result = run(access_service.validate_access("BCF-9999"))
    assert result.status == "invalid"
    assert not result.is_valid
    assert result.message == "Invalid QR Code - User not found"
    assert result.user is None


def test_member_without_subscription_is_expired(db):
    run(member_service.add_user(make_user()))
    result = run(access_service.validate_access("BCF-1001"))
    assert result.status == "expired"
    assert result.message == "Subscription Expired"
    assert result.user.name == "Juan Dela Cruz"


def test_lapsed_subscription_is_expired(db):
    add_member(active=False)
    result = run(access_service.validate_access("BCF-1001"))
    assert result.status == "expired"
    assert not result.is_valid
    assert result.subscription is not None


def test_active_member_is_granted_then_already_checked_in(db):
    add_member()
    granted = run(access_service.validate_access("BCF-1001"))
    assert granted.status == "granted"
    assert granted.is_valid
    assert granted.message == "Access Granted"

    run(session_service.start_session(ActiveSession(user_id="BCF-1001", user_name="Juan Dela Cruz")))
    inside = run(access_service.validate_access("BCF-1001"))
    assert inside.status == "already-checked-in"
    assert inside.is_valid
    assert inside.message == "Already Checked In"


def test_validation_never_touches_sessions(db):
    add_member()
    run(access_service.validate_access("BCF-1001"))
    run(access_service.validate_access("BCF-1001"))
    assert run(session_service.get_active_sessions()) == []


def test_transition_table():
    assert resolve_action(AccessStatus.GRANTED, ScanMode.AUTO) == ScanAction.CHECK_IN
    assert resolve_action(AccessStatus.GRANTED, ScanMode.CHECK_OUT) == ScanAction.NOT_APPLICABLE
    assert resolve_action(AccessStatus.ALREADY_CHECKED_IN, ScanMode.AUTO) == ScanAction.CHECK_OUT
    assert resolve_action(AccessStatus.ALREADY_CHECKED_IN, ScanMode.CHECK_IN) == ScanAction.NOT_APPLICABLE
    assert resolve_action(AccessStatus.EXPIRED, ScanMode.AUTO) == ScanAction.NOT_APPLICABLE
    assert get_status_metadata("expired").log_status == ScanStatus.EXPIRED


def test_auto_mode_toggles_check_in_and_out(db):
    add_member()

    first = run(process_scan("BCF-1001"))
    assert first.action == "check-in"
    assert first.message == "Checked In"
    assert first.session.user_name == "Juan Dela Cruz"
    assert run(session_service.is_user_checked_in("BCF-1001"))

    second = run(process_scan("BCF-1001"))
    assert second.action == "check-out"
    assert second.message == "Checked Out"
    assert not run(session_service.is_user_checked_in("BCF-1001"))

    logs = run(scan_log_service.get_scan_logs_by_user("BCF-1001"))
    assert [(log.action, log.status) for log in logs] == [
        ("check-out", "success"),
        ("check-in", "success"),
    ]


def test_unknown_code_is_logged_as_invalid(db):
    outcome = run(process_scan("  NOPE-0001\r\n"))
    assert outcome.code == "NOPE-0001"
    assert outcome.action == "not-applicable"
    assert outcome.message == "Invalid QR Code - User not found"

    [log] = run(scan_log_service.get_scan_logs())
    assert (log.user_id, log.user_name, log.action, log.status) == (
        "NOPE-0001", "Unknown", "not-applicable", "invalid"
    )


def test_expired_member_is_logged_and_not_checked_in(db):
    add_member(active=False)
    outcome = run(process_scan("BCF-1001"))
    assert outcome.action == "not-applicable"
    assert outcome.session is None
    assert not run(session_service.is_user_checked_in("BCF-1001"))

    [log] = run(scan_log_service.get_scan_logs())
    assert (log.action, log.status, log.user_name) == ("not-applicable", "expired", "Juan Dela Cruz")


def test_check_out_mode_with_nobody_inside(db):
    add_member()
    outcome = run(process_scan("BCF-1001", ScanMode.CHECK_OUT))
    assert outcome.validation.status == "granted"
    assert outcome.action == "not-applicable"
    assert not run(session_service.is_user_checked_in("BCF-1001"))

    [log] = run(scan_log_service.get_scan_logs())
    assert (log.action, log.status) == ("not-applicable", "success")


def test_check_in_mode_does_not_check_out(db):
    add_member()
    run(process_scan("BCF-1001", ScanMode.CHECK_IN))
    again = run(process_scan("BCF-1001", ScanMode.CHECK_IN))

    assert again.validation.status == "already-checked-in"
    assert again.action == "not-applicable"
    assert run(session_service.is_user_checked_in("BCF-1001"))


def test_sessions_are_unique_per_member(db):
    session = ActiveSession(user_id="BCF-1001", user_name="Juan")
    assert run(session_service.start_session(session))
    assert not run(session_service.start_session(session))
    assert run(session_service.end_session("BCF-1001")).user_id == "BCF-1001"
    assert run(session_service.end_session("BCF-1001")) is None
