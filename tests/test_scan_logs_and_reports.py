from datetime import datetime, timedelta

from gymdesk.flow.dispatcher import process_scan
from gymdesk.models.scan import ScanLog
from gymdesk.services import member_service, report_service, scan_log_service, subscription_service
from gymdesk.utils.time_utils import local_now

from conftest import run, make_user, make_subscription


def test_scan_log_gets_an_id(db):
    assert run(scan_log_service.add_scan_log(
        ScanLog(user_id="BCF-1001", user_name="Juan", action="check-in", status="success")
    ))
    [log] = run(scan_log_service.get_scan_logs())
    assert log.id


def test_malformed_scan_log_is_dropped(db):
    assert not run(scan_log_service.add_scan_log(
        ScanLog(user_id="", action="not-applicable", status="invalid")
    ))
    assert run(scan_log_service.get_scan_logs()) == []


def test_scan_logs_newest_first_with_limit(db):
    base = datetime(2024, 3, 10, 8, 0)
    for minutes in (0, 10, 20):
        run(scan_log_service.add_scan_log(ScanLog(
            user_id="BCF-1001", action="check-in", status="success",
            timestamp=base + timedelta(minutes=minutes),
        )))

    logs = run(scan_log_service.get_scan_logs(limit=2))
    assert [log.timestamp for log in logs] == [base + timedelta(minutes=20), base + timedelta(minutes=10)]


def test_today_scan_logs_filters_by_day(db):
    day = datetime(2024, 3, 10)
    for ts in (day - timedelta(minutes=1), day, day + timedelta(hours=23, minutes=59), day + timedelta(days=1)):
        run(scan_log_service.add_scan_log(
            ScanLog(user_id="BCF-1001", action="check-in", status="success", timestamp=ts)
        ))

    logs = run(scan_log_service.get_today_scan_logs(day.date()))
    assert len(logs) == 2


def test_expiring_members_report(db):
    now = local_now()
    run(member_service.add_user(make_user("BCF-1001", "Soon")))
    run(member_service.add_user(make_user("BCF-1002", "Later")))
    run(member_service.add_user(make_user("BCF-1003", "Sooner")))
    run(subscription_service.add_or_update_subscription(
        make_subscription("BCF-1001", start=now - timedelta(days=27), end=now + timedelta(days=3))
    ))
    run(subscription_service.add_or_update_subscription(
        make_subscription("BCF-1002", start=now, end=now + timedelta(days=30))
    ))
    run(subscription_service.add_or_update_subscription(
        make_subscription("BCF-1003", start=now - timedelta(days=29), end=now + timedelta(hours=5))
    ))

    rows = run(report_service.get_expiring_members(3, now=now))
    assert [(row["user"].name, row["remaining_days"]) for row in rows] == [("Sooner", 1), ("Soon", 3)]


def test_daily_summary(db):
    now = local_now()
    run(member_service.add_user(make_user("BCF-1001", "Active")))
    run(member_service.add_user(make_user("BCF-1002", "Lapsed")))
    run(subscription_service.add_or_update_subscription(
        make_subscription("BCF-1001", start=now - timedelta(days=1), end=now + timedelta(days=2))
    ))
    run(subscription_service.add_or_update_subscription(
        make_subscription("BCF-1002", start=now - timedelta(days=40), end=now - timedelta(days=10))
    ))

    run(process_scan("BCF-1001"))
    run(process_scan("BCF-1001"))
    run(process_scan("BCF-1001"))
    run(process_scan("BCF-1002"))
    run(process_scan("BCF-7777"))

    summary = run(report_service.get_daily_summary())
    assert summary["total_scans"] == 5
    assert summary["check_ins"] == 2
    assert summary["check_outs"] == 1
    assert summary["denied"] == {"expired": 1, "invalid": 1}
    assert summary["unique_visitors"] == 1
    assert summary["currently_inside"] == 1
    assert summary["expiring_soon"] == 1
