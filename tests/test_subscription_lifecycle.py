import time
from datetime import datetime, timedelta, timezone

import pytest

from gymdesk.models.scan import ActiveSession, ScanLog
from gymdesk.models.subscription import Subscription, SubscriptionHistory
from gymdesk.services import subscription_service as subs
from gymdesk.utils.time_utils import to_local_naive

from conftest import make_subscription

NOW = datetime(2024, 3, 10, 12, 0)


def test_regular_window_months_with_clamping():
    sub = subs.create_regular("BCF-1001", 1, start=datetime(2024, 1, 31, 18, 0))
    assert sub.kind == "regular"
    assert sub.status == "active"
    assert sub.end_date == datetime(2024, 2, 29, 18, 0)
    assert sub.plan_duration == "1 month"

    six = subs.create_regular("BCF-1001", 6, start=datetime(2024, 8, 31))
    assert six.end_date == datetime(2025, 2, 28)
    assert six.plan_duration == "6 months"


def test_regular_rejects_zero_months():
    with pytest.raises(ValueError):
        subs.create_regular("BCF-1001", 0)


def test_regular_defaults_start_to_now():
    before = datetime.now() - timedelta(seconds=1)
    sub = subs.create_regular("BCF-1001")
    assert before <= sub.start_date <= datetime.now()


def test_daily_pass_expires_at_next_midnight():
    late = subs.create_daily("BCF-1001", start=datetime(2024, 3, 10, 23, 59))
    early = subs.create_daily("BCF-1001", start=datetime(2024, 3, 10, 0, 1))
    assert late.end_date == datetime(2024, 3, 11)
    assert early.end_date == datetime(2024, 3, 11)
    assert late.kind == "daily"
    assert late.plan_duration == "daily"


@pytest.fixture
def manila_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Asia/Manila")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_daily_pass_with_aware_start_uses_local_date(manila_tz):
    # 23:30 UTC is 07:30 the next morning in Manila
    sub = subs.create_daily("BCF-1001", start=datetime(2024, 3, 10, 23, 30, tzinfo=timezone.utc))
    assert sub.start_date == datetime(2024, 3, 11, 7, 30)
    assert sub.end_date == datetime(2024, 3, 12)
    assert sub.end_date > sub.start_date


def test_regular_and_walk_in_normalize_aware_start(manila_tz):
    aware = datetime(2024, 1, 31, 20, 0, tzinfo=timezone.utc)

    regular = subs.create_regular("BCF-1001", 1, start=aware)
    assert regular.start_date == datetime(2024, 2, 1, 4, 0)
    assert regular.end_date == datetime(2024, 3, 1, 4, 0)

    walk_in = subs.create_walk_in("BCF-1001", aware, aware + timedelta(hours=2))
    assert (walk_in.start_date, walk_in.end_date) == (datetime(2024, 2, 1, 4, 0), datetime(2024, 2, 1, 6, 0))


def test_walk_in_window_is_taken_as_given():
    start, end = datetime(2024, 3, 10, 9), datetime(2024, 3, 12, 21)
    sub = subs.create_walk_in("BCF-1001", start, end)
    assert (sub.start_date, sub.end_date) == (start, end)
    assert sub.kind == "walk-in"
    assert sub.membership_type == "walk-in"
    assert sub.plan_duration is None

    # Inverted windows are the caller's responsibility
    inverted = subs.create_walk_in("BCF-1001", end, start)
    assert inverted.end_date < inverted.start_date


def test_is_active_boundaries():
    sub = make_subscription(start=NOW - timedelta(days=5), end=NOW)
    assert subs.is_active(sub, now=NOW)
    assert subs.is_active(sub, now=NOW - timedelta(seconds=1))
    assert not subs.is_active(sub, now=NOW + timedelta(milliseconds=1))
    assert not subs.is_active(None, now=NOW)


def test_is_active_requires_active_status():
    sub = make_subscription(start=NOW, end=NOW + timedelta(days=30), status="cancelled")
    assert not subs.is_active(sub, now=NOW)


def test_remaining_days_rounds_up_and_floors_at_zero():
    assert subs.remaining_days(make_subscription(end=NOW + timedelta(days=1, hours=5)), now=NOW) == 2
    assert subs.remaining_days(make_subscription(end=NOW + timedelta(days=3)), now=NOW) == 3
    assert subs.remaining_days(make_subscription(end=NOW + timedelta(minutes=1)), now=NOW) == 1
    assert subs.remaining_days(make_subscription(end=NOW), now=NOW) == 0
    assert subs.remaining_days(make_subscription(end=NOW - timedelta(days=4)), now=NOW) == 0
    assert subs.remaining_days(None, now=NOW) == 0


def test_expiring_soon_threshold():
    three = make_subscription(start=NOW - timedelta(days=27), end=NOW + timedelta(days=3))
    four = make_subscription(start=NOW - timedelta(days=26), end=NOW + timedelta(days=4))
    ended = make_subscription(start=NOW - timedelta(days=30), end=NOW - timedelta(hours=1))

    assert subs.is_expiring_soon(three, threshold_days=3, now=NOW)
    assert not subs.is_expiring_soon(four, threshold_days=3, now=NOW)
    assert subs.is_expiring_soon(four, threshold_days=7, now=NOW)
    assert not subs.is_expiring_soon(ended, threshold_days=3, now=NOW)
    assert not subs.is_expiring_soon(None, now=NOW)


def test_expiring_soon_ignores_inactive_status():
    sub = make_subscription(start=NOW, end=NOW + timedelta(days=1), status="expired")
    assert not subs.is_expiring_soon(sub, threshold_days=3, now=NOW)


def test_subscription_normalizes_aware_datetimes():
    aware = datetime(2024, 3, 10, 12, 0, 0, 123456, tzinfo=timezone.utc)
    sub = Subscription(user_id="BCF-1001", start_date=aware, end_date=aware + timedelta(days=1))
    assert sub.start_date.tzinfo is None
    assert sub.start_date.microsecond == 123000
    assert sub.payment_status == "not paid"
    assert sub.coaching_preference is False


@pytest.mark.parametrize("model, validator_name", [
    (Subscription, "normalize_datetimes"),
    (ScanLog, "normalize_timestamp"),
    (ActiveSession, "normalize_check_in_time"),
])
def test_models_use_field_validators(model, validator_name):
    decorators = model.__pydantic_decorators__
    assert validator_name in decorators.field_validators
    assert not decorators.validators
    assert "Config" not in vars(model)


def test_session_and_log_times_are_normalized():
    aware = datetime(2024, 3, 10, 12, 0, 0, 654321, tzinfo=timezone.utc)
    session = ActiveSession(user_id="BCF-1001", user_name="Juan", check_in_time=aware)
    log = ScanLog(user_id="BCF-1001", action="check-in", status="success", timestamp=aware)

    assert session.check_in_time == to_local_naive(aware)
    assert log.timestamp.tzinfo is None
    assert log.timestamp.microsecond == 654000
    assert log.action == "check-in"


def test_history_entry_copies_every_field():
    sub = make_subscription(plan_duration="1 month", membership_type="new", payment_status="paid")
    archived_at = datetime(2024, 3, 1, 8, 30)
    entry = SubscriptionHistory.from_subscription(sub, archived_at=archived_at)

    assert entry.id.startswith("BCF-1001-")
    assert entry.archived_at == archived_at
    assert entry.to_subscription() == sub
