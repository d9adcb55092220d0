from datetime import datetime, timedelta

import pytest
from pymongo.errors import PyMongoError

from gymdesk.core.exceptions import ConflictError, ValidationError
from gymdesk.services import intake_service, member_service, session_service, subscription_service
from gymdesk.models.intake import MedicalHistory
from gymdesk.models.scan import ActiveSession

from conftest import run, make_user, make_subscription


def test_next_user_id_is_sequential(db):
    ids = [run(member_service.next_user_id()) for _ in range(3)]
    assert ids == ["BCF-1001", "BCF-1002", "BCF-1003"]


def test_add_user_rejects_duplicate_id(db):
    run(member_service.add_user(make_user()))
    with pytest.raises(ConflictError):
        run(member_service.add_user(make_user(name="Someone Else")))


def test_get_users_newest_first(db):
    base = datetime(2024, 1, 1, 9, 0)
    run(member_service.add_user(make_user("BCF-1001", "First", created_at=base)))
    run(member_service.add_user(make_user("BCF-1002", "Second", created_at=base + timedelta(hours=1))))

    assert [u.name for u in run(member_service.get_users())] == ["Second", "First"]


def test_search_users_matches_name_email_phone(db):
    run(member_service.add_user(make_user("BCF-1001", "Ana Reyes", email="ana@example.com")))
    run(member_service.add_user(make_user("BCF-1002", "Ben Cruz", phone="09171112222")))

    assert [u.user_id for u in run(member_service.search_users("reyes"))] == ["BCF-1001"]
    assert [u.user_id for u in run(member_service.search_users("EXAMPLE.COM"))] == ["BCF-1001"]
    assert [u.user_id for u in run(member_service.search_users("1112"))] == ["BCF-1002"]
    assert len(run(member_service.search_users(""))) == 2


def test_partial_update_touches_only_given_fields(db):
    user = make_user(email="old@example.com", phone="0917")
    run(member_service.add_user(user))

    assert run(member_service.update_user("BCF-1001", {"email": "new@example.com", "user_id": "HACK-1"}))

    updated = run(member_service.get_user("BCF-1001"))
    assert updated.email == "new@example.com"
    assert updated.phone == "0917"
    assert updated.name == user.name
    assert updated.created_at == user.created_at
    assert updated.updated_at >= user.updated_at


def test_update_unknown_member(db):
    assert not run(member_service.update_user("BCF-9999", {"name": "Nobody"}))


def test_read_failure_reads_as_absent(db, monkeypatch):
    class BrokenUsers:
        async def find_one(self, query):
            raise PyMongoError("network down")

        def find(self, query):
            raise PyMongoError("network down")

    monkeypatch.setattr(member_service, "get_users_collection", lambda: BrokenUsers())
    assert run(member_service.get_user("BCF-1001")) is None
    assert run(member_service.get_users()) == []


def test_bulk_add_skips_duplicates(db):
    run(member_service.add_user(make_user("BCF-1001")))
    inserted = run(member_service.add_users([
        make_user("BCF-1001"),
        make_user("BCF-1002", "Two"),
        make_user("BCF-1003", "Three"),
    ]))
    assert inserted == 2
    assert len(run(member_service.get_users())) == 3


def test_enroll_regular_member(db):
    result = run(member_service.enroll_member(
        {"name": "Juan Dela Cruz", "phone": "09171234567"},
        duration_months=3,
        payment_status="paid",
        emergency_contact={"contact_name": "Maria", "contact_number": "0917000"},
    ))

    user = result["user"]
    assert user.user_id == "BCF-1001"

    stored = run(subscription_service.get_subscription("BCF-1001"))
    assert stored.kind == "regular"
    assert stored.membership_type == "new"
    assert stored.plan_duration == "3 months"
    assert stored.payment_status == "paid"
    assert stored.payment_date is not None

    contact = run(intake_service.get_emergency_contact("BCF-1001"))
    assert contact.contact_name == "Maria"
    assert result["medical_history"] is None


def test_enroll_walk_in_validates_window_before_writing(db):
    start = datetime(2024, 3, 10, 12)
    with pytest.raises(ValidationError):
        run(member_service.enroll_member(
            {"name": "Walk In"}, kind="walk-in", start_date=start, end_date=start - timedelta(hours=1)
        ))
    with pytest.raises(ValidationError):
        run(member_service.enroll_member({"name": "Walk In"}, kind="walk-in", start_date=start))

    assert run(member_service.get_users()) == []


def test_enroll_walk_in(db):
    start, end = datetime(2024, 3, 10, 12), datetime(2024, 3, 11, 12)
    result = run(member_service.enroll_member(
        {"name": "Walk In"}, kind="walk-in", start_date=start, end_date=end
    ))
    sub = result["subscription"]
    assert sub.kind == "walk-in"
    assert sub.membership_type == "walk-in"
    assert (sub.start_date, sub.end_date) == (start, end)


def test_enroll_skips_ids_already_taken(db):
    run(member_service.add_user(make_user("BCF-1001", "Imported")))

    result = run(member_service.enroll_member({"name": "New Member"}))
    assert result["user"].user_id == "BCF-1002"


def test_delete_cascades_to_member_records(db):
    run(member_service.enroll_member(
        {"name": "Leaving Soon"},
        medical_history={"asthma_breathing_problems": True},
    ))
    run(subscription_service.add_or_update_subscription(make_subscription("BCF-1001")))
    run(session_service.start_session(ActiveSession(user_id="BCF-1001", user_name="Leaving Soon")))

    assert run(member_service.delete_user("BCF-1001"))

    assert run(member_service.get_user("BCF-1001")) is None
    assert run(subscription_service.get_subscription("BCF-1001")) is None
    assert run(intake_service.get_medical_history("BCF-1001")) is None
    assert not run(session_service.is_user_checked_in("BCF-1001"))
    # Archive is append-only
    assert len(run(subscription_service.get_subscription_history("BCF-1001"))) == 1

    assert not run(member_service.delete_user("BCF-1001"))


def test_intake_records(db):
    run(intake_service.add_medical_history(
        MedicalHistory(user_id="BCF-1001", smoking=True)
    ))
    with pytest.raises(ConflictError):
        run(intake_service.add_medical_history(
            MedicalHistory(user_id="BCF-1001")
        ))

    assert run(intake_service.update_medical_history("BCF-1001", {"medication": True, "user_id": "X"}))
    record = run(intake_service.get_medical_history("BCF-1001"))
    assert record.smoking and record.medication

    assert not run(intake_service.update_emergency_contact("BCF-1001", {"contact_name": "Nobody"}))
