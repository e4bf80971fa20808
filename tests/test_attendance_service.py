from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from gymdesk.core.exceptions import Conflict, Forbidden, NotFound
from gymdesk.core.timeutils import utc_now
from gymdesk.models import AttendanceRecord, AttendanceStatusEnum, Subscription, SubscriptionStatusEnum
from gymdesk.services import attendance_service

from factories import make_member, make_open_visit, make_plan, make_subscription, make_user


def test_check_in_opens_visit_and_uses_one_visit(db):
    member = make_member(db)
    plan = make_plan(db, max_visits=10)
    subscription = make_subscription(db, member, plan)
    staff = make_user(db)

    result = attendance_service.check_in(db, member.member_code, processed_by=staff.id, notes="morning")

    assert result.member.id == member.id
    assert result.subscription.id == subscription.id
    assert result.attendance.check_out_time is None
    assert result.attendance.status == AttendanceStatusEnum.CHECKED_IN
    assert result.attendance.processed_by == staff.id
    assert result.attendance.notes == "morning"
    db.refresh(subscription)
    assert subscription.remaining_visits == 9


def test_check_in_unlimited_plan_leaves_counter_unset(db):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=None))

    attendance_service.check_in(db, member.member_code)

    db.refresh(subscription)
    assert subscription.remaining_visits is None


def test_check_in_unknown_identifier(db):
    with pytest.raises(NotFound) as exc:
        attendance_service.check_in(db, "no-such-code")
    assert exc.value.message == "Member not found"
    assert db.query(AttendanceRecord).count() == 0


def test_inactive_member_reported_before_expired_membership(db):
    member = make_member(db, is_active=False)
    plan = make_plan(db)
    make_subscription(
        db, member, plan,
        start_date=utc_now() - timedelta(days=60),
        end_date=utc_now() - timedelta(days=30),
    )

    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.message == "Member account is inactive"


def test_member_without_subscription_is_refused(db):
    member = make_member(db)

    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.message == "No active membership found"


def test_only_cancelled_or_suspended_subscriptions_do_not_authorize(db):
    member = make_member(db)
    plan = make_plan(db)
    make_subscription(db, member, plan, status=SubscriptionStatusEnum.CANCELLED)
    make_subscription(db, member, plan, status=SubscriptionStatusEnum.SUSPENDED)

    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.code == "no_active_membership"


def test_active_status_past_end_date_is_expired(db):
    member = make_member(db)
    plan = make_plan(db, max_visits=5)
    make_subscription(
        db, member, plan,
        start_date=utc_now() - timedelta(days=40),
        end_date=utc_now() - timedelta(minutes=1),
    )

    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.message == "Membership has expired"
    assert db.query(AttendanceRecord).count() == 0


def test_no_remaining_visits(db):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=8), remaining_visits=0)

    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.message == "No remaining visits"
    db.refresh(subscription)
    assert subscription.remaining_visits == 0
    assert db.query(AttendanceRecord).count() == 0


def test_last_visit_can_be_used(db):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=8), remaining_visits=1)

    attendance_service.check_in(db, member.member_code)

    db.refresh(subscription)
    assert subscription.remaining_visits == 0


def test_second_check_in_conflicts_and_does_not_use_a_visit(db):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=10))
    first = attendance_service.check_in(db, member.member_code)

    with pytest.raises(Conflict) as exc:
        attendance_service.check_in(db, member.member_code)

    assert exc.value.message == "Member already checked in"
    assert exc.value.details["attendance_id"] == first.attendance.id
    assert exc.value.details["check_in_time"] == first.attendance.check_in_time.isoformat()
    db.refresh(subscription)
    assert subscription.remaining_visits == 9
    assert db.query(AttendanceRecord).count() == 1


def test_check_in_allowed_again_after_check_out(db):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))
    first = attendance_service.check_in(db, member.member_code)
    attendance_service.check_out(db, first.attendance.id)

    second = attendance_service.check_in(db, member.member_code)

    assert second.attendance.id != first.attendance.id
    assert db.query(AttendanceRecord).count() == 2


def test_latest_ending_subscription_authorizes(db):
    member = make_member(db)
    plan = make_plan(db, max_visits=10)
    make_subscription(db, member, plan, end_date=utc_now() + timedelta(days=5), remaining_visits=4)
    make_subscription(db, member, plan, end_date=utc_now() + timedelta(days=20), remaining_visits=0)

    # The later-ending row has no visits left; the earlier one is never consulted
    with pytest.raises(Forbidden) as exc:
        attendance_service.check_in(db, member.member_code)
    assert exc.value.code == "no_remaining_visits"


def test_equal_end_dates_pick_the_newest_subscription(db):
    member = make_member(db)
    plan = make_plan(db, max_visits=10)
    end = utc_now() + timedelta(days=10)
    older = make_subscription(db, member, plan, end_date=end, remaining_visits=0)
    newer = make_subscription(db, member, plan, end_date=end, remaining_visits=3)

    result = attendance_service.check_in(db, member.member_code)

    assert result.subscription.id == newer.id
    db.refresh(older)
    db.refresh(newer)
    assert older.remaining_visits == 0
    assert newer.remaining_visits == 2


def test_identifier_resolution(db):
    by_code = make_member(db, member_code="QRCARD01")
    make_subscription(db, by_code, make_plan(db))
    by_id = make_member(db)
    make_subscription(db, by_id, make_plan(db))

    assert attendance_service.check_in(db, "QRCARD01").member.id == by_code.id
    assert attendance_service.check_in(db, str(by_id.id)).member.id == by_id.id


def test_member_code_wins_over_numeric_id(db):
    target = make_member(db)
    holder = make_member(db, member_code=str(target.id))
    make_subscription(db, target, make_plan(db))
    make_subscription(db, holder, make_plan(db))

    result = attendance_service.check_in(db, str(target.id))

    assert result.member.id == holder.id


def test_manual_check_in_by_internal_id(db):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))

    result = attendance_service.check_in(db, member.id)

    assert result.member.id == member.id


def test_database_rejects_second_open_visit(db):
    member = make_member(db)
    make_open_visit(db, member)

    db.add(AttendanceRecord(member_id=member.id, check_in_time=utc_now()))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_lost_race_on_open_visit_index_is_a_conflict(db, monkeypatch):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=5))
    # Another desk opened a visit between our lookup and our insert
    winner = make_open_visit(db, member)
    winner_id, winner_time = winner.id, winner.check_in_time
    monkeypatch.setattr(attendance_service, "find_open_record", lambda db, member_id: None)

    with pytest.raises(Conflict) as exc:
        attendance_service.check_in(db, member.member_code)

    assert exc.value.details == {
        "attendance_id": winner_id,
        "check_in_time": winner_time.isoformat(),
    }
    db.refresh(subscription)
    assert subscription.remaining_visits == 5
    assert db.query(AttendanceRecord).count() == 1


def test_check_out_closes_visit_once(db):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))
    visit = attendance_service.check_in(db, member.member_code, notes="in").attendance

    closed = attendance_service.check_out(db, visit.id, notes="out")

    assert closed.check_out_time is not None
    assert closed.check_out_time >= closed.check_in_time
    assert closed.status == AttendanceStatusEnum.CHECKED_OUT
    assert closed.notes == "in\nout"

    with pytest.raises(NotFound) as exc:
        attendance_service.check_out(db, visit.id)
    assert exc.value.message == "Active check-in not found or already checked out"


def test_check_out_records_the_time_of_the_call(db, monkeypatch):
    member = make_member(db)
    make_subscription(db, member, make_plan(db))
    visit = attendance_service.check_in(db, member.member_code).attendance
    leaving_at = (utc_now() + timedelta(hours=1, minutes=17)).replace(microsecond=0)
    monkeypatch.setattr(attendance_service, "utc_now", lambda: leaving_at)

    closed = attendance_service.check_out(db, visit.id)

    assert closed.check_out_time == leaving_at
    assert db.get(AttendanceRecord, visit.id).check_out_time == leaving_at


def test_check_out_unknown_visit(db):
    with pytest.raises(NotFound):
        attendance_service.check_out(db, 4242)


def test_list_attendance_filters_and_orders(db):
    alice = make_member(db, first_name="Alice")
    bob = make_member(db, first_name="Bob")
    now = utc_now()
    old = AttendanceRecord(member_id=alice.id, check_in_time=now - timedelta(days=3), check_out_time=now - timedelta(days=3) + timedelta(hours=1))
    recent = AttendanceRecord(member_id=alice.id, check_in_time=now - timedelta(hours=2), check_out_time=now - timedelta(hours=1))
    db.add_all([old, recent])
    db.commit()
    make_open_visit(db, bob, check_in_time=now - timedelta(minutes=5))

    records, total = attendance_service.list_attendance(db)
    assert total == 3
    assert [r.check_in_time for r in records] == sorted((r.check_in_time for r in records), reverse=True)

    records, total = attendance_service.list_attendance(db, member_id=alice.id)
    assert total == 2
    assert [r.id for r in records] == [recent.id, old.id]

    records, total = attendance_service.list_attendance(db, start=now - timedelta(days=1))
    assert total == 2

    records, total = attendance_service.list_attendance(db, page=2, limit=2)
    assert total == 3
    assert len(records) == 1
    assert records[0].id == old.id


def test_currently_checked_in_is_capped_and_newest_first(db):
    now = utc_now()
    for minutes in range(5):
        make_open_visit(db, make_member(db), check_in_time=now - timedelta(minutes=minutes))
    closed_member = make_member(db)
    db.add(AttendanceRecord(member_id=closed_member.id, check_in_time=now, check_out_time=now))
    db.commit()

    records = attendance_service.list_currently_checked_in(db, limit=3)

    assert len(records) == 3
    assert all(r.check_out_time is None for r in records)
    times = [r.check_in_time for r in records]
    assert times == sorted(times, reverse=True)


def test_subscription_status_is_not_changed_by_check_in(db):
    member = make_member(db)
    subscription = make_subscription(db, member, make_plan(db, max_visits=1), remaining_visits=1)

    attendance_service.check_in(db, member.member_code)

    refreshed = db.get(Subscription, subscription.id)
    assert refreshed.status == SubscriptionStatusEnum.ACTIVE
    assert refreshed.remaining_visits == 0
