from datetime import timedelta

import pytest

from hostel_allocation.core.context import ROLE_ADMIN, RequestContext
from hostel_allocation.core.exceptions import (
    AccessDeniedError,
    DuplicateApplicationError,
    IneligibleError,
    InvalidStateError,
    ValidationError,
    WaitlistFullError,
    WindowClosedError,
)
from hostel_allocation.models.enums import (
    ApplicationStatus,
    BedStatus,
    DecisionOutcome,
    Gender,
    GenderPolicy,
    RoomType,
)
from hostel_allocation.schemas.application import ApplicationEdit, ApplicationPreferences, DocumentRef
from hostel_allocation.schemas.eligibility import AllocationRules, EligibilityCriteria

from tests.conftest import NOW


def test_submit_creates_pending_application(services, notifier, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()

    application = submit(window, hostel, "stu-1", reason="Close to lectures")

    assert application.status is ApplicationStatus.PENDING
    assert application.submitted_at == NOW
    assert application.requested_hostel_id == hostel.id
    assert application.profile_snapshot["student_id"] == "stu-1"
    assert services.windows().get(window.id).current_applications == 1
    assert notifier.events == [("submitted", application.id, "pending")]

    history = services.application_repo.list_history(application.id)
    assert [(h.from_status, h.to_status, h.sequence) for h in history] == [
        (None, ApplicationStatus.PENDING, 1)
    ]


@pytest.mark.parametrize(
    "now, reason",
    [
        (NOW - timedelta(days=2), "not_started"),
        (NOW + timedelta(days=31), "expired"),
    ],
)
def test_submit_outside_window_range(make_hostel, make_window, submit, now, reason):
    hostel = make_hostel()
    window = make_window()

    with pytest.raises(WindowClosedError) as exc:
        submit(window, hostel, "stu-1", now=now)

    assert exc.value.details["reason"] == reason


def test_submit_to_unpublished_window(make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(publish=False)

    with pytest.raises(WindowClosedError) as exc:
        submit(window, hostel, "stu-1")

    assert exc.value.details["reason"] == "draft"


def test_submit_to_suspended_window(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    services.windows().suspend(window.id, admin_ctx)

    with pytest.raises(WindowClosedError) as exc:
        submit(window, hostel, "stu-1")

    assert exc.value.details["reason"] == "suspended"


def test_duplicate_submission(services, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    first = submit(window, hostel, "stu-1")

    with pytest.raises(DuplicateApplicationError) as exc:
        submit(window, hostel, "stu-1")

    assert exc.value.details["existing_application_id"] == first.id
    assert services.windows().get(window.id).current_applications == 1


def test_resubmit_after_withdrawal(services, student_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    first = submit(window, hostel, "stu-1")
    services.lifecycle().withdraw(first.id, "stu-1", student_ctx("stu-1"))

    second = submit(window, hostel, "stu-1")

    assert second.id != first.id
    assert second.status is ApplicationStatus.PENDING


def test_ineligible_submission_lists_reasons(services, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(eligibility_criteria=EligibilityCriteria(min_level=300, minimum_gpa=3.8))

    with pytest.raises(IneligibleError) as exc:
        submit(window, hostel, "stu-1")

    assert exc.value.reasons == ["level_out_of_range", "gpa_below_minimum"]
    assert services.windows().get(window.id).current_applications == 0


def test_submit_rejects_unknown_hostel(services, make_window, make_profile, student_ctx):
    window = make_window()
    prefs = ApplicationPreferences(hostel_id="missing")

    with pytest.raises(ValidationError):
        services.lifecycle().submit(make_profile("stu-1"), window.id, prefs, student_ctx("stu-1"))


def test_submit_rejects_room_from_another_hostel(services, make_hostel, make_window, submit):
    zik = make_hostel()
    queens = make_hostel(name="Queens Hall", rooms=(("Q1", RoomType.SINGLE, None),))
    queens_room = services.hostels().list_rooms(queens.id)[0]
    window = make_window()

    with pytest.raises(ValidationError) as exc:
        submit(window, zik, "stu-1", room_id=queens_room.id)

    assert "room_id" in exc.value.details["field_errors"]


def test_submit_requires_listed_documents(make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(requires_documents=True, required_documents=["medical_report", "id_card"])

    with pytest.raises(ValidationError) as exc:
        submit(window, hostel, "stu-1", documents=[DocumentRef(type="id_card", name="id.pdf")])
    assert exc.value.details["field_errors"]["documents"] == ["Missing required document: medical_report"]

    application = submit(
        window,
        hostel,
        "stu-1",
        documents=[
            DocumentRef(type="id_card", name="id.pdf"),
            DocumentRef(type="medical_report", name="medical.pdf"),
        ],
    )
    assert len(application.documents) == 2


def test_student_cannot_submit_for_someone_else(services, make_hostel, make_window, make_profile, student_ctx):
    hostel = make_hostel()
    window = make_window()

    with pytest.raises(AccessDeniedError):
        services.lifecycle().submit(
            make_profile("stu-1"),
            window.id,
            ApplicationPreferences(hostel_id=hostel.id),
            student_ctx("stu-2"),
        )


def test_overflow_goes_to_waitlist(services, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(max_applications=1, allow_waitlist=True, waitlist_capacity=1)

    first = submit(window, hostel, "stu-1")
    second = submit(window, hostel, "stu-2")

    assert first.status is ApplicationStatus.PENDING
    assert second.status is ApplicationStatus.WAITLISTED
    window = services.windows().get(window.id)
    assert (window.current_applications, window.waitlist_count) == (1, 1)

    with pytest.raises(WindowClosedError) as exc:
        submit(window, hostel, "stu-3")
    assert exc.value.details["reason"] == "capacity_reached"


def test_withdraw_releases_slot_and_is_repeatable(services, student_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(max_applications=1)
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()

    withdrawn = lifecycle.withdraw(application.id, "stu-1", student_ctx("stu-1"))
    again = lifecycle.withdraw(application.id, "stu-1", student_ctx("stu-1"))

    assert withdrawn.status is ApplicationStatus.WITHDRAWN
    assert withdrawn.withdrawn_at == NOW
    assert again.status is ApplicationStatus.WITHDRAWN
    assert services.windows().get(window.id).current_applications == 0
    assert len(lifecycle.history(application.id, student_ctx("stu-1"))) == 2

    assert submit(window, hostel, "stu-2").status is ApplicationStatus.PENDING


def test_withdraw_checks_owner_and_state(services, admin_ctx, student_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()

    with pytest.raises(AccessDeniedError):
        lifecycle.withdraw(application.id, "stu-2", student_ctx("stu-2"))

    lifecycle.decide(application.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)
    with pytest.raises(InvalidStateError):
        lifecycle.withdraw(application.id, "stu-1", student_ctx("stu-1"))


def test_edit_pending_application(services, admin_ctx, student_ctx, make_hostel, make_window, submit):
    zik = make_hostel()
    queens = make_hostel(name="Queens Hall", rooms=(("Q1", RoomType.SINGLE, None),))
    window = make_window()
    application = submit(window, zik, "stu-1")
    lifecycle = services.lifecycle()

    edited = lifecycle.edit(
        application.id,
        "stu-1",
        ApplicationEdit(hostel_id=queens.id, room_type=RoomType.SINGLE, special_requirements="Ground floor"),
        student_ctx("stu-1"),
    )

    assert edited.requested_hostel_id == queens.id
    assert edited.preferred_room_type is RoomType.SINGLE
    assert edited.special_requirements == "Ground floor"

    with pytest.raises(AccessDeniedError):
        lifecycle.edit(application.id, "stu-2", ApplicationEdit(reason="mine now"), student_ctx("stu-2"))

    lifecycle.decide(application.id, "admin-1", DecisionOutcome.REJECT, ctx=admin_ctx)
    with pytest.raises(InvalidStateError):
        lifecycle.edit(application.id, "stu-1", ApplicationEdit(reason="please"), student_ctx("stu-1"))


def test_edit_rechecks_hostel_gender(services, student_ctx, make_hostel, make_window, submit):
    mixed = make_hostel()
    female_only = make_hostel(name="Moremi Hall", gender_policy=GenderPolicy.FEMALE)
    window = make_window(eligibility_criteria=EligibilityCriteria(match_hostel_gender=True))
    application = submit(window, mixed, "stu-1")

    with pytest.raises(IneligibleError) as exc:
        services.lifecycle().edit(
            application.id, "stu-1", ApplicationEdit(hostel_id=female_only.id), student_ctx("stu-1")
        )

    assert exc.value.reasons == ["gender_mismatch"]


def test_reject_and_decide_again(services, admin_ctx, notifier, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()

    rejected = lifecycle.decide(application.id, "admin-1", DecisionOutcome.REJECT, "Incomplete", admin_ctx)

    assert rejected.status is ApplicationStatus.REJECTED
    assert rejected.processed_by == "admin-1"
    assert rejected.admin_notes == "Incomplete"
    assert notifier.events[-1] == ("decided", application.id, "reject")
    with pytest.raises(InvalidStateError):
        lifecycle.decide(application.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)


def test_decision_event_reports_resulting_status(services, admin_ctx, notifier, make_hostel, make_window, submit):
    hostel = make_hostel(rooms=(("101", RoomType.SINGLE, None),))
    window = make_window(allow_waitlist=True, waitlist_capacity=1)
    first = submit(window, hostel, "stu-1")
    second = submit(window, hostel, "stu-2")
    lifecycle = services.lifecycle()
    lifecycle.decide(first.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)

    downgraded = lifecycle.decide(second.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)

    assert downgraded.status is ApplicationStatus.WAITLISTED
    assert notifier.events[-2:] == [
        ("decided", first.id, "approve"),
        ("decided", second.id, "waitlist"),
    ]


def test_approval_attempt_without_free_bed_is_recorded(
    services, admin_ctx, notifier, make_hostel, make_window, submit
):
    hostel = make_hostel(rooms=(("101", RoomType.SINGLE, None),))
    window = make_window(allow_waitlist=True, waitlist_capacity=1)
    first = submit(window, hostel, "stu-1")
    second = submit(window, hostel, "stu-2")
    lifecycle = services.lifecycle()
    lifecycle.decide(first.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)
    lifecycle.decide(second.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)
    events = list(notifier.events)
    later = RequestContext("admin-2", ROLE_ADMIN, now=NOW + timedelta(hours=1))

    again = lifecycle.decide(second.id, "admin-2", DecisionOutcome.APPROVE, ctx=later)

    assert again.status is ApplicationStatus.WAITLISTED
    assert again.processed_by == "admin-2"
    assert again.processed_at == NOW + timedelta(hours=1)
    assert notifier.events == events
    last = services.application_repo.list_history(second.id)[-1]
    assert (last.from_status, last.to_status, last.actor_id) == (
        ApplicationStatus.WAITLISTED,
        ApplicationStatus.WAITLISTED,
        "admin-2",
    )
    assert last.notes == "Approval attempted; no bed free"
    assert services.windows().get(window.id).waitlist_count == 1


def test_waitlist_decision_refused_while_bed_free(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(allow_waitlist=True, waitlist_capacity=2)
    application = submit(window, hostel, "stu-1")

    with pytest.raises(InvalidStateError):
        services.lifecycle().decide(application.id, "admin-1", DecisionOutcome.WAITLIST, ctx=admin_ctx)


def test_waitlist_decision_when_hostel_full(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel(rooms=(("101", RoomType.SINGLE, None),))
    window = make_window(allow_waitlist=True, waitlist_capacity=1)
    first = submit(window, hostel, "stu-1")
    second = submit(window, hostel, "stu-2")
    third = submit(window, hostel, "stu-3")
    lifecycle = services.lifecycle()
    lifecycle.decide(first.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)

    waitlisted = lifecycle.decide(second.id, "admin-1", DecisionOutcome.WAITLIST, ctx=admin_ctx)
    assert waitlisted.status is ApplicationStatus.WAITLISTED
    assert services.windows().get(window.id).waitlist_count == 1

    with pytest.raises(WaitlistFullError):
        lifecycle.decide(third.id, "admin-1", DecisionOutcome.WAITLIST, ctx=admin_ctx)

    lifecycle.decide(second.id, "admin-1", DecisionOutcome.REJECT, ctx=admin_ctx)
    assert services.windows().get(window.id).waitlist_count == 0


def test_revoke_frees_bed(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel(rooms=(("101", RoomType.SINGLE, None),))
    window = make_window()
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()
    approved = lifecycle.decide(application.id, "admin-1", DecisionOutcome.APPROVE, ctx=admin_ctx)
    bed_id = approved.allocated_bed_id

    revoked = lifecycle.revoke(application.id, "admin-1", "Fees reversed", admin_ctx)

    assert revoked.status is ApplicationStatus.REJECTED
    assert revoked.allocated_bed_id is None
    assert services.bed_repo.get_by_id(bed_id).status is BedStatus.AVAILABLE
    with pytest.raises(InvalidStateError):
        lifecycle.revoke(application.id, "admin-1", ctx=admin_ctx)


def test_archive_only_terminal_applications(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()

    with pytest.raises(InvalidStateError):
        lifecycle.archive(application.id, "admin-1", admin_ctx)

    lifecycle.decide(application.id, "admin-1", DecisionOutcome.REJECT, ctx=admin_ctx)
    archived = lifecycle.archive(application.id, "admin-1", admin_ctx)

    assert archived.is_deleted
    assert lifecycle.list_for_window(window.id) == []


def test_students_only_read_their_own_applications(services, student_ctx, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window()
    application = submit(window, hostel, "stu-1")
    lifecycle = services.lifecycle()

    assert lifecycle.get(application.id, student_ctx("stu-1")).id == application.id
    with pytest.raises(AccessDeniedError):
        lifecycle.get(application.id, student_ctx("stu-2"))
    with pytest.raises(AccessDeniedError):
        lifecycle.list_for_student("stu-1", student_ctx("stu-2"))
    assert [a.id for a in lifecycle.list_for_student("stu-1", student_ctx("stu-1"))] == [application.id]


def test_notifier_failure_keeps_submission(services, notifier, make_hostel, make_window, submit, monkeypatch):
    hostel = make_hostel()
    window = make_window()

    def broken(application):
        raise RuntimeError("mail relay down")

    monkeypatch.setattr(notifier, "application_submitted", broken)
    application = submit(window, hostel, "stu-1")

    services.db.expire_all()
    stored = services.application_repo.get_by_id(application.id)
    assert stored.status is ApplicationStatus.PENDING
    assert services.windows().get(window.id).current_applications == 1


def test_queue_order_uses_priority_then_submission_time(services, make_hostel, make_window, submit):
    hostel = make_hostel()
    window = make_window(allocation_rules=AllocationRules(merit_based=True))
    early_low = submit(window, hostel, "stu-1", profile_overrides={"gpa": 2.5})
    late_high = submit(window, hostel, "stu-2", now=NOW + timedelta(hours=1), profile_overrides={"gpa": 3.9})
    late_low = submit(window, hostel, "stu-3", now=NOW + timedelta(hours=2), profile_overrides={"gpa": 2.5})

    queue = services.lifecycle().list_for_window(window.id, ApplicationStatus.PENDING)

    assert [a.id for a in queue] == [late_high.id, early_low.id, late_low.id]


def test_gender_check_precedes_capacity(services, admin_ctx, make_hostel, make_window, submit):
    hostel = make_hostel(name="Zik Hall", gender_policy=GenderPolicy.MALE, rooms=(("101", RoomType.SINGLE, None),))
    window = make_window(eligibility_criteria=EligibilityCriteria(match_hostel_gender=True))

    with pytest.raises(IneligibleError) as exc:
        submit(window, hostel, "stu-f", profile_overrides={"gender": Gender.FEMALE})

    assert exc.value.reasons == ["gender_mismatch"]
    assert services.ledger().get_availability(hostel.id).available == 1
