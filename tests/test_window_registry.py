from datetime import timedelta

import pytest

from hostel_allocation.core.context import ROLE_ADMIN, RequestContext
from hostel_allocation.core.exceptions import (
    AlreadyExpiredError,
    InvalidStateError,
    ResourceNotFoundError,
    ValidationError,
)
from hostel_allocation.models.enums import ApplicationStatus, WindowStatus, WindowType
from hostel_allocation.schemas.window import WindowCreate, WindowResponse, WindowUpdate

from tests.conftest import NOW


def _window_data(**overrides):
    data = {
        "name": "Freshers 2025",
        "window_type": WindowType.FRESHMAN,
        "start_date": NOW - timedelta(days=1),
        "end_date": NOW + timedelta(days=10),
        "max_applications": 3,
    }
    data.update(overrides)
    return data


def test_create_starts_in_draft(services, admin_ctx):
    window = services.windows().create(WindowCreate(**_window_data()), admin_ctx)

    assert window.published is False
    assert window.current_applications == 0
    assert window.waitlist_count == 0
    assert window.created_by == "admin-1"
    assert services.windows().compute_status(window, NOW) is WindowStatus.DRAFT


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"end_date": NOW - timedelta(days=2)}, "end_date"),
        ({"max_applications": 0}, "max_applications"),
        ({"early_bird_end_date": NOW + timedelta(days=20)}, "early_bird_end_date"),
        ({"requires_documents": True}, "required_documents"),
    ],
)
def test_create_rejects_inconsistent_windows(services, admin_ctx, overrides, field):
    with pytest.raises(ValidationError) as exc:
        services.windows().create(WindowCreate(**_window_data(**overrides)), admin_ctx)

    assert field in exc.value.details["field_errors"]


def test_status_follows_dates_once_published(services, admin_ctx):
    registry = services.windows()
    window = registry.create(
        WindowCreate(**_window_data(start_date=NOW + timedelta(days=1), end_date=NOW + timedelta(days=5))),
        admin_ctx,
    )
    registry.publish(window.id, admin_ctx)

    assert registry.compute_status(window, NOW) is WindowStatus.DRAFT
    assert registry.compute_status(window, NOW + timedelta(days=2)) is WindowStatus.ACTIVE
    assert registry.compute_status(window, NOW + timedelta(days=5, seconds=1)) is WindowStatus.EXPIRED


def test_expiry_wins_over_draft_and_suspension(services, admin_ctx, make_window):
    unpublished = make_window(publish=False)
    suspended = make_window(name="Suspended window")
    services.windows().suspend(suspended.id, admin_ctx)

    later = NOW + timedelta(days=31)
    assert services.windows().compute_status(unpublished, later) is WindowStatus.EXPIRED
    assert services.windows().compute_status(suspended, later) is WindowStatus.EXPIRED


def test_publish_expired_window_fails(services, admin_ctx, make_window):
    window = make_window(publish=False)
    late = RequestContext(actor_id="admin-1", role=ROLE_ADMIN, now=NOW + timedelta(days=31))

    with pytest.raises(AlreadyExpiredError):
        services.windows().publish(window.id, late)


def test_suspend_and_reinstate(services, admin_ctx, make_window):
    registry = services.windows()
    window = make_window()

    registry.suspend(window.id, admin_ctx)
    assert registry.compute_status(window, NOW) is WindowStatus.INACTIVE
    assert registry.is_accepting_applications(window.id, NOW) is False

    registry.reinstate(window.id, admin_ctx)
    assert registry.compute_status(window, NOW) is WindowStatus.ACTIVE
    assert registry.is_accepting_applications(window.id, NOW) is True


def test_unpublish_keeps_applications(services, admin_ctx, make_window, make_hostel, submit):
    hostel = make_hostel()
    window = make_window()
    application = submit(window, hostel, "stu-1")

    services.windows().unpublish(window.id, admin_ctx)

    assert services.windows().compute_status(window, NOW) is WindowStatus.DRAFT
    assert services.lifecycle().get(application.id, admin_ctx).status is ApplicationStatus.PENDING


def test_is_accepting_considers_waitlist(services, make_window, make_hostel, submit):
    hostel = make_hostel()
    closed = make_window(max_applications=1)
    with_waitlist = make_window(name="With waitlist", max_applications=1, allow_waitlist=True, waitlist_capacity=1)

    submit(closed, hostel, "stu-1")
    submit(with_waitlist, hostel, "stu-1")

    assert services.windows().is_accepting_applications(closed.id, NOW) is False
    assert services.windows().is_accepting_applications(with_waitlist.id, NOW) is True


def test_window_stats(services, admin_ctx, make_window, make_hostel, submit):
    hostel = make_hostel()
    window = make_window(max_applications=2, allow_waitlist=True, waitlist_capacity=2)
    for student in ("stu-1", "stu-2", "stu-3"):
        submit(window, hostel, student)

    stats = services.windows().window_stats(window.id, admin_ctx)

    assert stats.status is WindowStatus.ACTIVE
    assert stats.current_applications == 2
    assert stats.remaining_slots == 0
    assert stats.waitlist_count == 1
    assert stats.remaining_waitlist_slots == 1
    assert stats.applications_by_status[ApplicationStatus.PENDING] == 2
    assert stats.applications_by_status[ApplicationStatus.WAITLISTED] == 1
    assert stats.total_applications == 3


def test_update_cannot_drop_limit_below_usage(services, admin_ctx, make_window, make_hostel, submit):
    hostel = make_hostel()
    window = make_window(max_applications=3)
    submit(window, hostel, "stu-1")
    submit(window, hostel, "stu-2")

    with pytest.raises(ValidationError) as exc:
        services.windows().update(window.id, WindowUpdate(max_applications=1), admin_ctx)
    assert "max_applications" in exc.value.details["field_errors"]

    updated = services.windows().update(window.id, WindowUpdate(max_applications=2, description="Last call"), admin_ctx)
    assert updated.max_applications == 2
    assert updated.description == "Last call"


def test_list_windows_filters_by_derived_status(services, admin_ctx, make_window):
    active = make_window()
    make_window(name="Draft window", publish=False)

    windows = services.windows().list_windows(status=WindowStatus.ACTIVE, ctx=admin_ctx)

    assert [w.id for w in windows] == [active.id]


def test_delete_refuses_window_with_applications(services, admin_ctx, make_window, make_hostel, submit):
    hostel = make_hostel()
    window = make_window()
    submit(window, hostel, "stu-1")

    with pytest.raises(InvalidStateError):
        services.windows().delete(window.id, admin_ctx)


def test_delete_empty_window(services, admin_ctx, make_window):
    window = make_window(publish=False)

    services.windows().delete(window.id, admin_ctx)

    with pytest.raises(ResourceNotFoundError):
        services.windows().get(window.id)


def test_early_bird(services, make_window):
    window = make_window(early_bird_end_date=NOW + timedelta(days=2))

    assert services.windows().is_early_bird(window, NOW) is True
    assert services.windows().is_early_bird(window, NOW + timedelta(days=3)) is False


def test_window_response_carries_derived_status(make_window):
    window = make_window()

    response = WindowResponse.from_window(window, NOW)

    assert response.status is WindowStatus.ACTIVE
    assert response.allocation_rules.first_come_first_serve is True
