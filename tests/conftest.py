from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hostel_allocation.core.context import ROLE_ADMIN, ROLE_STUDENT, RequestContext
from hostel_allocation.models import Base
from hostel_allocation.models.enums import Gender, GenderPolicy, RoomType, WindowType
from hostel_allocation.schemas.application import ApplicationPreferences
from hostel_allocation.schemas.eligibility import StudentProfile
from hostel_allocation.schemas.hostel import HostelCreate
from hostel_allocation.schemas.window import WindowCreate
from hostel_allocation.services.notifications import NotificationDispatcher
from hostel_allocation.services.service_factory import ServiceFactory

NOW = datetime(2025, 3, 1, 12, 0, 0)


class RecordingNotifier(NotificationDispatcher):
    def __init__(self):
        self.events = []

    def application_submitted(self, application):
        self.events.append(("submitted", application.id, application.status.value))

    def application_decided(self, application, outcome):
        self.events.append(("decided", application.id, outcome))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def services(db, notifier):
    return ServiceFactory(db, notifier=notifier)


@pytest.fixture
def admin_ctx():
    return RequestContext(actor_id="admin-1", role=ROLE_ADMIN, now=NOW)


@pytest.fixture
def student_ctx():
    def _ctx(student_id, now=NOW):
        return RequestContext(actor_id=student_id, role=ROLE_STUDENT, now=now)
    return _ctx


@pytest.fixture
def make_hostel(services):
    def _make(name="Zik Hall", gender_policy=GenderPolicy.MIXED, rooms=(("101", RoomType.DOUBLE, None),)):
        hostel = services.hostels().create_hostel(HostelCreate(name=name, gender_policy=gender_policy))
        for number, room_type, capacity in rooms:
            services.ledger().add_room(hostel.id, number, room_type, capacity)
        return hostel
    return _make


@pytest.fixture
def make_window(services, admin_ctx):
    def _make(publish=True, **overrides):
        data = {
            "name": "2025/2026 Returning Students",
            "window_type": WindowType.RETURNING,
            "start_date": NOW - timedelta(days=1),
            "end_date": NOW + timedelta(days=30),
            "max_applications": 5,
        }
        data.update(overrides)
        window = services.windows().create(WindowCreate(**data), admin_ctx)
        if publish:
            window = services.windows().publish(window.id, admin_ctx)
        return window
    return _make


@pytest.fixture
def make_profile():
    def _make(student_id, **overrides):
        data = {
            "student_id": student_id,
            "gender": Gender.MALE,
            "level": 200,
            "gpa": 3.5,
            "nationality": "Nigerian",
            "payment_status": "cleared",
            "registration_status": "registered",
            "admission_status": "confirmed",
        }
        data.update(overrides)
        return StudentProfile(**data)
    return _make


@pytest.fixture
def submit(services, make_profile, student_ctx):
    """Submit an application for ``student_id`` as that student."""
    def _submit(window, hostel, student_id, now=NOW, profile_overrides=None, **preferences):
        profile = make_profile(student_id, **(profile_overrides or {}))
        prefs = ApplicationPreferences(hostel_id=hostel.id, **preferences)
        return services.lifecycle().submit(profile, window.id, prefs, student_ctx(student_id, now))
    return _submit
