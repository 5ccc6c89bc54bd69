"""pytest configuration: path management, app and data fixtures."""
from __future__ import annotations

import sys
from datetime import date, time
from pathlib import Path
from types import SimpleNamespace

import pytest

# Ensure the project root is available on sys.path so tests can import the salonbook package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salonbook import create_app  # noqa: E402
from salonbook.config import TestingConfig  # noqa: E402
from salonbook.extensions import db  # noqa: E402
from salonbook.models import Establishment, Scheduling, Service, User  # noqa: E402


class RecordingNotifier:
    """Stands in for the real notifier; records reminders instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[int, str, int]] = []
        self.failures: dict[int, list[Exception]] = {}

    def fail_next(self, scheduling_id: int, *errors: Exception) -> None:
        self.failures.setdefault(scheduling_id, []).extend(errors)

    def send_reminder(self, scheduling, reminder_type, recipient, commit=True):
        queued = self.failures.get(scheduling.scheduling_id)
        if queued:
            raise queued.pop(0)
        self.sent.append((scheduling.scheduling_id, reminder_type, recipient.user_id))


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()


@pytest.fixture
def seed(app):
    """An owner with one establishment and one service."""
    with app.app_context():
        owner = User(name="Olivia Owner", email="olivia@example.com", role="owner")
        db.session.add(owner)
        db.session.flush()

        establishment = Establishment(owner_id=owner.user_id, name="Salão Central")
        db.session.add(establishment)
        db.session.flush()

        service = Service(
            establishment_id=establishment.establishment_id,
            name="Corte",
            price_cents=5000,
        )
        db.session.add(service)
        db.session.commit()

        return SimpleNamespace(
            owner_id=owner.user_id,
            establishment_id=establishment.establishment_id,
            service_id=service.service_id,
        )


@pytest.fixture
def add_scheduling(app, seed):
    """Insert a scheduling and return its id."""

    def _add(
        scheduled_date: date,
        scheduled_time: time,
        status: str = "confirmed",
        establishment_id: int | None = -1,
        service_id: int | None = None,
        client_name: str = "Carla Cliente",
    ) -> int:
        with app.app_context():
            scheduling = Scheduling(
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
                status=status,
                service_id=service_id or seed.service_id,
                establishment_id=seed.establishment_id if establishment_id == -1 else establishment_id,
                client_name=client_name,
            )
            db.session.add(scheduling)
            db.session.commit()
            return scheduling.scheduling_id

    return _add
