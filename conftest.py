"""Shared fixtures: a controllable clock, a fresh container and seeded users"""
from datetime import datetime, timedelta, date
from uuid import UUID, uuid4

import pytest

from application.notifications import Notifier
from domain.auth import User
from domain.entities import Room, Service
from domain.enums import UserRole
from infrastructure.config import Settings
from infrastructure.container import Container

ADMIN_ID = UUID("123e4567-e89b-12d3-a456-426614174000")
GUEST_ID = UUID("123e4567-e89b-12d3-a456-426614174001")
OTHER_ID = UUID("123e4567-e89b-12d3-a456-426614174002")

# Tuesday
START = datetime(2030, 1, 1, 9, 0, 0)


class FakeClock:
    """Clock whose time only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.received = []

    async def notify(self, notification):
        self.received.append(notification)


def stay(check_in: date, nights: int):
    return check_in, check_in + timedelta(days=nights)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app_settings():
    return Settings()


@pytest.fixture
def container(clock, notifier, app_settings):
    return Container(settings=app_settings, clock=clock, notifier=notifier, user_ids=[ADMIN_ID, GUEST_ID, OTHER_ID])


@pytest.fixture
def admin():
    return User(user_id=ADMIN_ID, username="admin", full_name="Admin User", role=UserRole.ADMIN)


@pytest.fixture
def guest():
    return User(user_id=GUEST_ID, username="guest", full_name="Guest User", role=UserRole.GUEST)


@pytest.fixture
def other_guest():
    return User(user_id=OTHER_ID, username="other", full_name="Other Guest", role=UserRole.GUEST)


@pytest.fixture
async def room(container, admin):
    """Single-unit room at 1,000,000 per night"""
    return await container.catalog.add_room(admin, Room(
        hotel_id=uuid4(),
        name="Deluxe",
        price=1_000_000,
        quantity=1,
        capacity_adults=2,
        capacity_children=1
    ))


@pytest.fixture
async def breakfast(container, admin):
    return await container.catalog.add_service(admin, Service(name="Breakfast", price=100_000))


@pytest.fixture
async def laundry(container, admin):
    return await container.catalog.add_service(admin, Service(name="Laundry", price=50_000))


@pytest.fixture
def fund(container, admin):
    """Credit a user's main balance through a signed admin deposit"""

    async def _fund(user_id: UUID, amount: int):
        return await container.wallets.admin_create_deposit(admin, user_id, amount, "admin-signature")

    return _fund
