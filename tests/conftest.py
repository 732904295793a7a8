"""Pytest configuration for django-barcodes tests."""

from datetime import datetime, timezone as dt_timezone

import pytest


class FrozenClock:
    """Settable clock injected into ReservationService."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def user(db, django_user_model):
    """Create a test user."""
    return django_user_model.objects.create_user(
        username="librarian",
        password="testpass123",
    )


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 10, 19, 9, 30, tzinfo=dt_timezone.utc))


@pytest.fixture
def service(db, clock):
    """Reservation service running on the frozen clock."""
    from django_barcodes.services import ReservationService

    return ReservationService(clock=clock)
