"""Competing requests through the ORM unit of work, one connection per thread."""

from __future__ import annotations

from itertools import combinations

from django.db import connections
from django.test import TransactionTestCase

from shared.domain.exceptions import StoreUnavailable
from shared.domain.value_objects import Actor
from apps.bookings.application.command_handlers import RequestBookingCommand
from apps.bookings.bootstrap import get_message_bus
from apps.bookings.domain.entities import BookingStatus
from apps.bookings.domain.exceptions import SlotUnavailable
from apps.bookings.models import Booking
from apps.resources.models import Resource
from apps.users.models import Lab, User
from apps.bookings.tests.fakes import slot
from apps.bookings.tests.test_concurrency import run_concurrently


class DjangoConcurrentRequestTests(TransactionTestCase):
    """
    Each thread opens its own transaction and takes the resource row lock.

    Backends without row locks may refuse a loser with StoreUnavailable
    instead of SlotUnavailable; neither outcome may double book.
    """

    def setUp(self) -> None:
        self.bus = get_message_bus()
        lab = Lab.objects.create(name="Crystallography")
        self.users = [
            User.objects.create_user(email=f"user{i}@lab.test", password="UserPass123")
            for i in range(4)
        ]
        self.diffractometer = Resource.objects.create(name="Diffractometer", lab=lab)
        self.beamline = Resource.objects.create(name="Beamline", lab=lab, allow_queueing=True)

    def request(self, user, resource, interval):
        return self.bus.handle(RequestBookingCommand(
            resource_id=resource.id,
            user_id=user.id,
            interval=interval,
            actor=Actor.human(user.id, user.display_name),
        ))

    def in_thread(self, user, resource, interval):
        def call():
            try:
                return self.request(user, resource, interval)
            finally:
                connections.close_all()
        return call

    def assertNoOverlappingOccupants(self, resource) -> None:
        occupying = Booking.objects.filter(resource=resource, status__in=Booking.ACTIVE_STATUSES)
        for a, b in combinations(occupying, 2):
            self.assertFalse(
                a.start_time < b.end_time and b.start_time < a.end_time,
                f"{a.pk} ({a.status}) overlaps {b.pk} ({b.status})",
            )

    def test_same_slot_without_queueing_books_at_most_once(self) -> None:
        results, errors = run_concurrently([
            self.in_thread(user, self.diffractometer, slot(10, 0, 11, 0)) for user in self.users
        ])

        winners = [r for r in results if r is not None]
        self.assertLessEqual(len(winners), 1)
        for error in errors:
            if error is not None:
                self.assertIsInstance(error, (SlotUnavailable, StoreUnavailable))
        self.assertEqual(Booking.objects.filter(resource=self.diffractometer).count(), len(winners))
        self.assertNoOverlappingOccupants(self.diffractometer)

        later = self.request(self.users[0], self.diffractometer, slot(14, 0, 15, 0))
        self.assertEqual(later.status, BookingStatus.PENDING)

    def test_same_slot_with_queueing_has_at_most_one_pending(self) -> None:
        results, errors = run_concurrently([
            self.in_thread(user, self.beamline, slot(10, 0, 11, 0)) for user in self.users
        ])

        for error in errors:
            if error is not None:
                self.assertIsInstance(error, StoreUnavailable)
        created = [r for r in results if r is not None]
        self.assertLessEqual(sum(b.status is BookingStatus.PENDING for b in created), 1)
        self.assertEqual(
            Booking.objects.filter(resource=self.beamline, status=Booking.Status.PENDING).count(),
            sum(b.status is BookingStatus.PENDING for b in created),
        )
        self.assertNoOverlappingOccupants(self.beamline)
