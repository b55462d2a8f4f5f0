"""Unit tests for the Booking aggregate's transition rules."""

from __future__ import annotations

from django.test import SimpleTestCase

from shared.domain.value_objects import Actor, ActorKind
from apps.bookings.domain.entities import ALLOWED_TRANSITIONS, Booking, BookingStatus
from apps.bookings.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingPromoted,
    BookingRejected,
    BookingRequested,
    BookingWaitlisted,
)
from apps.bookings.domain.exceptions import InvalidTransition
from apps.bookings.tests.fakes import slot


class BookingEntityTests(SimpleTestCase):

    def setUp(self) -> None:
        self.researcher = Actor.human(7, "Ada")
        self.admin = Actor.human(1, "Root")

    def _booking(self, waitlisted: bool = False) -> Booking:
        return Booking.create(
            resource_id=3,
            user_id=7,
            interval=slot(10, 0, 11, 0),
            waitlisted=waitlisted,
            actor=self.researcher,
        )

    def test_create_without_conflict_is_pending(self) -> None:
        booking = self._booking()

        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertTrue(booking.occupies_slot)
        [event] = booking.events
        self.assertIsInstance(event, BookingRequested)
        self.assertEqual(event.booking_id, booking.id)

    def test_create_with_conflict_is_waitlisted(self) -> None:
        booking = self._booking(waitlisted=True)

        self.assertEqual(booking.status, BookingStatus.WAITLISTED)
        self.assertFalse(booking.occupies_slot)
        self.assertIsInstance(booking.events[0], BookingWaitlisted)

    def test_approve_records_resolution(self) -> None:
        booking = self._booking()
        booking.clear_events()

        booking.approve(self.admin)

        self.assertEqual(booking.status, BookingStatus.CONFIRMED)
        self.assertEqual(booking.resolved_by_id, 1)
        self.assertIsNotNone(booking.resolved_at)
        self.assertIsInstance(booking.events[0], BookingApproved)

    def test_approve_requires_pending(self) -> None:
        for waitlisted in (True, False):
            booking = self._booking(waitlisted=waitlisted)
            if not waitlisted:
                booking.approve(self.admin)
            with self.assertRaises(InvalidTransition):
                booking.approve(self.admin)

    def test_reject_is_a_no_op_on_cancelled(self) -> None:
        booking = self._booking()
        self.assertTrue(booking.reject(self.admin, "calibration day"))
        booking.clear_events()

        self.assertFalse(booking.reject(self.admin))
        self.assertEqual(booking.status, BookingStatus.CANCELLED)
        self.assertEqual(booking.resolution_reason, "calibration day")
        self.assertEqual(booking.events, [])

    def test_reject_only_from_pending(self) -> None:
        booking = self._booking()
        booking.approve(self.admin)

        with self.assertRaises(InvalidTransition):
            booking.reject(self.admin)

    def test_reject_emits_reason(self) -> None:
        booking = self._booking()
        booking.clear_events()
        booking.reject(self.admin, "double entry")

        [event] = booking.events
        self.assertIsInstance(event, BookingRejected)
        self.assertEqual(event.reason, "double entry")

    def test_cancel_reports_whether_slot_was_freed(self) -> None:
        confirmed = self._booking()
        confirmed.approve(self.admin)
        confirmed.clear_events()
        waitlisted = self._booking(waitlisted=True)
        waitlisted.clear_events()

        confirmed.cancel(self.researcher)
        waitlisted.cancel(self.researcher)

        [freed] = confirmed.events
        [not_freed] = waitlisted.events
        self.assertIsInstance(freed, BookingCancelled)
        self.assertTrue(freed.freed_slot)
        self.assertEqual(freed.previous_status, "confirmed")
        self.assertFalse(not_freed.freed_slot)

    def test_cancel_twice_succeeds(self) -> None:
        booking = self._booking()

        self.assertTrue(booking.cancel(self.researcher))
        self.assertFalse(booking.cancel(self.researcher))
        self.assertEqual(booking.status, BookingStatus.CANCELLED)

    def test_promote_uses_system_actor(self) -> None:
        booking = self._booking(waitlisted=True)
        booking.clear_events()

        booking.promote(slot(9, 0, 12, 0))

        self.assertEqual(booking.status, BookingStatus.PENDING)
        self.assertIsNone(booking.resolved_by_id)
        [event] = booking.events
        self.assertIsInstance(event, BookingPromoted)
        self.assertEqual(event.actor.kind, ActorKind.SYSTEM)
        self.assertEqual(event.freed_interval, slot(9, 0, 12, 0))

    def test_promote_requires_waitlisted(self) -> None:
        with self.assertRaises(InvalidTransition):
            self._booking().promote(slot(9, 0, 12, 0))

    def test_nothing_leaves_cancelled(self) -> None:
        self.assertEqual(ALLOWED_TRANSITIONS[BookingStatus.CANCELLED], frozenset())
        self.assertTrue(BookingStatus.CANCELLED.is_terminal)

    def test_identity_fields_are_immutable(self) -> None:
        booking = self._booking()

        for field_name, value in (
            ("resource_id", 99),
            ("user_id", 99),
            ("interval", slot(12, 0, 13, 0)),
            ("created_at", booking.updated_at),
        ):
            with self.assertRaises(AttributeError):
                setattr(booking, field_name, value)

        self.assertEqual(booking.resource_id, 3)
