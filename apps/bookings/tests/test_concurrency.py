"""Serialization of competing commands on one resource."""

from __future__ import annotations

import random
import threading
from itertools import combinations

from django.test import SimpleTestCase

from shared.domain.exceptions import DomainError, StoreUnavailable
from shared.domain.value_objects import Actor
from apps.bookings.application.command_handlers import (
    ApproveBookingCommand,
    CancelBookingCommand,
    RejectBookingCommand,
    RequestBookingCommand,
)
from apps.bookings.domain.entities import BookingStatus, OCCUPYING_STATUSES
from apps.bookings.domain.exceptions import SlotUnavailable
from apps.bookings.infrastructure.memory_store import InMemoryBookingStore
from apps.bookings.tests.fakes import build_engine, slot

ADMIN = Actor.human(1, "Lab Admin")


def run_concurrently(funcs):
    """Start every callable at once; returns (results, errors) in call order."""
    barrier = threading.Barrier(len(funcs))
    results = [None] * len(funcs)
    errors = [None] * len(funcs)

    def worker(index, func):
        barrier.wait()
        try:
            results[index] = func()
        except Exception as e:
            errors[index] = e

    threads = [threading.Thread(target=worker, args=(i, f)) for i, f in enumerate(funcs)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)
    return results, errors


def assert_no_overlapping_occupants(testcase, store, resource_id):
    occupying = [b for b in store.all_bookings(resource_id) if b.status in OCCUPYING_STATUSES]
    for a, b in combinations(occupying, 2):
        testcase.assertFalse(
            a.interval.overlaps_with(b.interval),
            f"{a.id} ({a.status.value}, {a.interval}) overlaps {b.id} ({b.status.value}, {b.interval})",
        )


class ConcurrentRequestTests(SimpleTestCase):

    def setUp(self) -> None:
        self.bus, self.store, self.dispatcher, _ = build_engine()

    def request(self, resource_id, user_id, interval):
        return lambda: self.bus.handle(
            RequestBookingCommand(resource_id, user_id, interval, Actor.human(user_id))
        )

    def test_only_one_of_many_overlapping_requests_is_pending(self) -> None:
        self.store.add_resource(1, allow_queueing=True)

        results, errors = run_concurrently([
            self.request(1, 100 + i, slot(10, 0, 11, 0)) for i in range(8)
        ])

        self.assertEqual(errors, [None] * 8)
        statuses = [b.status for b in results]
        self.assertEqual(statuses.count(BookingStatus.PENDING), 1)
        self.assertEqual(statuses.count(BookingStatus.WAITLISTED), 7)
        assert_no_overlapping_occupants(self, self.store, 1)

    def test_without_queueing_losers_get_slot_unavailable(self) -> None:
        self.store.add_resource(2)

        results, errors = run_concurrently([
            self.request(2, 100 + i, slot(10, 0 + i * 5, 11, 0)) for i in range(6)
        ])

        winners = [r for r in results if r is not None]
        self.assertEqual(len(winners), 1)
        self.assertEqual(sum(isinstance(e, SlotUnavailable) for e in errors), 5)
        self.assertEqual(len(self.store.all_bookings(2)), 1)

    def test_different_resources_proceed_independently(self) -> None:
        for resource_id in range(3, 7):
            self.store.add_resource(resource_id)

        results, errors = run_concurrently([
            self.request(resource_id, 100, slot(10, 0, 11, 0)) for resource_id in range(3, 7)
        ])

        self.assertEqual(errors, [None] * 4)
        self.assertTrue(all(b.status is BookingStatus.PENDING for b in results))


class ConcurrentResolutionTests(SimpleTestCase):

    def setUp(self) -> None:
        self.bus, self.store, self.dispatcher, _ = build_engine()
        self.store.add_resource(1, allow_queueing=True)

    def request(self, user_id, interval):
        return self.bus.handle(RequestBookingCommand(1, user_id, interval, Actor.human(user_id)))

    def test_double_cancel_promotes_once(self) -> None:
        holder = self.request(100, slot(9, 0, 11, 0))
        first = self.request(101, slot(9, 0, 10, 0))
        second = self.request(102, slot(10, 0, 11, 0))

        results, errors = run_concurrently([
            lambda: self.bus.handle(CancelBookingCommand(holder.id, Actor.human(100))),
            lambda: self.bus.handle(CancelBookingCommand(holder.id, ADMIN)),
        ])

        self.assertEqual(errors, [None, None])
        self.assertTrue(all(r.status is BookingStatus.CANCELLED for r in results))
        self.assertEqual(self.store.get_booking(first.id).status, BookingStatus.PENDING)
        self.assertEqual(self.store.get_booking(second.id).status, BookingStatus.WAITLISTED)

    def test_cancel_racing_new_request_never_double_books(self) -> None:
        holder = self.request(100, slot(9, 0, 10, 0))
        waiting = self.request(101, slot(9, 0, 10, 0))

        _, errors = run_concurrently([
            lambda: self.bus.handle(CancelBookingCommand(holder.id, Actor.human(100))),
            lambda: self.request(102, slot(9, 0, 10, 0)),
        ])

        self.assertEqual(errors, [None, None])
        assert_no_overlapping_occupants(self, self.store, 1)
        self.assertIn(
            self.store.get_booking(waiting.id).status,
            (BookingStatus.PENDING, BookingStatus.WAITLISTED),
        )

    def test_approve_racing_cancel_of_same_booking(self) -> None:
        booking = self.request(100, slot(9, 0, 10, 0))

        _, errors = run_concurrently([
            lambda: self.bus.handle(ApproveBookingCommand(booking.id, ADMIN)),
            lambda: self.bus.handle(CancelBookingCommand(booking.id, Actor.human(100))),
        ])

        self.assertIsNone(errors[1])
        # Cancel wins either way; approve only fails when it ran second
        self.assertEqual(self.store.get_booking(booking.id).status, BookingStatus.CANCELLED)


class LockTimeoutTests(SimpleTestCase):

    def test_held_resource_lock_surfaces_store_unavailable(self) -> None:
        store = InMemoryBookingStore(lock_timeout=0.05)
        bus, store, _, _ = build_engine(store=store)
        store.add_resource(1)

        with store.unit_of_work() as uow:
            uow.resources.get(1, lock=True)
            with self.assertRaises(StoreUnavailable) as ctx:
                bus.handle(RequestBookingCommand(1, 100, slot(9, 0, 10, 0), Actor.human(100)))

        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(store.all_bookings(1), [])

    def test_lock_is_released_after_failed_command(self) -> None:
        bus, store, _, _ = build_engine(store=InMemoryBookingStore(lock_timeout=0.05))
        store.add_resource(1)
        bus.handle(RequestBookingCommand(1, 100, slot(9, 0, 10, 0), Actor.human(100)))

        with self.assertRaises(SlotUnavailable):
            bus.handle(RequestBookingCommand(1, 101, slot(9, 0, 10, 0), Actor.human(101)))

        later = bus.handle(RequestBookingCommand(1, 102, slot(10, 0, 11, 0), Actor.human(102)))
        self.assertEqual(later.status, BookingStatus.PENDING)


class RandomizedLifecycleTests(SimpleTestCase):
    """Random command sequences never leave two occupying bookings overlapping."""

    steps = 200
    seeds = (1, 7, 42, 2024)

    def run_sequence(self, seed: int) -> None:
        rng = random.Random(seed)
        bus, store, _, _ = build_engine()
        store.add_resource(1, allow_queueing=True)
        store.add_resource(2, allow_queueing=False)
        created = []

        for _ in range(self.steps):
            op = rng.choice(("request", "request", "approve", "reject", "cancel"))
            try:
                if op == "request" or not created:
                    start = rng.randrange(8, 16)
                    length = rng.randrange(1, 4)
                    offset = rng.choice((0, 30))
                    interval = slot(start, offset, min(start + length, 18), offset)
                    user_id = rng.randrange(100, 110)
                    booking = bus.handle(RequestBookingCommand(
                        rng.choice((1, 2)), user_id, interval, Actor.human(user_id)
                    ))
                    created.append(booking.id)
                else:
                    booking_id = rng.choice(created)
                    command = {
                        "approve": lambda: ApproveBookingCommand(booking_id, ADMIN),
                        "reject": lambda: RejectBookingCommand(booking_id, ADMIN, "random"),
                        "cancel": lambda: CancelBookingCommand(booking_id, ADMIN),
                    }[op]()
                    bus.handle(command)
            except DomainError:
                pass

            for resource_id in (1, 2):
                assert_no_overlapping_occupants(self, store, resource_id)

        self.assertFalse(any(b.status is BookingStatus.WAITLISTED for b in store.all_bookings(2)))

    def test_random_sequences(self) -> None:
        for seed in self.seeds:
            with self.subTest(seed=seed):
                self.run_sequence(seed)
