"""Integration tests for booking API endpoints."""

from __future__ import annotations

from unittest import mock

from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.domain.exceptions import StoreUnavailable
from apps.bookings.models import Booking
from apps.notifications.models import AuditLogEntry, Notification
from apps.resources.models import Resource
from apps.users.models import Lab, LabMembership, User
from apps.bookings.tests.fakes import slot


class BookingAPITests(APITestCase):
    """Covers requests, conflicts, approval and cancellation over HTTP."""

    def setUp(self) -> None:
        self.researcher = User.objects.create_user(
            email="researcher@lab.test",
            password="ResearcherPass123",
            username="Rosalind",
        )
        self.other_researcher = User.objects.create_user(
            email="other@lab.test",
            password="OtherPass123",
        )
        self.technician = User.objects.create_user(
            email="tech@lab.test",
            password="TechPass123",
            role=User.RoleChoices.TECHNICIAN,
        )
        self.admin = User.objects.create_user(
            email="admin@lab.test",
            password="AdminPass123",
            role=User.RoleChoices.ADMIN,
        )
        lab = Lab.objects.create(name="Structural biology")
        LabMembership.objects.create(user=self.technician, lab=lab, status=LabMembership.Status.ACTIVE)
        self.resource = Resource.objects.create(name="Cryo-EM", lab=lab, allow_queueing=True)
        self.strict_resource = Resource.objects.create(name="Mass spectrometer", lab=lab)
        self.client.force_authenticate(self.researcher)
        self.list_url = reverse("bookings:booking-list")

    def _payload(self, interval, resource=None) -> dict:
        return {
            "resource": (resource or self.resource).id,
            "start_time": interval.start.isoformat(),
            "end_time": interval.end.isoformat(),
            "notes": "grid screening",
        }

    def _post(self, url, data=None, user=None):
        if user is not None:
            self.client.force_authenticate(user)
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post(url, data or {}, format="json")

    def _action_url(self, name, booking_id) -> str:
        return reverse(f"bookings:booking-{name}", args=[booking_id])

    def test_researcher_can_request_booking(self) -> None:
        response = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "pending")
        self.assertEqual(response.data["resource_name"], "Cryo-EM")
        booking = Booking.objects.get()
        self.assertEqual(booking.user, self.researcher)
        self.assertEqual(booking.notes, "grid screening")

    def test_overlapping_request_is_waitlisted(self) -> None:
        self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self.list_url, self._payload(slot(10, 30, 11, 0)), user=self.other_researcher)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "waitlisted")

    def test_overlap_without_queueing_is_conflict(self) -> None:
        self._post(self.list_url, self._payload(slot(10, 0, 11, 0), self.strict_resource))

        response = self._post(
            self.list_url,
            self._payload(slot(10, 30, 11, 30), self.strict_resource),
            user=self.other_researcher,
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT, response.data)
        self.assertEqual(response.data["code"], "SlotUnavailable")
        self.assertEqual(Booking.objects.filter(resource=self.strict_resource).count(), 1)

    def test_inverted_interval_is_rejected(self) -> None:
        interval = slot(10, 0, 11, 0)
        payload = self._payload(interval)
        payload["start_time"], payload["end_time"] = payload["end_time"], payload["start_time"]

        response = self._post(self.list_url, payload)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("end_time", response.data)
        self.assertFalse(Booking.objects.exists())

    def test_unknown_resource_is_not_found(self) -> None:
        payload = self._payload(slot(10, 0, 11, 0))
        payload["resource"] = 424242

        response = self._post(self.list_url, payload)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["code"], "ResourceNotFound")

    def test_broken_resource_cannot_be_booked(self) -> None:
        self.resource.status = Resource.Status.BROKEN
        self.resource.save()

        response = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "ResourceNotBookable")

    def test_researcher_cannot_approve(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("approve", created.data["id"]))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Booking.objects.get().status, Booking.Status.PENDING)

    def test_technician_cannot_approve(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("approve", created.data["id"]), user=self.technician)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Booking.objects.get().status, Booking.Status.PENDING)

    def test_admin_approves_pending_booking(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("approve", created.data["id"]), user=self.admin)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "confirmed")
        self.assertEqual(response.data["resolved_by_id"], self.admin.id)
        self.assertTrue(Notification.objects.filter(
            user=self.researcher, notification_type=Notification.Type.BOOKING_CONFIRMED
        ).exists())

    def test_approving_twice_is_conflict(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))
        url = self._action_url("approve", created.data["id"])
        self._post(url, user=self.admin)

        response = self._post(url)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "InvalidTransition")

    def test_technician_cannot_reject(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("reject", created.data["id"]), user=self.technician)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Booking.objects.get().status, Booking.Status.PENDING)

    def test_reject_with_reason(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(
            self._action_url("reject", created.data["id"]),
            {"reason": "maintenance window"},
            user=self.admin,
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertEqual(response.data["resolution_reason"], "maintenance window")

    def test_owner_cancel_promotes_waitlisted_booking(self) -> None:
        holder = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))
        waiting = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)), user=self.other_researcher)

        response = self._post(self._action_url("cancel", holder.data["id"]), user=self.researcher)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "cancelled")
        self.assertEqual(Booking.objects.get(pk=waiting.data["id"]).status, Booking.Status.PENDING)
        self.assertTrue(Notification.objects.filter(
            user=self.technician, notification_type=Notification.Type.BOOKING_PROMOTED_ADMIN
        ).exists())

    def test_other_researcher_cannot_see_or_cancel_booking(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("cancel", created.data["id"]), user=self.other_researcher)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Booking.objects.get().status, Booking.Status.PENDING)

    def test_technician_cannot_cancel_someone_elses_booking(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("cancel", created.data["id"]), user=self.technician)

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(Booking.objects.get().status, Booking.Status.PENDING)

    def test_admin_cancels_someone_elses_booking(self) -> None:
        created = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self._post(self._action_url("cancel", created.data["id"]), user=self.admin)

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Booking.objects.get().status, Booking.Status.CANCELLED)

    def test_list_is_scoped_to_owner_unless_approver(self) -> None:
        self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))
        self._post(self.list_url, self._payload(slot(12, 0, 13, 0)), user=self.other_researcher)

        own = self.client.get(self.list_url)
        self.client.force_authenticate(self.technician)
        technician_view = self.client.get(self.list_url)
        self.client.force_authenticate(self.admin)
        everything = self.client.get(self.list_url)

        self.assertEqual(own.status_code, status.HTTP_200_OK)
        self.assertEqual(len(self._results(own)), 1)
        self.assertEqual(self._results(technician_view), [])
        self.assertEqual(len(self._results(everything)), 2)

    def test_admin_books_on_behalf_of_researcher(self) -> None:
        payload = self._payload(slot(10, 0, 11, 0))
        payload["user"] = self.researcher.id

        response = self._post(self.list_url, payload, user=self.admin)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["user_id"], self.researcher.id)
        self.assertEqual(Booking.objects.get().user, self.researcher)
        entry = AuditLogEntry.objects.get(action="BOOKING_CREATED")
        self.assertEqual(entry.actor_id, self.admin.id)
        self.assertEqual(entry.details["user_id"], self.researcher.id)

    def test_researcher_cannot_book_on_behalf_of_someone_else(self) -> None:
        payload = self._payload(slot(10, 0, 11, 0))
        payload["user"] = self.other_researcher.id

        response = self._post(self.list_url, payload)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Booking.objects.exists())

    def test_booking_for_unknown_user_is_rejected(self) -> None:
        payload = self._payload(slot(10, 0, 11, 0))
        payload["user"] = 424242

        response = self._post(self.list_url, payload, user=self.admin)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("user", response.data)
        self.assertFalse(Booking.objects.exists())

    def test_filter_by_status(self) -> None:
        self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))
        self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        response = self.client.get(self.list_url, {"status": "waitlisted"})

        self.assertEqual([b["status"] for b in self._results(response)], ["waitlisted"])

    def test_anonymous_requests_are_refused(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @staticmethod
    def _results(response):
        data = response.data
        return data["results"] if isinstance(data, dict) and "results" in data else data

    @override_settings(BOOKING_RETRY_AFTER_SECONDS=3)
    def test_store_unavailable_is_retryable(self) -> None:
        bus = mock.Mock()
        bus.handle.side_effect = StoreUnavailable("Timed out waiting for the lock on resource 1", resource_id=1)

        with mock.patch("apps.bookings.views.get_message_bus", return_value=bus):
            response = self._post(self.list_url, self._payload(slot(10, 0, 11, 0)))

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response["Retry-After"], "3")
        self.assertEqual(response.data["context"], {"resource_id": 1})
