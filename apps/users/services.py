"""Services that answer membership questions for other apps."""

from __future__ import annotations

import logging
from typing import List, Optional

from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore

from apps.bookings.domain.ports import ScopeResolver

from .models import CustomUser, LabMembership

logger = logging.getLogger(__name__)


class MembershipScopeResolver(ScopeResolver):
    """
    Decides which privileged users hear about approval work on a lab.

    Privileged users with an active membership in the lab are chosen.
    When the resource has no lab, or the lab has no active privileged
    member, every active privileged user is chosen so the request is
    never left without a reviewer.
    """

    def __init__(self, privileged_roles: Optional[tuple] = None):
        self.privileged_roles = tuple(privileged_roles or settings.BOOKING_PRIVILEGED_ROLES)

    def _privileged_users(self):
        return CustomUser.objects.filter(is_active=True).filter(
            Q(role__in=self.privileged_roles) | Q(is_superuser=True)
        )

    def privileged_recipients_for(self, lab_id: Optional[int]) -> List[int]:
        privileged = self._privileged_users()

        if lab_id is not None:
            scoped = list(
                privileged.filter(
                    lab_memberships__lab_id=lab_id,
                    lab_memberships__status=LabMembership.Status.ACTIVE,
                )
                .order_by("id")
                .values_list("id", flat=True)
                .distinct()
            )
            if scoped:
                return scoped
            logger.info(f"Lab {lab_id} has no active privileged member, notifying all privileged users")

        return list(privileged.order_by("id").values_list("id", flat=True))
