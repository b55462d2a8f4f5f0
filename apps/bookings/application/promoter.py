"""
Waitlist Promoter

When a slot frees up, moves the oldest waitlisted booking that fits
entirely inside the freed interval (and no longer conflicts) back into
the approval pipeline. One promotion per freed slot.
"""

from typing import Callable
from uuid import UUID
import logging

from shared.domain.value_objects import TimeInterval
from apps.bookings.domain.ports import BookingUnitOfWork
from apps.bookings.services import has_conflict

logger = logging.getLogger(__name__)


class WaitlistPromoter:

    def __init__(self, uow_factory: Callable[[], BookingUnitOfWork]):
        self.uow_factory = uow_factory

    def promote(self, resource_id: int, freed_interval: TimeInterval) -> UUID | None:
        """
        Promote at most one waitlisted booking on the resource

        Candidates are scanned oldest first. A candidate is skipped when the
        freed interval does not cover it or when it still overlaps an active
        booking. Returns the promoted booking id, or None.
        """
        with self.uow_factory() as uow:
            uow.resources.get(resource_id, lock=True)

            for candidate in uow.bookings.find_waitlisted(resource_id):
                if not freed_interval.covers(candidate.interval):
                    logger.debug(f"Waitlisted {candidate.id} not covered by {freed_interval}")
                    continue

                if has_conflict(
                    uow.bookings,
                    resource_id,
                    candidate.interval,
                    exclude_booking_id=candidate.id,
                ):
                    logger.debug(f"Waitlisted {candidate.id} still conflicts, skipping")
                    continue

                candidate.promote(freed_interval)
                uow.collect_events(candidate)
                uow.bookings.update_status(candidate)
                promoted = candidate.id
                break
            else:
                promoted = None

        if promoted is None:
            logger.info(f"No waitlisted booking on resource {resource_id} fits {freed_interval}")
        else:
            logger.info(f"Promoted booking {promoted} on resource {resource_id} from waitlist")
        return promoted

    def promote_safely(self, resource_id: int, freed_interval: TimeInterval) -> UUID | None:
        """
        Promote, logging instead of raising

        Used after a cancel or reject has already committed: the caller's
        operation has succeeded and must not be reported as failed.
        """
        try:
            return self.promote(resource_id, freed_interval)
        except Exception as e:
            logger.error(
                f"Waitlist promotion failed for resource {resource_id}, {freed_interval}: {e}",
                exc_info=True
            )
            return None
