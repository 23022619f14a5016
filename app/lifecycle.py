"""
Booking state machine.

    pending  -> approved | rejected
    approved -> removed

Functions here are pure: they take the current booking/gig state, check the
guards and return the next state. Persisting it is the CRUD layer's job.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from app.errors import StateConflict
from app.models import BookingStatus
from app.schemas import BookingResponse, GigResponse, LineupEntry
from app.slots import assign_spot

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED},
    BookingStatus.APPROVED: {BookingStatus.REMOVED},
    BookingStatus.REJECTED: set(),
    BookingStatus.REMOVED: set(),
}

# Statuses that block a comedian from requesting the same gig again
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)

ALREADY_PROCESSED = "Booking has already been processed"


@dataclass(frozen=True)
class Approval:
    gig: GigResponse
    booking: BookingResponse
    entry: LineupEntry


def assert_transition(
    current: BookingStatus, target: BookingStatus, detail: str | None = None
) -> None:
    if target not in BOOKING_TRANSITIONS.get(current, set()):
        raise StateConflict(
            detail or f"Cannot transition booking from '{current}' to '{target}'"
        )


def ensure_can_request(existing: Sequence[BookingResponse]) -> None:
    """Guard for a new request: no active booking for the same gig and comedian."""
    if any(b.status in ACTIVE_STATUSES for b in existing):
        raise StateConflict("You already have a booking request for this gig")


def approve(
    booking: BookingResponse,
    gig: GigResponse,
    approved_by: str,
    now: datetime | None = None,
) -> Approval:
    now = now or datetime.now(UTC)
    assert_transition(booking.status, BookingStatus.APPROVED, ALREADY_PROCESSED)
    if len(gig.lineup) >= gig.capacity:
        raise StateConflict("No more slots available for this gig")

    spot_index = assign_spot(gig.spots, gig.lineup, booking.requested_spot_type)
    entry = LineupEntry(
        comedian_id=booking.comedian_id,
        name=booking.comedian_name,
        email=booking.comedian_email,
        order=len(gig.lineup) + 1,
        spot_index=spot_index,
        added_at=now,
    )
    return Approval(
        gig=gig.model_copy(update={"lineup": [*gig.lineup, entry]}),
        booking=booking.model_copy(
            update={
                "status": BookingStatus.APPROVED,
                "assigned_spot_index": spot_index,
                "approved_by": approved_by,
                "approved_at": now,
            }
        ),
        entry=entry,
    )


def reject(
    booking: BookingResponse,
    rejected_by: str,
    reason: str = "",
    now: datetime | None = None,
) -> BookingResponse:
    assert_transition(booking.status, BookingStatus.REJECTED, ALREADY_PROCESSED)
    return booking.model_copy(
        update={
            "status": BookingStatus.REJECTED,
            "rejection_reason": reason or "",
            "rejected_by": rejected_by,
            "rejected_at": now or datetime.now(UTC),
        }
    )


def mark_removed(
    booking: BookingResponse,
    removed_by: str,
    now: datetime | None = None,
) -> BookingResponse:
    assert_transition(booking.status, BookingStatus.REMOVED)
    return booking.model_copy(
        update={
            "status": BookingStatus.REMOVED,
            "removed_by": removed_by,
            "removed_at": now or datetime.now(UTC),
        }
    )
