from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from loguru import logger

from app.auth import AdminIdentity, IdentityClaim
from app.cache import invalidate_gigs_cache
from app.crud import booking_crud, gig_crud
from app.deps import (
    NotifierClient,
    get_current_comedian,
    get_notifier,
    require_admin,
)
from app.errors import NotFound, UpstreamFailure
from app.models import BookingStatus
from app.notifications import notify_booking_approved
from app.schemas import (
    ApproveBooking,
    BookingCreate,
    BookingDecision,
    BookingDecisionResponse,
    BookingFilters,
    BookingResponse,
    BookingWithGig,
    MyBookings,
    MyGig,
    NotificationType,
    RejectBooking,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    comedian: IdentityClaim = Depends(get_current_comedian),
) -> BookingResponse:
    return await booking_crud.create_booking(payload, comedian)


@router.get("/", response_model=list[BookingWithGig])
async def list_bookings(
    filters: BookingFilters = Depends(),
    _: AdminIdentity = Depends(require_admin),
) -> list[BookingWithGig]:
    """All booking requests, newest first, each with its gig (or null)."""
    bookings = await booking_crud.list_bookings(filters)
    gigs = await gig_crud.get_gigs_by_ids(b.gig_id for b in bookings)
    return [BookingWithGig(**b.model_dump(), gig=gigs.get(b.gig_id)) for b in bookings]


@router.get("/mine", response_model=MyBookings)
async def my_bookings(
    comedian: IdentityClaim = Depends(get_current_comedian),
) -> MyBookings:
    bookings = await booking_crud.list_for_comedian(comedian.subject_id)
    gigs = await gig_crud.get_gigs_by_ids(b.gig_id for b in bookings)
    items = [MyGig(booking=b, gig=gigs.get(b.gig_id)) for b in bookings]

    def _with(s: BookingStatus) -> list[MyGig]:
        return [i for i in items if i.booking.status == s]

    return MyBookings(
        approved=_with(BookingStatus.APPROVED),
        pending=_with(BookingStatus.PENDING),
        rejected=_with(BookingStatus.REJECTED),
        total=len(items),
    )


@router.get("/{booking_id}", response_model=BookingWithGig)
async def get_booking(
    booking_id: UUID,
    _: AdminIdentity = Depends(require_admin),
) -> BookingWithGig:
    booking = await booking_crud.get_booking(booking_id)
    if not booking:
        raise NotFound("Booking not found")
    gig = await gig_crud.get_gig(booking.gig_id)
    return BookingWithGig(**booking.model_dump(), gig=gig)


@router.post("/{booking_id}/decision", response_model=BookingDecisionResponse)
async def decide_booking(
    booking_id: UUID,
    payload: BookingDecision = Body(...),
    admin: AdminIdentity = Depends(require_admin),
    notifier: NotifierClient = Depends(get_notifier),
) -> BookingDecisionResponse:
    match payload:
        case ApproveBooking():
            return await _approve(booking_id, payload, admin, notifier)
        case RejectBooking(reason=reason):
            booking = await booking_crud.reject_booking(booking_id, admin.email, reason)
            return BookingDecisionResponse(booking=booking)


async def _approve(
    booking_id: UUID,
    payload: ApproveBooking,
    admin: AdminIdentity,
    notifier: NotifierClient,
) -> BookingDecisionResponse:
    result = await booking_crud.approve_booking(booking_id, admin.email)
    await invalidate_gigs_cache()

    # The approval is committed; a failed email must not undo or mask it.
    sent = False
    if payload.notify:
        try:
            await notify_booking_approved(notifier, result.booking, result.gig)
            sent = True
        except UpstreamFailure:
            logger.warning("Approval email for booking {} not sent", booking_id)

    return BookingDecisionResponse(
        booking=result.booking,
        notification_type=NotificationType.BOOKING_APPROVED,
        notification_sent=sent,
    )
