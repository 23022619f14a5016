from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from loguru import logger

from app.auth import AdminIdentity
from app.cache import get_gigs_cache, invalidate_gigs_cache, set_gigs_cache
from app.crud import gig_crud
from app.deps import NotifierClient, get_notifier, require_admin
from app.errors import NotFound, UpstreamFailure
from app.notifications import notify_lineup, notify_new_gig
from app.schemas import (
    GigCreate,
    GigFilters,
    GigResponse,
    GigUpdate,
    LineupResponse,
    LineupUpdate,
    NotificationType,
    RemoveFromLineup,
    ReorderLineup,
)

router = APIRouter(prefix="/gigs", tags=["gigs"])


def _today() -> str:
    return datetime.now(UTC).date().isoformat()


@router.get("/", response_model=list[GigResponse])
async def list_gigs(filters: GigFilters = Depends()) -> list[GigResponse]:
    """
    Upcoming gigs (or all of them with show_past=true), soonest first.
    Public; lineups carry names only as entered by admins.
    """
    today = _today()
    cached = await get_gigs_cache(filters, today)
    if cached is not None:
        logger.debug("Cache hit for gigs: {}", filters)
        return [GigResponse(**g) for g in cached]

    logger.debug("Cache miss for gigs: {}", filters)
    gigs = await gig_crud.list_gigs(filters, today=today)
    await set_gigs_cache(filters, today, [g.model_dump(mode="json") for g in gigs])
    return gigs


@router.get("/{gig_id}", response_model=GigResponse)
async def get_gig(gig_id: UUID) -> GigResponse:
    gig = await gig_crud.get_gig(gig_id)
    if not gig:
        raise NotFound("Gig not found")
    return gig


@router.post("/", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
async def create_gig(
    payload: GigCreate,
    admin: AdminIdentity = Depends(require_admin),
    notifier: NotifierClient = Depends(get_notifier),
) -> GigResponse:
    gig = await gig_crud.create_gig(payload, created_by=admin.email)
    await invalidate_gigs_cache()

    if payload.notify_comedians:
        try:
            await notify_new_gig(notifier, gig)
        except UpstreamFailure:
            logger.warning("New-gig notification for {} not sent", gig.id)
    return gig


@router.put("/{gig_id}", response_model=GigResponse)
async def update_gig(
    gig_id: UUID,
    payload: GigUpdate,
    admin: AdminIdentity = Depends(require_admin),
) -> GigResponse:
    gig = await gig_crud.update_gig(gig_id, payload, updated_by=admin.email)
    await invalidate_gigs_cache()
    return gig


@router.delete(
    "/{gig_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_gig(gig_id: UUID) -> None:
    await gig_crud.delete_gig(gig_id)
    await invalidate_gigs_cache()


@router.post("/{gig_id}/lineup", response_model=LineupResponse)
async def update_lineup(
    gig_id: UUID,
    payload: LineupUpdate = Body(...),
    admin: AdminIdentity = Depends(require_admin),
    notifier: NotifierClient = Depends(get_notifier),
) -> LineupResponse:
    match payload:
        case ReorderLineup():
            gig = await gig_crud.reorder_lineup(gig_id, payload.lineup, admin.email)
            await invalidate_gigs_cache()
            sent = False
            if payload.notify_comedians:
                try:
                    await notify_lineup(notifier, gig, NotificationType.LINEUP_UPDATED)
                    sent = True
                except UpstreamFailure:
                    logger.warning("Lineup notification for gig {} not sent", gig_id)
            return LineupResponse(gig_id=gig_id, lineup=gig.lineup, notification_sent=sent)

        case RemoveFromLineup(comedian_id=comedian_id):
            gig, removed = await gig_crud.remove_from_lineup(
                gig_id, comedian_id, admin.email
            )
            await invalidate_gigs_cache()
            return LineupResponse(
                gig_id=gig_id, lineup=gig.lineup, removed_bookings=len(removed)
            )
