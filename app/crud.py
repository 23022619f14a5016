from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import UUID

from loguru import logger
from tortoise.transactions import in_transaction

from app import lifecycle, lineup
from app.auth import IdentityClaim
from app.errors import NotFound, StateConflict, ValidationFailure
from app.models import Booking, BookingStatus, Comedian, Gig
from app.schemas import (
    BookingCreate,
    BookingFilters,
    BookingResponse,
    ComedianProfile,
    GigCreate,
    GigFilters,
    GigResponse,
    GigUpdate,
    LineupEntry,
    ProfileUpdate,
)

_APPROVAL_FIELDS = ["status", "assigned_spot_index", "approved_by", "approved_at"]
_REJECTION_FIELDS = ["status", "rejection_reason", "rejected_by", "rejected_at"]
_REMOVAL_FIELDS = ["status", "removed_by", "removed_at"]


def _gig(inst: Gig) -> GigResponse:
    return GigResponse.model_validate(inst, from_attributes=True)


def _booking(inst: Booking) -> BookingResponse:
    return BookingResponse.model_validate(inst, from_attributes=True)


def _dump_lineup(entries: Iterable[LineupEntry]) -> list[dict]:
    return [e.model_dump(mode="json") for e in entries]


def _copy_fields(inst, source, fields: list[str]) -> None:
    for name in fields:
        setattr(inst, name, getattr(source, name))


# ---------------------------------------------------------------------------
# Gigs
# ---------------------------------------------------------------------------


class GigCRUD:
    async def create_gig(self, payload: GigCreate, created_by: str) -> GigResponse:
        spots = (
            [s.model_dump(mode="json") for s in payload.spots]
            if payload.spots is not None
            else None
        )
        inst = await Gig.create(
            venue=payload.venue,
            date=payload.date,
            time=payload.time,
            description=payload.description,
            spots=spots,
            slots_total=len(spots) if spots is not None else payload.slots_total,
            lineup=[],
            created_by=created_by,
        )
        logger.info("Gig {} created by {}", inst.id, created_by)
        return _gig(inst)

    async def get_gig(self, gig_id: UUID) -> GigResponse | None:
        inst = await Gig.get_or_none(id=gig_id)
        return _gig(inst) if inst else None

    async def get_gigs_by_ids(self, gig_ids: Iterable[UUID]) -> dict[UUID, GigResponse]:
        ids = set(gig_ids)
        if not ids:
            return {}
        return {g.id: _gig(g) for g in await Gig.filter(id__in=ids)}

    async def list_gigs(self, filters: GigFilters, today: str) -> list[GigResponse]:
        qs = Gig.all()
        if not filters.show_past:
            qs = qs.filter(date__gte=today)
        if filters.status is not None:
            qs = qs.filter(status=filters.status)
        return [_gig(g) for g in await qs.order_by("date")]

    async def update_gig(
        self, gig_id: UUID, payload: GigUpdate, updated_by: str
    ) -> GigResponse:
        changes = payload.model_dump(exclude_unset=True)

        async with in_transaction():
            inst = await Gig.filter(id=gig_id).select_for_update().first()
            if inst is None:
                raise NotFound("Gig not found")

            current = _gig(inst)
            candidate = current.model_copy(
                update={
                    k: getattr(payload, k)
                    for k in ("spots", "slots_total")
                    if k in changes
                }
            )
            if candidate.spots is None and candidate.slots_total is None:
                raise ValidationFailure("Either spots or slots_total is required")
            if len(current.lineup) > candidate.capacity:
                raise StateConflict(
                    f"Gig already has {len(current.lineup)} comedians booked; "
                    f"capacity cannot drop to {candidate.capacity}"
                )
            if "spots" in changes and any(
                e.spot_index is not None
                and (candidate.spots is None or e.spot_index >= len(candidate.spots))
                for e in current.lineup
            ):
                raise StateConflict("A booked spot would no longer exist")

            # slots_total mirrors the spot count whenever spots are set
            touched = {"spots", "slots_total"} & changes.keys()
            if candidate.spots is not None and touched:
                changes["slots_total"] = len(candidate.spots)
            for name, value in changes.items():
                setattr(inst, name, value)
            inst.updated_by = updated_by
            await inst.save(update_fields=[*changes, "updated_by", "updated_at"])

        logger.info("Gig {} updated by {}: {}", gig_id, updated_by, sorted(changes))
        return _gig(inst)

    async def delete_gig(self, gig_id: UUID) -> int:
        """Delete the gig and every booking for it. Returns deleted booking count."""
        async with in_transaction():
            inst = await Gig.filter(id=gig_id).select_for_update().first()
            if inst is None:
                raise NotFound("Gig not found")
            deleted = await Booking.filter(gig_id=gig_id).delete()
            await inst.delete()

        logger.info("Gig {} deleted with {} bookings", gig_id, deleted)
        return deleted

    async def reorder_lineup(
        self, gig_id: UUID, entries: list[LineupEntry], updated_by: str
    ) -> GigResponse:
        async with in_transaction():
            inst = await Gig.filter(id=gig_id).select_for_update().first()
            if inst is None:
                raise NotFound("Gig not found")
            updated = lineup.reorder(_gig(inst), entries)
            inst.lineup = _dump_lineup(updated.lineup)
            inst.updated_by = updated_by
            await inst.save(update_fields=["lineup", "updated_by", "updated_at"])

        logger.info("Lineup for gig {} reordered by {}", gig_id, updated_by)
        return updated

    async def remove_from_lineup(
        self, gig_id: UUID, comedian_id: str, removed_by: str
    ) -> tuple[GigResponse, list[BookingResponse]]:
        """
        Take a comedian off the lineup and flip their approved bookings for
        this gig to removed, in one transaction.
        """
        now = datetime.now(UTC)
        async with in_transaction():
            inst = await Gig.filter(id=gig_id).select_for_update().first()
            if inst is None:
                raise NotFound("Gig not found")
            updated = lineup.remove(_gig(inst), comedian_id)
            inst.lineup = _dump_lineup(updated.lineup)
            inst.updated_by = removed_by
            await inst.save(update_fields=["lineup", "updated_by", "updated_at"])

            removed: list[BookingResponse] = []
            for b in await Booking.filter(
                gig_id=gig_id,
                comedian_id=comedian_id,
                status=BookingStatus.APPROVED,
            ).select_for_update():
                nxt = lifecycle.mark_removed(_booking(b), removed_by, now=now)
                _copy_fields(b, nxt, _REMOVAL_FIELDS)
                await b.save(update_fields=_REMOVAL_FIELDS)
                removed.append(nxt)

        logger.info(
            "Comedian {} removed from gig {} by {} ({} bookings)",
            comedian_id,
            gig_id,
            removed_by,
            len(removed),
        )
        return updated, removed


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingCRUD:
    async def create_booking(
        self, payload: BookingCreate, comedian: IdentityClaim
    ) -> BookingResponse:
        """
        Persist a pending request. Capacity is not checked here; requests may
        outnumber slots and are only bounded at approval time.
        """
        email = comedian.email or ""
        async with in_transaction():
            # locked so a concurrent delete_gig cannot orphan the new booking
            gig = await Gig.filter(id=payload.gig_id).select_for_update().first()
            if gig is None:
                raise NotFound("Gig not found")

            existing = await Booking.filter(
                gig_id=payload.gig_id,
                comedian_id=comedian.subject_id,
                status__in=list(lifecycle.ACTIVE_STATUSES),
            ).select_for_update()
            lifecycle.ensure_can_request([_booking(b) for b in existing])

            inst = await Booking.create(
                gig_id=payload.gig_id,
                comedian_id=comedian.subject_id,
                comedian_email=email,
                comedian_name=comedian.display_name or email,
                requested_spot_type=payload.requested_spot_type,
                message=payload.message,
            )

        logger.info(
            "Booking {} requested by {} for gig {}",
            inst.id,
            comedian.subject_id,
            payload.gig_id,
        )
        return _booking(inst)

    async def get_booking(self, booking_id: UUID) -> BookingResponse | None:
        inst = await Booking.get_or_none(id=booking_id)
        return _booking(inst) if inst else None

    async def list_bookings(self, filters: BookingFilters) -> list[BookingResponse]:
        qs = Booking.all()
        if filters.status is not None:
            qs = qs.filter(status=filters.status)
        if filters.gig_id is not None:
            qs = qs.filter(gig_id=filters.gig_id)
        return [_booking(b) for b in await qs.order_by("-created_at")]

    async def list_for_comedian(self, comedian_id: str) -> list[BookingResponse]:
        qs = Booking.filter(comedian_id=comedian_id).order_by("-created_at")
        return [_booking(b) for b in await qs]

    async def approve_booking(
        self, booking_id: UUID, approved_by: str
    ) -> lifecycle.Approval:
        """
        Approve a pending booking: assign a spot, append the comedian to the
        lineup and mark the booking approved.

        Both rows are locked and written in one transaction, so concurrent
        approvals cannot overfill a gig and a failed second write leaves no
        half-approved state behind.
        """
        async with in_transaction():
            booking = await Booking.filter(id=booking_id).select_for_update().first()
            if booking is None:
                raise NotFound("Booking not found")
            gig = await Gig.filter(id=booking.gig_id).select_for_update().first()
            if gig is None:
                raise NotFound("Associated gig not found")

            result = lifecycle.approve(_booking(booking), _gig(gig), approved_by)

            gig.lineup = _dump_lineup(result.gig.lineup)
            gig.updated_by = approved_by
            await gig.save(update_fields=["lineup", "updated_by", "updated_at"])

            _copy_fields(booking, result.booking, _APPROVAL_FIELDS)
            await booking.save(update_fields=_APPROVAL_FIELDS)

        logger.info(
            "Booking {} approved by {} (spot {})",
            booking_id,
            approved_by,
            result.entry.spot_index,
        )
        return result

    async def reject_booking(
        self, booking_id: UUID, rejected_by: str, reason: str = ""
    ) -> BookingResponse:
        async with in_transaction():
            inst = await Booking.filter(id=booking_id).select_for_update().first()
            if inst is None:
                raise NotFound("Booking not found")
            nxt = lifecycle.reject(_booking(inst), rejected_by, reason)
            _copy_fields(inst, nxt, _REJECTION_FIELDS)
            await inst.save(update_fields=_REJECTION_FIELDS)

        logger.info("Booking {} rejected by {}", booking_id, rejected_by)
        return nxt


# ---------------------------------------------------------------------------
# Comedian profiles
# ---------------------------------------------------------------------------


class ComedianCRUD:
    async def get_profile(self, comedian_id: str) -> ComedianProfile | None:
        inst = await Comedian.get_or_none(id=comedian_id)
        if not inst:
            return None
        return ComedianProfile.model_validate(inst, from_attributes=True)

    async def upsert_profile(
        self, claim: IdentityClaim, payload: ProfileUpdate
    ) -> ComedianProfile:
        """Only the owner writes their profile; id and email come from the claim."""
        inst = await Comedian.get_or_none(id=claim.subject_id)
        if inst is None:
            inst = Comedian(
                id=claim.subject_id,
                email=claim.email or "",
                name=payload.name or claim.display_name or "",
                phone=payload.phone or "",
                bio=payload.bio or "",
            )
        else:
            inst.email = claim.email or inst.email
            for name, value in payload.model_dump(exclude_none=True).items():
                setattr(inst, name, value)
        await inst.save()
        return ComedianProfile.model_validate(inst, from_attributes=True)

    async def list_comedians(self) -> list[ComedianProfile]:
        return [
            ComedianProfile.model_validate(c, from_attributes=True)
            for c in await Comedian.all().order_by("name")
        ]

    async def list_emails(self) -> list[str]:
        return [c.email for c in await Comedian.all() if c.email]


gig_crud = GigCRUD()
booking_crud = BookingCRUD()
comedian_crud = ComedianCRUD()
