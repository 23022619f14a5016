from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)

from app.models import BookingStatus, GigStatus
from app.slots import capacity

ISO_DATE = r"^\d{4}-\d{2}-\d{2}$"


# ---------------------------------------------------------------------------
# Spots & lineup
# ---------------------------------------------------------------------------


class HostSpot(BaseModel):
    kind: Literal["host"] = "host"


class TimedSpot(BaseModel):
    kind: Literal["timed"] = "timed"
    minutes: int = Field(gt=0, le=240)


Spot = Annotated[HostSpot | TimedSpot, Field(discriminator="kind")]


class LineupEntry(BaseModel):
    comedian_id: str = Field(min_length=1)
    name: str = ""
    email: str = ""
    order: int = 0  # re-stamped to the 1-based position on every write
    spot_index: int | None = Field(default=None, ge=0)
    added_at: datetime | None = None


# ---------------------------------------------------------------------------
# Gigs
# ---------------------------------------------------------------------------


class GigCreate(BaseModel):
    venue: str = Field(min_length=1, max_length=255)
    date: str = Field(pattern=ISO_DATE)
    time: str = Field(min_length=1, max_length=32)
    description: str = Field(default="", max_length=5000)
    spots: list[Spot] | None = Field(default=None, min_length=1)
    slots_total: int | None = Field(default=None, ge=1)
    notify_comedians: bool = False

    @model_validator(mode="after")
    def require_capacity(self) -> GigCreate:
        if self.spots is None and self.slots_total is None:
            raise ValueError("Either spots or slots_total is required")
        return self


class GigUpdate(BaseModel):
    venue: str | None = Field(default=None, min_length=1, max_length=255)
    date: str | None = Field(default=None, pattern=ISO_DATE)
    time: str | None = Field(default=None, min_length=1, max_length=32)
    description: str | None = Field(default=None, max_length=5000)
    status: GigStatus | None = None
    spots: list[Spot] | None = Field(default=None, min_length=1)
    slots_total: int | None = Field(default=None, ge=1)


class GigResponse(BaseModel):
    id: UUID
    venue: str
    date: str
    time: str
    description: str
    status: GigStatus
    spots: list[Spot] | None = None
    slots_total: int | None = None
    lineup: list[LineupEntry] = Field(default_factory=list)
    created_by: str | None = None
    updated_by: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def capacity(self) -> int:
        return capacity(self.spots, self.slots_total)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def slots_available(self) -> int:
        return max(self.capacity - len(self.lineup), 0)


class GigFilters(BaseModel):
    """Bind to a FastAPI route via Depends(GigFilters)."""

    show_past: bool = False
    status: GigStatus | None = None


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    gig_id: UUID
    requested_spot_type: str = Field(default="", max_length=64)
    message: str = Field(default="", max_length=1000)


class BookingResponse(BaseModel):
    id: UUID
    gig_id: UUID
    comedian_id: str
    comedian_email: str
    comedian_name: str
    requested_spot_type: str
    message: str = ""
    status: BookingStatus
    assigned_spot_index: int | None = None
    rejection_reason: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    removed_by: str | None = None
    removed_at: datetime | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class BookingWithGig(BookingResponse):
    gig: GigResponse | None = None


class MyGig(BaseModel):
    booking: BookingResponse
    gig: GigResponse | None = None


class MyBookings(BaseModel):
    approved: list[MyGig]
    pending: list[MyGig]
    rejected: list[MyGig]
    total: int


class BookingFilters(BaseModel):
    """Bind to a FastAPI route via Depends(BookingFilters)."""

    status: BookingStatus | None = None
    gig_id: UUID | None = None


class BookingAction(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class ApproveBooking(BaseModel):
    action: Literal[BookingAction.APPROVE]
    notify: bool = True


class RejectBooking(BaseModel):
    action: Literal[BookingAction.REJECT]
    reason: str = Field(default="", max_length=1000)


BookingDecision = Annotated[ApproveBooking | RejectBooking, Field(discriminator="action")]


class BookingDecisionResponse(BaseModel):
    booking: BookingResponse
    notification_type: str | None = None
    notification_sent: bool = False


# ---------------------------------------------------------------------------
# Lineup actions
# ---------------------------------------------------------------------------


class LineupAction(StrEnum):
    REORDER = "reorder"
    REMOVE = "remove"


class ReorderLineup(BaseModel):
    action: Literal[LineupAction.REORDER]
    lineup: list[LineupEntry]
    notify_comedians: bool = False


class RemoveFromLineup(BaseModel):
    action: Literal[LineupAction.REMOVE]
    comedian_id: str = Field(min_length=1)


LineupUpdate = Annotated[ReorderLineup | RemoveFromLineup, Field(discriminator="action")]


class LineupResponse(BaseModel):
    gig_id: UUID
    lineup: list[LineupEntry]
    removed_bookings: int = 0
    notification_sent: bool = False


# ---------------------------------------------------------------------------
# Admin auth
# ---------------------------------------------------------------------------


class AdminAuthAction(StrEnum):
    LOGIN = "login"
    VERIFY = "verify"
    HASH = "hash"


class AdminLogin(BaseModel):
    action: Literal[AdminAuthAction.LOGIN]
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AdminVerify(BaseModel):
    action: Literal[AdminAuthAction.VERIFY]
    token: str = Field(min_length=1)


class AdminHash(BaseModel):
    action: Literal[AdminAuthAction.HASH]
    password: str = Field(min_length=1)


AdminAuthRequest = Annotated[
    AdminLogin | AdminVerify | AdminHash, Field(discriminator="action")
]


class AdminLoginResponse(BaseModel):
    token: str
    email: str
    expires_in: int


class AdminVerifyResponse(BaseModel):
    email: str
    is_admin: bool


class AdminHashResponse(BaseModel):
    hash: str
    salt: str
    message: str = "Set this as ADMIN_PASSWORD_HASH in your environment variables"


class AdminCheckResponse(BaseModel):
    is_admin: bool
    email: str | None
    method: str
    reason: str | None = None


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class ComedianProfile(BaseModel):
    id: str
    email: str
    name: str = ""
    phone: str = ""
    bio: str = ""
    is_new_user: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=64)
    bio: str | None = Field(default=None, max_length=5000)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationType(StrEnum):
    NEW_GIG = "new_gig"
    BOOKING_APPROVED = "booking_approved"
    LINEUP_UPDATED = "lineup_updated"
    GIG_REMINDER = "gig_reminder"


class NotificationRequest(BaseModel):
    type: NotificationType
    gig_id: UUID | None = None
    booking_id: UUID | None = None

    @model_validator(mode="after")
    def require_target(self) -> NotificationRequest:
        if self.type == NotificationType.BOOKING_APPROVED:
            if self.booking_id is None:
                raise ValueError("booking_id is required for booking_approved")
        elif self.gig_id is None:
            raise ValueError(f"gig_id is required for {self.type}")
        return self


class NotificationResult(BaseModel):
    type: NotificationType
    emails_sent: int
