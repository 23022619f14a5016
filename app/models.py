from enum import StrEnum

from tortoise import fields
from tortoise.models import Model


class GigStatus(StrEnum):
    OPEN = "open"
    FULL = "full"
    COMPLETED = "completed"


class BookingStatus(StrEnum):
    PENDING = "pending"  # comedian asked, awaiting an admin decision
    APPROVED = "approved"  # comedian is on the lineup
    REJECTED = "rejected"  # admin declined the request
    REMOVED = "removed"  # admin took the comedian off the lineup after approval


class Gig(Model):
    id = fields.UUIDField(primary_key=True)

    venue = fields.CharField(max_length=255)
    date = fields.CharField(max_length=10)  # ISO YYYY-MM-DD, sorts lexically
    time = fields.CharField(max_length=32)
    description = fields.TextField(default="")
    status = fields.CharEnumField(GigStatus, default=GigStatus.OPEN)

    # [{"kind": "host"} | {"kind": "timed", "minutes": n}]; null on legacy gigs
    spots = fields.JSONField(null=True)
    slots_total = fields.IntField(null=True)
    lineup = fields.JSONField(default=list)

    created_by = fields.CharField(max_length=255, null=True)
    updated_by = fields.CharField(max_length=255, null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "gigs"
        ordering = ["date"]


class Booking(Model):
    id = fields.UUIDField(primary_key=True)

    gig_id = fields.UUIDField(db_index=True)
    comedian_id = fields.CharField(max_length=255, db_index=True)
    comedian_email = fields.CharField(max_length=255)  # snapshot from the identity claim
    comedian_name = fields.CharField(max_length=255)

    requested_spot_type = fields.CharField(max_length=64, default="")
    message = fields.TextField(default="")

    status = fields.CharEnumField(BookingStatus, default=BookingStatus.PENDING)
    assigned_spot_index = fields.IntField(null=True)
    rejection_reason = fields.TextField(null=True)

    approved_by = fields.CharField(max_length=255, null=True)
    approved_at = fields.DatetimeField(null=True)
    rejected_by = fields.CharField(max_length=255, null=True)
    rejected_at = fields.DatetimeField(null=True)
    removed_by = fields.CharField(max_length=255, null=True)
    removed_at = fields.DatetimeField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        table = "bookings"
        ordering = ["-created_at"]


class Comedian(Model):
    id = fields.CharField(max_length=255, primary_key=True)  # identity subject id

    email = fields.CharField(max_length=255)
    name = fields.CharField(max_length=255, default="")
    phone = fields.CharField(max_length=64, default="")
    bio = fields.TextField(default="")

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "comedians"
        ordering = ["name"]
