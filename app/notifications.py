"""
Email notifications: HTML templates plus dispatch by notification type.

Every interpolated value is HTML-escaped; venue names and descriptions are
admin input and comedian names come from the identity provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from html import escape
from uuid import UUID

from loguru import logger

from app import settings
from app.crud import booking_crud, comedian_crud, gig_crud
from app.deps import NotifierClient
from app.errors import NotFound
from app.schemas import BookingResponse, GigResponse, LineupEntry, NotificationType


@dataclass(frozen=True)
class Email:
    subject: str
    html: str


def format_date(iso_date: str) -> str:
    """'2026-03-14' -> 'Saturday, 14 March 2026'. Unparseable input is returned as-is."""
    try:
        d = date.fromisoformat(iso_date)
    except ValueError:
        return iso_date
    return f"{d:%A}, {d.day} {d:%B %Y}"


def _card(gig: GigResponse, *rows: str) -> str:
    details = (
        f"<p><strong>Details:</strong> {escape(gig.description)}</p>"
        if gig.description
        else ""
    )
    return (
        '<div style="background: #1a1a1a; padding: 20px; border-radius: 10px; color: #fff;">'
        f'<h2 style="color: #ff00ff;">{escape(gig.venue)}</h2>'
        f"<p><strong>Date:</strong> {format_date(gig.date)}</p>"
        f"<p><strong>Time:</strong> {escape(gig.time)}</p>"
        f"{''.join(rows)}{details}</div>"
    )


def _layout(heading: str, colour: str, body: str, cta: str | None = None) -> str:
    button = (
        f'<p style="margin-top: 20px;"><a href="{escape(settings.site_url)}/portal" '
        'style="background: #00ffff; color: #000; padding: 15px 30px; '
        f'text-decoration: none; border-radius: 5px; font-weight: bold;">{cta}</a></p>'
        if cta
        else ""
    )
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h1 style="color: {colour};">{heading}</h1>{body}{button}</div>'
    )


def new_gig_email(gig: GigResponse) -> Email:
    return Email(
        subject=f"New Gig Posted: {gig.venue} - {format_date(gig.date)}",
        html=_layout(
            "New Gig Available!",
            "#00ffff",
            _card(gig, f"<p><strong>Slots Available:</strong> {gig.slots_available}</p>"),
            cta="Request Your Spot",
        ),
    )


def booking_approved_email(booking: BookingResponse, gig: GigResponse) -> Email:
    return Email(
        subject=f"You're Booked: {gig.venue} - {format_date(gig.date)}",
        html=_layout(
            "Booking Confirmed!",
            "#00ff00",
            f"<p>Great news, {escape(booking.comedian_name)}! Your spot has been approved.</p>"
            + _card(gig),
            cta="View My Gigs",
        ),
    )


def lineup_updated_email(entry: LineupEntry, gig: GigResponse) -> Email:
    return Email(
        subject=f"Lineup Updated: {gig.venue} - {format_date(gig.date)}",
        html=_layout(
            "Lineup Update",
            "#00ffff",
            f"<p>Hi {escape(entry.name)}, the running order for your upcoming gig "
            "has been updated.</p>"
            + _card(gig, f"<p><strong>Your Position:</strong> #{entry.order}</p>"),
            cta="View Full Lineup",
        ),
    )


def gig_reminder_email(entry: LineupEntry, gig: GigResponse) -> Email:
    return Email(
        subject=f"Reminder: Tomorrow - {gig.venue}",
        html=_layout(
            "Gig Tomorrow!",
            "#ffff00",
            f"<p>Hi {escape(entry.name)}, just a friendly reminder about your gig tomorrow.</p>"
            + _card(gig, f"<p><strong>Your Position:</strong> #{entry.order}</p>")
            + "<p>Break a leg!</p>",
        ),
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def _require_gig(gig_id: UUID | None) -> GigResponse:
    gig = await gig_crud.get_gig(gig_id) if gig_id else None
    if gig is None:
        raise NotFound("Gig not found")
    return gig


async def notify_new_gig(notifier: NotifierClient, gig: GigResponse) -> int:
    emails = await comedian_crud.list_emails()
    if not emails:
        logger.info("No comedians to notify about gig {}", gig.id)
        return 0
    email = new_gig_email(gig)
    await notifier.send(emails, email.subject, email.html)
    return len(emails)


async def notify_booking_approved(
    notifier: NotifierClient, booking: BookingResponse, gig: GigResponse
) -> int:
    email = booking_approved_email(booking, gig)
    await notifier.send(booking.comedian_email, email.subject, email.html)
    return 1


async def notify_lineup(
    notifier: NotifierClient, gig: GigResponse, kind: NotificationType
) -> int:
    """One message per lineup entry, either a lineup update or a reminder."""
    build = gig_reminder_email if kind == NotificationType.GIG_REMINDER else lineup_updated_email
    sent = 0
    for entry in gig.lineup:
        if not entry.email:
            logger.warning("Lineup entry {} on gig {} has no email", entry.comedian_id, gig.id)
            continue
        email = build(entry, gig)
        await notifier.send(entry.email, email.subject, email.html)
        sent += 1
    return sent


async def dispatch(
    notifier: NotifierClient,
    kind: NotificationType,
    gig_id: UUID | None = None,
    booking_id: UUID | None = None,
) -> int:
    """Send the notification ``kind`` and return how many emails went out."""
    logger.info("Notification {} requested (gig={}, booking={})", kind, gig_id, booking_id)
    match kind:
        case NotificationType.NEW_GIG:
            return await notify_new_gig(notifier, await _require_gig(gig_id))
        case NotificationType.BOOKING_APPROVED:
            booking = await booking_crud.get_booking(booking_id) if booking_id else None
            if booking is None:
                raise NotFound("Booking not found")
            gig = await _require_gig(booking.gig_id)
            return await notify_booking_approved(notifier, booking, gig)
        case NotificationType.LINEUP_UPDATED | NotificationType.GIG_REMINDER:
            return await notify_lineup(notifier, await _require_gig(gig_id), kind)
