"""Tests for email templates and notification dispatch."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app import notifications
from app.errors import NotFound, UpstreamFailure
from app.schemas import NotificationType

from .factories import (
    BOOKING_ID,
    GIG_ID,
    booking_response,
    gig_response,
    lineup_entry,
    make_admin,
)


def _notifier() -> MagicMock:
    mock = MagicMock()
    mock.send = AsyncMock(return_value="id")
    return mock


def _lineup_gig():
    return gig_response(
        lineup=[
            lineup_entry("a", 1, spot_index=0),
            lineup_entry("b", 2, spot_index=1, email=""),
            lineup_entry("c", 3, spot_index=2),
        ]
    )


class TestTemplates:
    def test_format_date(self):
        assert notifications.format_date("2026-03-14") == "Saturday, 14 March 2026"

    def test_format_date_passes_through_garbage(self):
        assert notifications.format_date("soon") == "soon"

    def test_admin_input_is_escaped(self):
        gig = gig_response(venue="<script>x</script>", description="Tom & Jerry")
        email = notifications.new_gig_email(gig)
        assert "<script>" not in email.html
        assert "&lt;script&gt;" in email.html
        assert "Tom &amp; Jerry" in email.html

    def test_comedian_name_is_escaped(self):
        email = notifications.booking_approved_email(
            booking_response(comedian_name='<img src="x">'), gig_response()
        )
        assert "<img" not in email.html

    def test_lineup_email_shows_position(self):
        email = notifications.lineup_updated_email(lineup_entry("a", 3), gig_response())
        assert "#3" in email.html
        assert email.subject == "Lineup Updated: The Laugh Shack - Saturday, 20 June 2026"

    def test_reminder_subject(self):
        email = notifications.gig_reminder_email(lineup_entry("a", 1), gig_response())
        assert email.subject == "Reminder: Tomorrow - The Laugh Shack"


class TestNotifyLineup:
    def test_one_email_per_entry_with_address(self):
        notifier = _notifier()
        sent = asyncio.run(
            notifications.notify_lineup(
                notifier, _lineup_gig(), NotificationType.LINEUP_UPDATED
            )
        )
        assert sent == 2
        recipients = [c.args[0] for c in notifier.send.call_args_list]
        assert recipients == ["a@example.com", "c@example.com"]

    def test_reminder_kind_uses_reminder_template(self):
        notifier = _notifier()
        asyncio.run(
            notifications.notify_lineup(notifier, _lineup_gig(), NotificationType.GIG_REMINDER)
        )
        assert notifier.send.call_args.args[1].startswith("Reminder:")


class TestDispatch:
    def test_new_gig_goes_to_every_comedian(self):
        notifier = _notifier()
        with (
            patch("app.notifications.gig_crud") as gigs,
            patch("app.notifications.comedian_crud") as comedians,
        ):
            gigs.get_gig = AsyncMock(return_value=gig_response())
            comedians.list_emails = AsyncMock(return_value=["a@x.com", "b@x.com"])
            sent = asyncio.run(
                notifications.dispatch(notifier, NotificationType.NEW_GIG, gig_id=GIG_ID)
            )
        assert sent == 2
        notifier.send.assert_awaited_once()

    def test_new_gig_with_no_comedians(self):
        notifier = _notifier()
        with (
            patch("app.notifications.gig_crud") as gigs,
            patch("app.notifications.comedian_crud") as comedians,
        ):
            gigs.get_gig = AsyncMock(return_value=gig_response())
            comedians.list_emails = AsyncMock(return_value=[])
            sent = asyncio.run(
                notifications.dispatch(notifier, NotificationType.NEW_GIG, gig_id=GIG_ID)
            )
        assert sent == 0
        notifier.send.assert_not_awaited()

    def test_booking_approved(self):
        notifier = _notifier()
        with (
            patch("app.notifications.gig_crud") as gigs,
            patch("app.notifications.booking_crud") as bookings,
        ):
            bookings.get_booking = AsyncMock(return_value=booking_response())
            gigs.get_gig = AsyncMock(return_value=gig_response())
            sent = asyncio.run(
                notifications.dispatch(
                    notifier, NotificationType.BOOKING_APPROVED, booking_id=BOOKING_ID
                )
            )
        assert sent == 1
        assert notifier.send.call_args.args[0] == "jo@example.com"

    def test_missing_booking_raises_not_found(self):
        with patch("app.notifications.booking_crud") as bookings:
            bookings.get_booking = AsyncMock(return_value=None)
            with pytest.raises(NotFound):
                asyncio.run(
                    notifications.dispatch(
                        _notifier(), NotificationType.BOOKING_APPROVED, booking_id=uuid4()
                    )
                )

    def test_missing_gig_raises_not_found(self):
        with patch("app.notifications.gig_crud") as gigs:
            gigs.get_gig = AsyncMock(return_value=None)
            with pytest.raises(NotFound):
                asyncio.run(
                    notifications.dispatch(
                        _notifier(), NotificationType.GIG_REMINDER, gig_id=uuid4()
                    )
                )


# ---------------------------------------------------------------------------
# POST /notifications
# ---------------------------------------------------------------------------


class TestNotificationEndpoint:
    def test_lineup_updated(self, client_factory):
        notifier = _notifier()
        client = client_factory(admin=make_admin(), notifier=notifier)
        with patch("app.notifications.gig_crud") as gigs:
            gigs.get_gig = AsyncMock(return_value=_lineup_gig())
            resp = client.post(
                "/notifications/", json={"type": "lineup_updated", "gig_id": str(GIG_ID)}
            )
        assert resp.status_code == 200
        assert resp.json() == {"type": "lineup_updated", "emails_sent": 2}

    def test_missing_target_returns_422(self, admin_client):
        resp = admin_client.post("/notifications/", json={"type": "new_gig"})
        assert resp.status_code == 422

    def test_booking_approved_needs_booking_id(self, admin_client):
        resp = admin_client.post(
            "/notifications/", json={"type": "booking_approved", "gig_id": str(GIG_ID)}
        )
        assert resp.status_code == 422

    def test_notifier_failure_returns_502(self, client_factory):
        notifier = MagicMock()
        notifier.send = AsyncMock(side_effect=UpstreamFailure("Failed to send notification"))
        client = client_factory(admin=make_admin(), notifier=notifier)
        with patch("app.notifications.gig_crud") as gigs:
            gigs.get_gig = AsyncMock(return_value=_lineup_gig())
            resp = client.post(
                "/notifications/", json={"type": "gig_reminder", "gig_id": str(GIG_ID)}
            )
        assert resp.status_code == 502
        assert resp.json()["detail"] == "Failed to send notification"

    def test_requires_admin(self, anon_client):
        resp = anon_client.post(
            "/notifications/", json={"type": "new_gig", "gig_id": str(GIG_ID)}
        )
        assert resp.status_code == 401
