from fastapi import APIRouter, Depends

from app import notifications
from app.deps import NotifierClient, get_notifier, require_admin
from app.schemas import NotificationRequest, NotificationResult

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(require_admin)],
)


@router.post("/", response_model=NotificationResult)
async def send_notification(
    payload: NotificationRequest,
    notifier: NotifierClient = Depends(get_notifier),
) -> NotificationResult:
    """Admin-triggered email; notifier failures surface as 502."""
    sent = await notifications.dispatch(
        notifier,
        payload.type,
        gig_id=payload.gig_id,
        booking_id=payload.booking_id,
    )
    return NotificationResult(type=payload.type, emails_sent=sent)
