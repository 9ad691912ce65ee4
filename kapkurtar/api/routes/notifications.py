"""
Notification routes: send, inbox and read receipts
"""
from uuid import UUID

from fastapi import APIRouter, Depends, status

from kapkurtar.errors import Forbidden
from kapkurtar.models.notification import Notification
from kapkurtar.models.profile import Role

from ..deps import ServiceContainer, get_principal_id, get_services
from ..schemas import NotificationRequest

router = APIRouter(tags=["notifications"])


@router.post("/notifications", status_code=status.HTTP_202_ACCEPTED)
async def notify(
    body: NotificationRequest,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """Best-effort push to a principal; delivery failures are not reported"""
    if await services.identity.resolve_role(principal_id) == Role.NONE:
        raise Forbidden("Sign in as a client or merchant to send notifications")

    await services.notifier.notify(body.principal_id, body.event_type, body.payload)
    return {"accepted": True}


@router.get("/notifications", response_model=list[Notification])
async def list_notifications(
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    """The caller's 50 newest notifications"""
    return await services.notifier.inbox(principal_id)


@router.post("/notifications/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: UUID,
    principal_id: UUID = Depends(get_principal_id),
    services: ServiceContainer = Depends(get_services),
):
    await services.notifier.mark_read(principal_id, notification_id)
