from typing import List

from fastapi import APIRouter, Depends

from ..auth import get_current_actor
from ..authorization import Actor
from ..dependencies import get_notification_service
from ..models import NotificationPublic
from ..notifications import NotificationService


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationPublic])
async def list_notifications(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_notifications(actor.id)


@router.get("/unread", response_model=List[NotificationPublic])
async def list_unread_notifications(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_unread(actor.id)


@router.put("/read-all", response_model=dict)
async def mark_all_notifications_read(
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    count = await service.mark_all_as_read(actor.id)
    return {"message": "All notifications marked as read", "count": count}


@router.put("/{notification_id}/read", response_model=NotificationPublic)
async def mark_notification_read(
    notification_id: int,
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_as_read(notification_id, actor.id)


@router.delete("/{notification_id}", response_model=dict)
async def delete_notification(
    notification_id: int,
    actor: Actor = Depends(get_current_actor),
    service: NotificationService = Depends(get_notification_service),
):
    await service.delete_notification(notification_id, actor.id)
    return {"message": "Notification deleted successfully"}
