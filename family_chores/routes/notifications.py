from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..services import notification_svc
from .deps import current_user, ok

router = APIRouter()


class SettingsBody(BaseModel):
    email: bool | None = None
    push: bool | None = None
    sms: bool | None = None
    in_app: bool | None = None


class PushSubscriptionBody(BaseModel):
    subscription: dict | None = None


class PushEndpointBody(BaseModel):
    endpoint: str | None = None


@router.get("/api/notifications")
def api_list(page: int = 1, limit: int = 20, user: dict = Depends(current_user)):
    return ok(notification_svc.list_notifications(user["id"], page, limit))


@router.get("/api/notifications/unread")
def api_unread(user: dict = Depends(current_user)):
    return ok({"unreadCount": notification_svc.unread_count(user["id"])})


@router.patch("/api/notifications/read-all")
def api_read_all(user: dict = Depends(current_user)):
    n = notification_svc.mark_all_read(user["id"])
    return ok({"updated": n}, "All notifications marked as read")


@router.get("/api/notifications/settings")
def api_get_settings(user: dict = Depends(current_user)):
    return ok({"settings": notification_svc.get_user_settings(user["id"])})


@router.put("/api/notifications/settings")
def api_put_settings(body: SettingsBody, user: dict = Depends(current_user)):
    settings = notification_svc.update_user_settings(user["id"], body.dict())
    return ok({"settings": settings}, "Notification settings updated")


@router.post("/api/notifications/push-subscription")
def api_push_subscribe(body: PushSubscriptionBody, user: dict = Depends(current_user)):
    notification_svc.register_push(user["id"], body.subscription)
    return ok(message="Push subscription registered")


@router.delete("/api/notifications/push-subscription")
def api_push_unsubscribe(body: PushEndpointBody, user: dict = Depends(current_user)):
    notification_svc.unregister_push(user["id"], body.endpoint)
    return ok(message="Push subscription unregistered")


@router.patch("/api/notifications/{notification_id}/read")
def api_mark_read(notification_id: int, user: dict = Depends(current_user)):
    notification_svc.mark_read(user["id"], notification_id)
    return ok(message="Notification marked as read")


@router.delete("/api/notifications/{notification_id}")
def api_delete(notification_id: int, user: dict = Depends(current_user)):
    notification_svc.delete_notification(user["id"], notification_id)
    return ok(message="Notification deleted")


@router.delete("/api/notifications")
def api_delete_all(user: dict = Depends(current_user)):
    n = notification_svc.delete_all(user["id"])
    return ok({"deleted": n}, "All notifications deleted")
