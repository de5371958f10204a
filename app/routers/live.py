"""
WebSocket streams that keep complaint lists, threads and notifications current.

Each stream sends a full snapshot on connect, then reacts to committed row
changes. When no change arrives for ``LIVE_FALLBACK_POLL_SECONDS`` the stream
reloads and re-sends its snapshot, which bounds staleness if a change
notification was ever missed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from app.core.auth import resolve_principal
from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.core.exceptions import NotFoundError, PermissionDeniedError
from app.models.profile import Profile, ProfileRole
from app.schemas.complaint import ComplaintResponse
from app.schemas.notification import NotificationList
from app.services.complaint_service import get_complaint_service
from app.services.message_service import get_message_service
from app.services.notification_service import get_notification_service, badge_label
from app.services.realtime import ChangeEvent, LiveView, RowChange, Subscription, get_change_broker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live", tags=["Live Updates"])


async def _authenticate(token: Optional[str]) -> Optional[Profile]:
    if not token:
        return None
    async with AsyncSessionLocal() as session:
        try:
            return await resolve_principal(token, session)
        except HTTPException:
            return None


async def _reject(websocket: WebSocket) -> None:
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)


async def _stream(
    websocket: WebSocket,
    subscription: Subscription,
    initial: Callable[[], Awaitable[None]],
    on_change: Callable[[RowChange], Awaitable[None]],
    on_idle: Callable[[], Awaitable[None]],
) -> None:
    """Send the first snapshot, then dispatch changes until the client disconnects"""
    disconnect = None
    try:
        logger.debug("Live stream on %s opened", subscription.table)
        await initial()
        disconnect = asyncio.create_task(websocket.receive())
        while True:
            next_change = asyncio.create_task(subscription.get())
            done, _ = await asyncio.wait(
                {next_change, disconnect},
                timeout=settings.LIVE_FALLBACK_POLL_SECONDS,
                return_when=asyncio.FIRST_COMPLETED,
            )

            if disconnect in done and disconnect.result()["type"] == "websocket.disconnect":
                next_change.cancel()
                break

            if next_change in done:
                await on_change(next_change.result())
            else:
                next_change.cancel()
                if disconnect not in done:
                    await on_idle()

            # Anything else the client sends is ignored
            if disconnect in done:
                disconnect = asyncio.create_task(websocket.receive())
    except WebSocketDisconnect:
        pass
    finally:
        if disconnect is not None:
            disconnect.cancel()
        get_change_broker().unsubscribe(subscription)
        logger.debug("Live stream on %s closed", subscription.table)


@router.websocket("/complaints")
async def live_complaints(websocket: WebSocket, token: Optional[str] = Query(None)):
    """The caller's complaint list, re-sent whenever a visible complaint changes"""
    profile = await _authenticate(token)
    if profile is None:
        await _reject(websocket)
        return

    filters = {"student_id": profile.id} if profile.role == ProfileRole.STUDENT else None
    subscription = get_change_broker().subscribe("complaints", filters)
    await websocket.accept()

    async def send_snapshot() -> None:
        async with AsyncSessionLocal() as session:
            complaints = await get_complaint_service().list_complaints(profile, session)
        items = [ComplaintResponse.model_validate(c).model_dump(mode="json") for c in complaints]
        await websocket.send_json({"type": "snapshot", "items": items, "total": len(items)})

    async def on_change(change: RowChange) -> None:
        await send_snapshot()

    await _stream(websocket, subscription, send_snapshot, on_change, send_snapshot)


@router.websocket("/complaints/{complaint_id}/messages")
async def live_thread(
    websocket: WebSocket,
    complaint_id: UUID,
    token: Optional[str] = Query(None),
):
    """
    One complaint's thread: a snapshot, then one frame per message change.

    Frames: ``{"type": "snapshot", "items": [...]}`` and
    ``{"type": "insert" | "update" | "delete", "item": {...}}``.
    """
    profile = await _authenticate(token)
    if profile is None:
        await _reject(websocket)
        return

    broker = get_change_broker()
    service = get_message_service()
    view = LiveView(sort_key=lambda row: (row["created_at"], row["id"]))

    # Subscribe before loading so nothing committed in between is missed
    subscription = broker.subscribe("complaint_messages", {"complaint_id": complaint_id})

    async def reload() -> None:
        async with AsyncSessionLocal() as session:
            messages = await service.list_messages(profile, complaint_id, session)
        view.reset(m.model_dump(mode="json") for m in messages)

    try:
        await reload()
    except (NotFoundError, PermissionDeniedError):
        broker.unsubscribe(subscription)
        await _reject(websocket)
        return

    await websocket.accept()

    async def send_snapshot() -> None:
        await websocket.send_json({"type": "snapshot", "items": view.items()})

    async def on_change(change: RowChange) -> None:
        row = change.row
        event = change.event
        if event != ChangeEvent.DELETE:
            try:
                async with AsyncSessionLocal() as session:
                    message = await service.get_message_view(profile, UUID(row["id"]), session)
            except (NotFoundError, PermissionDeniedError):
                message = None
            if message is None:
                # Gone, or no longer visible: drop it from the thread
                event = ChangeEvent.DELETE
            else:
                row = message.model_dump(mode="json")
        if view.apply(event, row):
            await websocket.send_json({"type": event.value.lower(), "item": row})

    async def on_idle() -> None:
        try:
            await reload()
        except (NotFoundError, PermissionDeniedError):
            view.reset([])
        await send_snapshot()

    await _stream(websocket, subscription, send_snapshot, on_change, on_idle)


@router.websocket("/notifications")
async def live_notifications(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Unread notifications, reloaded in full on every message change"""
    profile = await _authenticate(token)
    if profile is None:
        await _reject(websocket)
        return

    subscription = get_change_broker().subscribe("complaint_messages")
    await websocket.accept()

    async def send_snapshot() -> None:
        async with AsyncSessionLocal() as session:
            items = await get_notification_service().unread_notifications(profile, session)
        payload = NotificationList(items=items, badge=badge_label(len(items)))
        await websocket.send_json({"type": "snapshot", **payload.model_dump(mode="json")})

    async def on_change(change: RowChange) -> None:
        await send_snapshot()

    await _stream(websocket, subscription, send_snapshot, on_change, send_snapshot)
