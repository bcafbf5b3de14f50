"""Community feed websocket: pushes newPost / postUpdated / postDeleted events."""

from typing import Optional

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.application.services.community_service import ensure_can_view, resolve_community
from app.core.exceptions import AppError
from app.infrastructure.database import SessionLocal
from app.infrastructure.realtime import community_channel, hub
from app.infrastructure.repositories.community_repository import SQLAlchemyCommunityRepository
from app.interfaces.api.deps import user_from_token

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["Realtime"])


def _authorize(community_id: str, token: str) -> int:
    """Check the token and access rights, returning the community id to subscribe to."""
    db = SessionLocal()
    try:
        user = user_from_token(db, token)
        community = resolve_community(SQLAlchemyCommunityRepository(db), community_id)
        ensure_can_view(community, user)
        return community.id
    finally:
        db.close()


@router.websocket("/ws/communities/{community_id}")
async def community_feed(websocket: WebSocket, community_id: str, token: Optional[str] = Query(None)):
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        resolved_id = _authorize(community_id, token)
    except AppError as e:
        logger.info("Websocket subscription refused", community=community_id, reason=e.message)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    channel = community_channel(resolved_id)
    await hub.connect(channel, websocket)
    try:
        while True:
            # Clients only listen; anything they send is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(channel, websocket)
