import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ...core.container import ApplicationContainer
from ...domain.exceptions import MarketplaceError, TokenExpiredError, TokenInvalidError
from ...domain.models import Identity
from ...services.notification_dispatcher import chat_message_payload
from ..api.errors import error_body, status_for
from ..api.middleware import resolve_identity
from ..api.schemas.chat import ChatSocketFrame

router = APIRouter()

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


@router.websocket("/ws/chat")
async def websocket_chat(websocket: WebSocket) -> None:
    container: ApplicationContainer = getattr(websocket.app.state, "container", None)  # type: ignore[attr-defined]
    if not container:
        logger.error("Application container not initialised for websocket connection.")
        await websocket.close(code=1011)
        return

    manager = container.chat_connections
    identity = _authenticate(container, websocket.query_params.get("token"))
    connection_id = await manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            if identity is None:
                await _send_error(websocket, "Authentication required", 401)
                await websocket.close(code=POLICY_VIOLATION)
                break

            try:
                frame = ChatSocketFrame.model_validate_json(raw)
            except ValidationError as exc:
                await _send_error(websocket, _describe(exc), 400)
                continue

            try:
                await _dispatch(container, connection_id, identity, frame, websocket)
            except MarketplaceError as exc:
                await _send_error(websocket, exc.message, status_for(exc))
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Unexpected WebSocket error")
    finally:
        await manager.disconnect(connection_id)


def _authenticate(container: ApplicationContainer, token: Optional[str]) -> Optional[Identity]:
    # An unauthenticated handshake is accepted; frames are rejected later.
    if not token:
        return None
    try:
        return resolve_identity(token, container.token_service, container.persistence)
    except (TokenExpiredError, TokenInvalidError) as exc:
        logger.info("WebSocket handshake with unusable token: %s", exc.message)
        return None


async def _dispatch(
    container: ApplicationContainer,
    connection_id: str,
    identity: Identity,
    frame: ChatSocketFrame,
    websocket: WebSocket,
) -> None:
    if frame.type == "subscribe":
        await container.chat_connections.register(connection_id, identity.user_id)
        await websocket.send_json({"type": "subscribed", "data": {"userId": identity.user_id}})
        return

    if frame.conversation_id is None:
        await _send_error(websocket, "conversationId is required", 400)
        return

    if frame.type == "chat.sendMessage":
        message = container.chat_service.send_message(identity, frame.conversation_id, frame.content or "")
        await websocket.send_json({"type": "reply", "data": chat_message_payload(message)})
    else:
        updated = container.chat_service.mark_conversation_as_read(identity, frame.conversation_id)
        await websocket.send_json(
            {"type": "read", "data": {"conversationId": frame.conversation_id, "markedRead": updated}}
        )


async def _send_error(websocket: WebSocket, message: str, status_code: int) -> None:
    payload: Dict[str, Any] = {"type": "error", "data": error_body(message, status_code)}
    await websocket.send_json(payload)


def _describe(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid frame"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = f"{location}: {first['msg']}" if location else first["msg"]
    return f"Invalid frame ({detail})"
