"""Socket.IO gateway for mess membership updates.

Frontend convention:
- Socket.IO path: ``settings.SOCKETIO_PATH`` (default ``socket.io``)
- Auth: ``auth: { token }`` with a JWT access token (``?token=`` also accepted)

Every connection joins its personal room on connect. Mess rooms and the
request-status room are joined explicitly by the client.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import parse_qs
from uuid import UUID

import jwt
import socketio
from asgiref.sync import sync_to_async
from django.conf import settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import TokenError
from socketio.exceptions import ConnectionRefusedError

from apps.realtime.rooms import room_for_mess, room_for_request_status, room_for_user

logger = logging.getLogger(__name__)


sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=getattr(settings, "SOCKETIO_CORS_ALLOWED_ORIGINS", "*"),
    logger=False,
    engineio_logger=False,
)


@sync_to_async
def _get_user_id_from_access_token(token: str) -> str:
    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return str(user.id)


@sync_to_async
def _is_active_member(user_id: str, mess_id: str) -> bool:
    from apps.messes.models import MessMembership

    try:
        UUID(str(mess_id))
    except ValueError:
        return False

    return MessMembership.objects.filter(
        user_id=user_id,
        mess_id=mess_id,
        is_active=True,
    ).exists()


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract JWT token from the handshake ``auth`` payload or query string."""

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    return None


def _is_expired(token: str) -> bool:
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return False
    exp = claims.get("exp")
    return isinstance(exp, (int, float)) and exp < time.time()


def _extract_mess_id(data: Any) -> str | None:
    # Clients send either the bare id or ``{"messId": ...}``.
    if isinstance(data, dict):
        data = data.get("messId") or data.get("mess_id")
    if data is None:
        return None
    mess_id = str(data).strip()
    return mess_id or None


async def _session_user_id(sid: str) -> str | None:
    session = await sio.get_session(sid)
    return session.get("user_id") if isinstance(session, dict) else None


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = _extract_token(environ, auth)
    if not token:
        logger.warning("Socket %s refused: no token provided", sid)
        msg = "unauthorized"
        raise ConnectionRefusedError(msg)

    try:
        user_id = await _get_user_id_from_access_token(token)
    except (TokenError, AuthenticationFailed) as exc:
        logger.warning("Socket %s refused: %s", sid, exc)
        if _is_expired(token):
            msg = "jwt_expired"
            raise ConnectionRefusedError(msg) from exc
        msg = "unauthorized"
        raise ConnectionRefusedError(msg) from exc
    except Exception as exc:
        logger.exception("Socket.IO connect error")
        msg = "server_error"
        raise ConnectionRefusedError(msg) from exc

    await sio.save_session(sid, {"user_id": user_id})
    await sio.enter_room(sid, room_for_user(user_id))
    logger.info("Socket %s connected for user %s", sid, user_id)


@sio.event
async def disconnect(sid: str, *args):
    logger.debug("Socket %s disconnected", sid)


@sio.on("join-mess-room")
async def join_mess_room(sid: str, data: Any = None):
    user_id = await _session_user_id(sid)
    mess_id = _extract_mess_id(data)
    if user_id is None or mess_id is None:
        return {"ok": False, "error": "messId is required"}

    try:
        is_member = await _is_active_member(user_id, mess_id)
    except Exception:
        logger.exception("Membership check failed for user %s", user_id)
        return {"ok": False, "error": "server_error"}

    if not is_member:
        logger.warning("User %s tried to join room of mess %s without membership", user_id, mess_id)
        return {"ok": False, "error": "Not a member of this mess"}

    await sio.enter_room(sid, room_for_mess(mess_id))
    logger.info("User %s joined mess room %s", user_id, mess_id)
    return {"ok": True}


@sio.on("leave-mess-room")
async def leave_mess_room(sid: str, data: Any = None):
    mess_id = _extract_mess_id(data)
    if mess_id is None:
        return {"ok": False, "error": "messId is required"}

    await sio.leave_room(sid, room_for_mess(mess_id))
    return {"ok": True}


@sio.on("subscribe-request-status")
async def subscribe_request_status(sid: str, data: Any = None):
    user_id = await _session_user_id(sid)
    if user_id is None:
        return {"ok": False, "error": "unauthorized"}

    await sio.enter_room(sid, room_for_request_status(user_id))
    logger.info("User %s subscribed to request status updates", user_id)
    return {"ok": True}


@sio.on("unsubscribe-request-status")
async def unsubscribe_request_status(sid: str, data: Any = None):
    user_id = await _session_user_id(sid)
    if user_id is None:
        return {"ok": False, "error": "unauthorized"}

    await sio.leave_room(sid, room_for_request_status(user_id))
    return {"ok": True}


@sio.on("ping")
async def ping(sid: str, data: Any = None):
    await sio.emit("pong", {"timestamp": int(time.time() * 1000)}, to=sid)
