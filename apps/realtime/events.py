"""Payload builders and publishers for mess membership events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from django.utils import timezone

from apps.realtime.rooms import room_for_mess, room_for_request_status, room_for_user

if TYPE_CHECKING:  # import for type checking only
    from apps.messes.models import Mess
    from apps.realtime.broadcasters import Broadcaster

logger = logging.getLogger(__name__)


JOIN_REQUEST_UPDATE = 'join-request-update'
MESS_UPDATE = 'mess-update'

STATUS_MESSAGES = {
    'accepted': 'Your join request has been accepted!',
    'rejected': 'Your join request was rejected.',
    'pending': 'Your join request is pending approval.',
    'cancelled': 'Your join request was cancelled.',
    'removed': 'You have been removed from the mess.',
    'none': 'You have no join request.',
}


def get_status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, 'Request status updated.')


def build_mess_snapshot(mess: Optional[Mess]) -> Optional[dict[str, Any]]:
    if mess is None:
        return None
    return {
        'id': str(mess.id),
        'name': mess.name,
        'address': mess.address,
        'identifier_code': mess.identifier_code,
    }


def build_join_request_payload(status: str, mess: Optional[Mess] = None) -> dict[str, Any]:
    return {
        'status': status,
        'message': get_status_message(status),
        'timestamp': timezone.now().isoformat(),
        'mess': build_mess_snapshot(mess),
    }


def build_mess_update_payload(event_type: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        'type': event_type,
        'data': data,
        'timestamp': timezone.now().isoformat(),
    }


def _safe_publish(broadcaster: Broadcaster, room: str, event: str, payload: dict[str, Any]) -> None:
    try:
        broadcaster.publish(room, event, payload)
    except Exception:
        logger.exception("Broadcast of %s to %s failed", event, room)


def publish_join_request_update(
    broadcaster: Broadcaster,
    user_id,
    status: str,
    mess: Optional[Mess] = None,
) -> None:
    """
    Push a join request status change to one user.

    The same event goes to both the request-status room and the personal
    room; clients may subscribe to either.
    """
    payload = build_join_request_payload(status, mess)
    _safe_publish(broadcaster, room_for_request_status(user_id), JOIN_REQUEST_UPDATE, payload)
    _safe_publish(broadcaster, room_for_user(user_id), JOIN_REQUEST_UPDATE, payload)
    logger.info("Join request update %s sent to user %s", status, user_id)


def publish_mess_update(
    broadcaster: Broadcaster,
    mess_id,
    event_type: str,
    data: dict[str, Any],
) -> None:
    """Fan out a membership change to everyone in the mess room."""
    payload = build_mess_update_payload(event_type, data)
    _safe_publish(broadcaster, room_for_mess(mess_id), MESS_UPDATE, payload)
    logger.info("Mess update %s sent to mess %s", event_type, mess_id)
