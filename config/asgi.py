"""
ASGI config for the Mess Manager project.

Socket.IO wraps the Django application: requests under ``SOCKETIO_PATH``
(long-polling and WebSocket upgrades) go to the realtime gateway, all
other traffic to Django.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

django_application = get_asgi_application()

from django.conf import settings  # noqa: E402
from socketio import ASGIApp  # noqa: E402

from apps.realtime.gateway import sio  # noqa: E402

application = ASGIApp(
    sio,
    other_asgi_app=django_application,
    socketio_path=settings.SOCKETIO_PATH,
)
