"""Realtime infrastructure (Socket.IO gateway and broadcasters).

The messes service layer never talks to Socket.IO directly: it is handed a
broadcaster exposing ``publish(room, event, payload)`` and the payload
builders in ``apps.realtime.events`` decide which rooms get what.
"""
