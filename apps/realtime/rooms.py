"""Room naming for the realtime gateway."""


def room_for_user(user_id) -> str:
    return f"user:{user_id}"


def room_for_mess(mess_id) -> str:
    return f"mess:{mess_id}"


def room_for_request_status(user_id) -> str:
    return f"request-status:{user_id}"
