"""Failure taxonomy for room requests.

Every error here is local to the request that raised it: the room is left
untouched, nothing is broadcast, and the gateway turns the error into a
failure acknowledgment for the caller.
"""


class SyncError(Exception):
    code = "error"
    message = "Request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)

    def to_ack(self) -> dict:
        return {"success": False, "error": str(self), "code": self.code}


class InvalidRequest(SyncError):
    code = "invalid_request"
    message = "Invalid request"


class RoomNotFound(SyncError):
    code = "room_not_found"
    message = "Room not found"


class NotHost(SyncError):
    code = "not_host"
    message = "Only the host can do that"


class NotMember(SyncError):
    code = "not_member"
    message = "Join the room first"


class EmptyPlaylist(SyncError):
    code = "empty_playlist"
    message = "Playlist is empty"


class Disconnected(SyncError):
    code = "disconnected"
    message = "Connection closed before the request completed"


class CatalogError(Exception):
    """The song catalog could not be reached or answered with an error."""
