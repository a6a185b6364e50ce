import logging
from typing import Awaitable, Callable, Dict

import socketio

from syncroom.errors import Disconnected, NotMember, RoomNotFound, SyncError
from syncroom.protocol import (
    ChatRequest,
    JoinRequest,
    PlaybackRequest,
    PlayRequest,
    RoomRequest,
    SongRequest,
    parse_request,
)
from syncroom.services import room as room_service
from syncroom.services.registry import RoomRegistry

logger = logging.getLogger(__name__)

Handler = Callable[[str, dict], Awaitable[dict]]


def _as_member(sid: str, operation):
    """Wrap a room operation so it only runs for a connection inside the room."""
    def guarded(room, *args, now):
        if sid not in room.members:
            raise NotMember()
        return operation(room, *args, now=now)
    return guarded


class Gateway:
    """
    Maps Socket.IO connections to room members and routes their requests.

    Every handler returns the acknowledgment sent back to the client's
    callback: {"success": True, ...} or {"success": False, "error": ...}.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        # Global mapping for SID -> Room ID to handle disconnects efficiently
        self.sid_room_map: Dict[str, str] = {}

    def attach(self, sio: socketio.AsyncServer) -> None:
        sio.on("connect", self.connect)
        sio.on("disconnect", self.disconnect)
        events = {
            "joinRoom": self.join_room,
            "leaveRoom": self.leave_room,
            "requestRoomState": self.request_room_state,
            "requestChat": self.request_chat,
            "sendChat": self.send_chat,
            "playSong": self.play_song,
            "updatePlayback": self.update_playback,
            "nextSong": self.next_song,
            "prevSong": self.prev_song,
            "addSong": self.add_song,
        }
        for event, handler in events.items():
            sio.on(event, self._acknowledged(event, handler))

    def _acknowledged(self, event: str, handler: Handler) -> Handler:
        async def wrapper(sid, data=None):
            try:
                return await handler(sid, data)
            except SyncError as e:
                logger.warning(f"{event} from {sid} rejected: {e}")
                return e.to_ack()
            except Exception as e:
                logger.error(f"Error in {event}: {e}", exc_info=True)
                return {"success": False, "error": "Internal server error", "code": "internal"}
        return wrapper

    async def connect(self, sid, environ, auth=None):
        logger.info(f"Client {sid} connected")

    async def disconnect(self, sid, reason=None):
        logger.info(f"Client {sid} disconnected")
        room_id = self.sid_room_map.pop(sid, None)
        if room_id:
            await self._leave(sid, room_id)

    async def _leave(self, sid: str, room_id: str) -> None:
        try:
            await self.registry.execute(room_id, room_service.leave, sid)
        except RoomNotFound:
            pass

    async def join_room(self, sid, data):
        req = parse_request(JoinRequest, data)
        previous = self.sid_room_map.get(sid)
        # Point at the target room before awaiting so a disconnect meanwhile cleans it up
        self.sid_room_map[sid] = req.room_id
        if previous and previous != req.room_id:
            await self._leave(sid, previous)
            if self.sid_room_map.get(sid) != req.room_id:
                raise Disconnected()
        state = await self.registry.execute(req.room_id, room_service.join, req.username, sid, create=True)
        return {"success": True, "roomState": state}

    async def leave_room(self, sid, data):
        req = parse_request(RoomRequest, data)
        if self.sid_room_map.get(sid) == req.room_id:
            del self.sid_room_map[sid]
        await self._leave(sid, req.room_id)
        return {"success": True}

    async def request_room_state(self, sid, data):
        req = parse_request(RoomRequest, data)
        state = await self.registry.execute(req.room_id, room_service.request_snapshot)
        return {"success": True, "roomState": state}

    async def request_chat(self, sid, data):
        req = parse_request(RoomRequest, data)
        try:
            history = await self.registry.execute(req.room_id, room_service.chat_history)
        except RoomNotFound:
            history = []
        return {"success": True, "history": history}

    async def send_chat(self, sid, data):
        req = parse_request(ChatRequest, data)
        await self.registry.execute(req.room_id, _as_member(sid, room_service.send_chat), req.message)
        return {"success": True}

    async def play_song(self, sid, data):
        req = parse_request(PlayRequest, data)
        await self.registry.execute(req.room_id, room_service.play, req.song, req.start_offset, sid)
        return {"success": True}

    async def update_playback(self, sid, data):
        req = parse_request(PlaybackRequest, data)
        await self.registry.execute(
            req.room_id, room_service.update_playback, req.status, req.current_time, sid
        )
        return {"success": True}

    async def next_song(self, sid, data):
        return await self._advance(sid, data, room_service.NEXT)

    async def prev_song(self, sid, data):
        return await self._advance(sid, data, room_service.PREV)

    async def _advance(self, sid, data, direction):
        req = parse_request(RoomRequest, data)
        await self.registry.execute(req.room_id, room_service.advance, direction, sid)
        return {"success": True}

    async def add_song(self, sid, data):
        req = parse_request(SongRequest, data)
        await self.registry.execute(req.room_id, _as_member(sid, room_service.add_song), req.song)
        return {"success": True}
