"""Room state operations.

These are the only functions allowed to mutate a Room. Each one checks
everything it needs before writing, so a raised SyncError always leaves the
room exactly as it was. Callers (the registry) hold the room's lock and pass
in `now`; the returned Outcome carries the ack value and the notifications
to broadcast.
"""
import logging
from datetime import datetime, timezone
from typing import List

from syncroom import protocol
from syncroom.config import settings
from syncroom.errors import EmptyPlaylist, InvalidRequest, NotHost, NotMember
from syncroom.models.room import ChatMessage, PlaybackStatus, Room, Song
from syncroom.protocol import Notification, Outcome, dump
from syncroom.services import election
from syncroom.services.clock import anchor_for, elapsed

logger = logging.getLogger(__name__)

NEXT = 1
PREV = -1


def snapshot(room: Room, now: float) -> dict:
    return {
        "roomId": room.id,
        "playlist": [dump(s) for s in room.playlist],
        "currentSong": dump(room.current_song) if room.current_song else None,
        "currentIndex": room.current_index,
        "playbackStatus": room.status.value,
        "currentTime": elapsed(room, now),
        "users": room.usernames,
        "members": [{"id": sid, "username": name} for sid, name in room.members.items()],
        "hostId": room.host_id,
        "serverTime": now,
        "sync": settings.sync_policy,
    }


def _members_changed(room: Room) -> Notification:
    return Notification(protocol.MEMBERS_CHANGED, room.usernames)


def _host_changed(room: Room) -> Notification:
    return Notification(protocol.HOST_CHANGED, room.host_id)


def _playlist_updated(room: Room) -> Notification:
    return Notification(protocol.PLAYLIST_UPDATED, [dump(s) for s in room.playlist])


def _song_changed(room: Room, current_time: float) -> Notification:
    return Notification(protocol.SONG_CHANGED, {
        "song": dump(room.current_song),
        "currentTime": current_time,
        "playbackStatus": room.status.value,
    })


def _append(room: Room, song: Song) -> bool:
    if room.find_song(song.id) != -1:
        return False
    room.playlist.append(song)
    return True


def join(room: Room, username: str, sid: str, now: float) -> Outcome:
    notifications = []
    if sid not in room.members:
        room.members[sid] = username
        notifications.append(Notification(protocol.USER_JOINED, username, exclude=sid))
        logger.info(f"User {username} ({sid}) joined room {room.id}")
    notifications.append(_members_changed(room))

    if election.ensure_host(room, sid):
        notifications.append(_host_changed(room))

    return Outcome(snapshot(room, now), notifications)


def leave(room: Room, sid: str, now: float) -> Outcome:
    username = room.members.pop(sid, None)
    if username is None:
        return Outcome()
    logger.info(f"User {username} ({sid}) left room {room.id}")

    notifications = [
        Notification(protocol.USER_LEFT, username),
        _members_changed(room),
    ]
    if room.host_id == sid:
        election.reelect(room, now)
        notifications.append(_host_changed(room))
    return Outcome(None, notifications)


def request_snapshot(room: Room, now: float) -> Outcome:
    return Outcome(snapshot(room, now))


def play(room: Room, song: Song, start_offset: float, sid: str, now: float) -> Outcome:
    """Start `song` at `start_offset`; whoever plays becomes the host."""
    if sid not in room.members:
        raise NotMember()

    notifications = []
    if _append(room, song):
        notifications.append(_playlist_updated(room))

    room.current_index = room.find_song(song.id)
    room.current_song = room.playlist[room.current_index]
    room.status = PlaybackStatus.PLAYING
    room.stored_elapsed = start_offset
    room.clock_anchor = anchor_for(now, start_offset)
    notifications.append(_song_changed(room, start_offset))

    if room.host_id != sid:
        room.host_id = sid
        notifications.append(_host_changed(room))
    return Outcome(None, notifications)


def update_playback(room: Room, status: PlaybackStatus, current_time: float, sid: str, now: float) -> Outcome:
    if room.host_id != sid:
        raise NotHost()
    if status == PlaybackStatus.PLAYING and room.current_song is None:
        raise InvalidRequest("Nothing to play")

    room.status = status
    if status == PlaybackStatus.PLAYING:
        room.clock_anchor = anchor_for(now, current_time)
    else:
        room.stored_elapsed = current_time
        room.clock_anchor = None

    # The host already holds this position locally
    return Outcome(None, [Notification(protocol.PLAYBACK_UPDATE, {
        "status": status.value,
        "currentTime": current_time,
    }, exclude=sid)])


def advance(room: Room, direction: int, sid: str, now: float) -> Outcome:
    if room.host_id != sid:
        raise NotHost()
    if not room.playlist:
        raise EmptyPlaylist()

    size = len(room.playlist)
    if room.current_index is None:
        room.current_index = 0 if direction == NEXT else size - 1
    else:
        room.current_index = (room.current_index + direction) % size
    room.current_song = room.playlist[room.current_index]
    room.status = PlaybackStatus.PLAYING
    room.stored_elapsed = 0.0
    room.clock_anchor = anchor_for(now, 0.0)
    return Outcome(None, [_song_changed(room, 0.0)])


def add_song(room: Room, song: Song, now: float) -> Outcome:
    if not _append(room, song):
        return Outcome()
    return Outcome(None, [_playlist_updated(room)])


def send_chat(room: Room, message: ChatMessage, now: float, capacity: int = None) -> Outcome:
    if capacity is None:
        capacity = settings.chat_capacity
    if message.time is None:
        message = message.model_copy(update={"time": datetime.fromtimestamp(now, tz=timezone.utc)})
    room.chat_log.append(message)
    if len(room.chat_log) > capacity:
        del room.chat_log[:len(room.chat_log) - capacity]
    return Outcome(None, [Notification(protocol.NEW_CHAT, dump(message))])


def chat_history(room: Room, now: float) -> Outcome:
    history: List[dict] = [dump(m) for m in room.chat_log]
    return Outcome(history)
