import logging
from typing import Optional

from syncroom.models.room import PlaybackStatus, Room
from syncroom.services.clock import anchor_for, elapsed

logger = logging.getLogger(__name__)


def ensure_host(room: Room, candidate: str) -> bool:
    """Make `candidate` host if the room has none. Returns True if assigned."""
    if room.host_id is not None:
        return False
    room.host_id = candidate
    return True


def reelect(room: Room, now: float) -> Optional[str]:
    """Pick a new host after the current one left `room.members`.

    Returns the new host id, or None when nobody is left. Playback status is
    not touched for an empty room; the sweep takes care of it.
    """
    if not room.members:
        room.host_id = None
        return None

    position = elapsed(room, now)
    room.host_id = next(iter(room.members))
    if room.status == PlaybackStatus.PLAYING:
        room.stored_elapsed = position
        room.clock_anchor = anchor_for(now, position)

    logger.info(f"Promoted {room.host_id} to host of room {room.id} at {position:.2f}s")
    return room.host_id
