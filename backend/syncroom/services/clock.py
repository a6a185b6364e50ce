from syncroom.models.room import PlaybackStatus, Room


def elapsed(room: Room, now: float) -> float:
    """Seconds into the current song as seen at `now`."""
    if room.status == PlaybackStatus.PLAYING and room.clock_anchor is not None:
        return max(0.0, now - room.clock_anchor)
    return room.stored_elapsed


def anchor_for(now: float, target_elapsed: float) -> float:
    return now - target_elapsed
