from syncroom.models.room import PlaybackStatus
from syncroom.services import election
from syncroom.services import room as room_service
from syncroom.services.clock import elapsed


def test_ensure_host_only_assigns_once(room):
    assert election.ensure_host(room, "a") is True
    assert election.ensure_host(room, "b") is False
    assert room.host_id == "a"


def test_reelect_picks_earliest_joined(room):
    for sid in ("a", "b", "c"):
        room_service.join(room, sid.upper(), sid, now=0.0)
    del room.members["a"]
    assert election.reelect(room, now=1.0) == "b"


def test_reelect_with_nobody_left_keeps_playback(room, make_song):
    room_service.join(room, "alice", "a", now=0.0)
    room_service.play(room, make_song("s1"), 0.0, "a", now=0.0)
    del room.members["a"]
    assert election.reelect(room, now=8.0) is None
    assert room.host_id is None
    assert room.status == PlaybackStatus.PLAYING


def test_host_disconnect_keeps_timeline_continuous(room, make_song):
    room_service.join(room, "alice", "a", now=100.0)
    room_service.join(room, "bob", "b", now=101.0)
    room_service.play(room, make_song("s1"), 2.0, "a", now=102.0)

    before = elapsed(room, 122.0)
    room_service.leave(room, "a", now=122.0)
    after = elapsed(room, 122.0)

    assert room.host_id == "b"
    assert room.status == PlaybackStatus.PLAYING
    assert abs(after - before) < 0.05
    assert after == 22.0


def test_promotion_while_paused_keeps_position(room, make_song):
    room_service.join(room, "alice", "a", now=0.0)
    room_service.join(room, "bob", "b", now=0.0)
    room_service.play(room, make_song("s1"), 0.0, "a", now=0.0)
    room_service.update_playback(room, PlaybackStatus.PAUSED, 14.0, "a", now=14.0)
    room_service.leave(room, "a", now=60.0)
    assert room.clock_anchor is None
    assert elapsed(room, 61.0) == 14.0
