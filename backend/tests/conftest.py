import pytest

from syncroom.gateway import Gateway
from syncroom.models.room import Room, Song
from syncroom.services.broadcaster import Broadcaster
from syncroom.services.registry import RoomRegistry


class ManualClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Stands in for socketio.AsyncServer.emit."""

    def __init__(self):
        self.sent = []
        self.unreachable = set()

    async def emit(self, event, data=None, to=None):
        if to in self.unreachable:
            raise ConnectionError(f"{to} is gone")
        self.sent.append((event, data, to))

    def received(self, sid, event=None):
        return [(e, d) for e, d, to in self.sent if to == sid and (event is None or e == event)]


class FakeSio:
    def __init__(self):
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
async def broadcaster(transport):
    b = Broadcaster(transport.emit)
    yield b
    await b.close()


@pytest.fixture
def registry(broadcaster, clock):
    return RoomRegistry(broadcaster, clock=clock)


@pytest.fixture
def sio(registry):
    fake = FakeSio()
    Gateway(registry).attach(fake)
    return fake


@pytest.fixture
def room():
    return Room(id="lobby", created_at=0.0)


@pytest.fixture
def make_song():
    def factory(song_id: str, name: str = None) -> Song:
        return Song(
            id=song_id,
            name=name or f"Song {song_id}",
            artist="Someone",
            stream_urls=[f"https://cdn.example/{song_id}.mp4"],
            duration=180,
        )
    return factory
