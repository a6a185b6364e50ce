"""In-memory room store with one lock per room.

Rooms are created lazily by the first join and evicted by a periodic sweep
once nobody is left in them. Creation happens without an await between the
lookup and the insert, so concurrent resolvers of the same id always get the
same room. A resolver registers itself on the room before waiting for the
lock; the sweep leaves such rooms alone.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from syncroom.errors import RoomNotFound
from syncroom.models.room import Room
from syncroom.protocol import Outcome
from syncroom.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)


class _Slot:
    __slots__ = ("room", "lock", "pending")

    def __init__(self, room: Room):
        self.room = room
        self.lock = asyncio.Lock()
        self.pending = 0  # resolvers waiting for the lock


class RoomRegistry:
    def __init__(self, broadcaster: Broadcaster, clock: Callable[[], float] = time.time):
        self.broadcaster = broadcaster
        self.clock = clock
        self._slots: Dict[str, _Slot] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._slots

    def get(self, room_id: str) -> Optional[Room]:
        slot = self._slots.get(room_id)
        return slot.room if slot else None

    def _resolve(self, room_id: str, create: bool) -> _Slot:
        slot = self._slots.get(room_id)
        if slot is None:
            if not create:
                raise RoomNotFound()
            slot = self._slots[room_id] = _Slot(Room(id=room_id, created_at=self.clock()))
            logger.info(f"Created room {room_id}")
        return slot

    @asynccontextmanager
    async def acquire(self, room_id: str, create: bool = False) -> AsyncIterator[Room]:
        """Hold the room's lock for the body of the `async with` block."""
        slot = self._resolve(room_id, create)
        slot.pending += 1
        try:
            await slot.lock.acquire()
        finally:
            slot.pending -= 1
        try:
            yield slot.room
        finally:
            slot.lock.release()

    async def execute(self, room_id: str, operation: Callable[..., Outcome], *args, create: bool = False):
        """Run a room operation under the room's lock and queue its broadcasts."""
        async with self.acquire(room_id, create) as room:
            outcome = operation(room, *args, now=self.clock())
            self.broadcaster.publish(room, outcome.notifications)
        return outcome.result

    async def sweep(self) -> List[str]:
        evicted = []
        for room_id, slot in list(self._slots.items()):
            if slot.pending or slot.room.members:
                continue
            async with slot.lock:
                if slot.pending or slot.room.members or self._slots.get(room_id) is not slot:
                    continue
                del self._slots[room_id]
                self.broadcaster.discard(room_id)
                evicted.append(room_id)
        if evicted:
            logger.info(f"Evicted {len(evicted)} empty room(s): {', '.join(evicted)}")
        return evicted

    async def run_sweeper(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Room sweep failed: {e}", exc_info=True)

    def start_sweeper(self, interval: float) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self.run_sweeper(interval))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
