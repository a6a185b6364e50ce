import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Tuple

from syncroom.models.room import Room
from syncroom.protocol import Notification

logger = logging.getLogger(__name__)

Send = Callable[..., Awaitable[None]]


class Broadcaster:
    def __init__(self, send: Send):
        # send(event, data, to=sid), e.g. socketio.AsyncServer.emit
        self._send = send
        self._queues: Dict[str, asyncio.Queue] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    def publish(self, room: Room, notifications: Iterable[Notification]) -> None:
        for n in notifications:
            recipients = [sid for sid in room.members if sid != n.exclude]
            if recipients:
                self._queue_for(room.id).put_nowait((n, recipients))

    def _queue_for(self, room_id: str) -> asyncio.Queue:
        queue = self._queues.get(room_id)
        if queue is None:
            queue = self._queues[room_id] = asyncio.Queue()
            self._workers[room_id] = asyncio.create_task(self._run(room_id, queue))
        return queue

    async def _run(self, room_id: str, queue: asyncio.Queue) -> None:
        while True:
            notification, recipients = await queue.get()
            try:
                await self._deliver(room_id, notification, recipients)
            finally:
                queue.task_done()

    async def _deliver(self, room_id: str, notification: Notification, recipients: List[str]) -> None:
        for sid in recipients:
            try:
                await self._send(notification.event, notification.payload, to=sid)
            except Exception as e:
                logger.warning(f"Failed to deliver {notification.event} to {sid} in room {room_id}: {e}")

    async def flush(self, room_id: str = None) -> None:
        """Wait until queued notifications (of one room, or all) are delivered."""
        queues: List[Tuple[str, asyncio.Queue]] = list(self._queues.items())
        for rid, queue in queues:
            if room_id is None or rid == room_id:
                await queue.join()

    def discard(self, room_id: str) -> None:
        self._queues.pop(room_id, None)
        worker = self._workers.pop(room_id, None)
        if worker:
            worker.cancel()

    async def close(self) -> None:
        workers = list(self._workers.values())
        self._queues.clear()
        self._workers.clear()
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
