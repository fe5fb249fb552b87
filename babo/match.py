"""Matchmaking: pairs waiting players into rooms once per tick."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Callable, Optional

from babo import room as room_module
from babo import uuid as id_gen
from babo.common import protect_error
from babo.player import Player
from babo.room import RoomManager

log = logging.getLogger(__name__)

QUEUE_SIZE = 1024
TICK_SECONDS = 1.0
ROOM_SIZE = 2


class MatchManager:
    """Collects players asking for a match and pairs them in arrival order."""

    def __init__(
        self,
        rooms: Optional[RoomManager] = None,
        id_generator: Optional[Callable[[], int]] = None,
        tick: float = TICK_SECONDS,
    ) -> None:
        self._rooms = rooms
        self._id_generator = id_generator
        self.tick = tick
        self._match_list: list[Player] = []
        self._incoming: deque[Player] = deque()
        self._task: Optional[asyncio.Task] = None

    @property
    def rooms(self) -> RoomManager:
        return self._rooms if self._rooms is not None else room_module.mgr

    @property
    def waiting(self) -> list[Player]:
        """Players not yet placed in a room, in arrival order."""
        return [*self._match_list, *self._incoming]

    def _new_room_id(self) -> int:
        if self._id_generator is not None:
            return self._id_generator()
        return id_gen.generate()

    def init(self) -> None:
        """Reset state; inside a running event loop also start the tick loop."""
        self._match_list = []
        self._incoming = deque()
        log.info("MatchManager Start")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._serve_io())

    def close(self) -> None:
        log.info("MatchManager Close")
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def push_match(self, p: Player) -> None:
        """Queue a player for matching; when full the oldest queued and this one are dropped."""
        if len(self._incoming) >= QUEUE_SIZE:
            self._incoming.popleft()
            log.info("match queue full %s", p.describe())
            return
        self._incoming.append(p)

    async def _serve_io(self) -> None:
        while True:
            await asyncio.sleep(self.tick)
            with protect_error():
                self.on_ticker(time.time())

    def on_ticker(self, now: float) -> None:
        self.process_match()

    def process_match(self) -> None:
        """Pair waiting players and open a room for each pair."""
        while self._incoming:
            self._match_list.append(self._incoming.popleft())
        if len(self._match_list) < ROOM_SIZE:
            return

        log.debug("process_match start len=%d", len(self._match_list))
        pairs = []
        while len(self._match_list) >= ROOM_SIZE:
            pairs.append(self._match_list[:ROOM_SIZE])
            self._match_list = self._match_list[ROOM_SIZE:]
        log.debug("process_match end len=%d pairs=%d", len(self._match_list), len(pairs))

        for pair in pairs:
            try:
                room_id = self._new_room_id()
            except Exception as exc:  # noqa: BLE001 - skip this pair, keep matching
                log.error(
                    "room id generation failed pair=%s: %s",
                    [p.describe() for p in pair],
                    exc,
                )
                continue
            log.debug("process_match room_id=%d", room_id)
            self.rooms.new_room(room_id, pair)


mgr = MatchManager()