"""Connected players and the registry of players by session and uid."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Any, Optional

from babo import handlers
from babo.common import protect_error
from babo.handlers import HandlerRegistry
from babo.models import UserData
from babo.protocol import MsgId, ProtocolError, decode_proto, encode_proto

log = logging.getLogger(__name__)

RECV_QUEUE_SIZE = 1024
TICK_SECONDS = 1.0


class Player:
    """A client connection bound to a user once logged in."""

    def __init__(
        self,
        manager: Optional["PlayerManager"] = None,
        registry: Optional[HandlerRegistry] = None,
    ) -> None:
        self._manager = manager
        self._registry = registry
        self.user_data: Optional[UserData] = None
        self.init(None)

    @property
    def manager(self) -> "PlayerManager":
        return self._manager if self._manager is not None else mgr

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry if self._registry is not None else handlers.registry

    @property
    def account(self) -> str:
        return self.user_data.account if self.user_data is not None else ""

    @property
    def uid(self) -> int:
        return self.user_data.uid if self.user_data is not None else 0

    @property
    def session_id(self) -> int:
        return self.session.id if self.session is not None else 0

    @property
    def pending_count(self) -> int:
        """Number of received messages not yet handled."""
        return len(self._recv)

    def init(self, session: Any) -> None:
        """Attach a session and reset the message state."""
        self.session = session
        self._recv: deque[bytes] = deque()
        self._wake = asyncio.Event()
        self._logout_requested = False
        self._closed = False
        self._logged_out = False
        self._task: Optional[asyncio.Task] = None
        self.last_tick: Optional[float] = None

    def uninit(self) -> None:
        """Detach the session and stop the message loop."""
        self.session = None
        self._closed = True
        self._wake.set()

    def describe(self) -> str:
        if self.session is not None:
            return f"[A:{self.account}, U:{self.uid}, S:{self.session_id}, ptr:{id(self):#x}]"
        return f"[A:{self.account}, U:{self.uid}, ptr:{id(self):#x}]"

    def start(self) -> None:
        """Start the message loop and the session; needs a running event loop."""
        if self.session is None:
            raise RuntimeError("player has no session")
        self._task = asyncio.get_running_loop().create_task(self._serve_io())
        self.session.start(self.on_recv)

    def on_recv(self, m: bytes) -> None:
        """Queue a message from the client; when the queue is full the oldest and this one are dropped."""
        if self._closed:
            log.info("recv queue closed %s", self.describe())
            return
        if len(self._recv) >= RECV_QUEUE_SIZE:
            self._recv.popleft()
            log.info("recv queue full %s", self.describe())
            return
        self._recv.append(bytes(m))
        self._wake.set()

    def send_msg(self, msg_id: MsgId | int, m: Any) -> None:
        """Wrap a message in an envelope and send it to the client."""
        if self.session is None:
            log.error("SendMsg without session %s", self.describe())
            return
        try:
            data = encode_proto(msg_id, m)
        except (TypeError, ValueError, AttributeError) as exc:
            log.error("SendMsg encode error: %s %s", exc, self.describe())
            return
        self.session.send_data(data)

    def on_logout(self) -> None:
        """Ask the message loop to log the player out."""
        if self._closed:
            log.info("logout closed %s", self.describe())
            return
        if self._logout_requested:
            log.info("logout already requested %s", self.describe())
            return
        self._logout_requested = True
        self._wake.set()

    def on_ticker(self, now: float) -> None:
        """Called once a second by the message loop; records the tick time."""
        self.last_tick = now

    def on_login(self, user_data: UserData) -> None:
        self.user_data = user_data

    def handle_client_msg(self, m: bytes) -> None:
        """Decode one client message, run its handler and send back the response."""
        log.debug("handle_client_msg msg=%r %s", m, self.describe())
        try:
            proto_msg = decode_proto(m)
        except ProtocolError as exc:
            log.error("handle_client_msg decode error: %s", exc)
            return

        handler = self.registry.get_handler(proto_msg.id)
        if handler is None:
            log.error("handler is nil id=%d %s", int(proto_msg.id), self.describe())
            return

        try:
            rsp = handler(self, proto_msg)
        except Exception as exc:  # noqa: BLE001 - a failing handler only drops its request
            log.error("handle_client_msg handler error: %s %s", exc, self.describe())
            return

        if rsp is None:
            log.error("handle_client_msg handler rsp is None %s", self.describe())
            return

        self.send_msg(proto_msg.id, rsp)

    async def _serve_io(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + TICK_SECONDS
        while not self._closed:
            try:
                await asyncio.wait_for(self._wake.wait(), max(0.0, next_tick - loop.time()))
            except asyncio.TimeoutError:
                with protect_error():
                    self.on_ticker(time.time())
                next_tick = loop.time() + TICK_SECONDS
                continue
            self._wake.clear()
            while self._recv and not self._closed:
                with protect_error():
                    self.handle_client_msg(self._recv.popleft())
            if self._logout_requested:
                with protect_error():
                    self._logout()

    def _logout(self) -> None:
        if self._logged_out:
            return
        self._logged_out = True
        log.info("Player Logout %s", self.describe())
        self._closed = True
        if self.session is not None:
            self.manager.del_player(self.session.id)
        self.uninit()


class PlayerManager:
    """Players indexed by session id and by uid."""

    def __init__(self, registry: Optional[HandlerRegistry] = None) -> None:
        self._registry = registry
        self._by_session: dict[int, Player] = {}
        self._by_uid: dict[int, Player] = {}

    def init(self) -> None:
        self._by_session.clear()
        self._by_uid.clear()

    def new_player(self, session: Any) -> Player:
        player = Player(manager=self, registry=self._registry)
        player.init(session)
        self._by_session[session.id] = player
        return player

    def get_player(self, session_id: int) -> Optional[Player]:
        return self._by_session.get(session_id)

    def del_player(self, session_id: int) -> None:
        player = self._by_session.pop(session_id, None)
        if player is None:
            return
        player.uninit()
        for uid, known in list(self._by_uid.items()):
            if known is player:
                del self._by_uid[uid]

    def store_uid(self, session_id: int, uid: int) -> None:
        player = self._by_session.get(session_id)
        if player is not None:
            self._by_uid[uid] = player

    def get_player_by_uid(self, uid: int) -> Optional[Player]:
        return self._by_uid.get(uid)


mgr = PlayerManager()