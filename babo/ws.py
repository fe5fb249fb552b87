"""WebSocket server and client sessions carrying binary messages."""

from __future__ import annotations

import asyncio
import inspect
import logging
import socket
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Awaitable, Callable, Optional, Union

from websockets.asyncio.client import connect as _ws_connect
from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from babo.common import protect_error

log = logging.getLogger(__name__)

SEND_QUEUE_SIZE = 1024
MAX_SESSION_ID = 0x7FFFFFFF

ReceiveFunc = Callable[[bytes], Union[None, Awaitable[None]]]
ConnectFunc = Callable[["Service", "Session"], None]


def _format_addr(addr: Any) -> str:
    if not addr:
        return ""
    host, port = addr[0], addr[1]
    if ":" in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass
class RemoteCtl:
    """Allow or deny clients by IP address."""

    use_white: bool = False
    white_list: set[str] = field(default_factory=set)
    use_black: bool = False
    black_list: set[str] = field(default_factory=set)

    def check_origin(self, remote_addr: str) -> bool:
        """Return whether a client at "ip:port" may connect."""
        index = remote_addr.rfind(":")
        if index < 0:
            log.error("CheckOrigin, parse remote addr failed remoteAddr=%s", remote_addr)
            return True
        ip = remote_addr[:index]
        if self.use_white:
            return ip in self.white_list
        if self.use_black and ip in self.black_list:
            return False
        return True


class Session:
    """One WebSocket connection with a read loop and a queued writer."""

    def __init__(self, session_id: int, conn: Any) -> None:
        self.id = session_id
        self.conn = conn
        self.remote_addr = _format_addr(getattr(conn, "remote_address", None))
        self._on_receive: Optional[ReceiveFunc] = None
        self._send_queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=SEND_QUEUE_SIZE)
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    def start(self, cb: ReceiveFunc) -> None:
        """Set the receive callback and begin serving; needs a running event loop."""
        if cb is None:
            raise ValueError("receive callback is None")
        self._on_receive = cb
        self._ensure_task()

    def _ensure_task(self) -> asyncio.Task:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def serve_io(self) -> None:
        """Run the read and write loops until the connection ends."""
        await self._ensure_task()

    def send_data(self, msg: bytes) -> None:
        """Queue a binary message for sending."""
        if self._closed:
            log.error("send on closed session sid=%d", self.id)
            return
        try:
            self._send_queue.put_nowait(msg)
        except asyncio.QueueFull:
            log.error("send queue full sid=%d", self.id)

    async def close(self) -> None:
        """Stop the writer and close the connection; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._send_queue.put_nowait(None)
        except asyncio.QueueFull:
            pass
        await self.conn.close()

    async def _run(self) -> None:
        reader = asyncio.create_task(self._read())
        writer = asyncio.create_task(self._write())
        try:
            await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            with protect_error():
                await self.close()
            await asyncio.gather(reader, writer, return_exceptions=True)

    async def _read(self) -> None:
        try:
            async for data in self.conn:
                if isinstance(data, str):
                    log.error("Invalid websocket msg type: text sid=%d", self.id)
                    return
                if self._on_receive is None:
                    log.error("no receive callback sid=%d", self.id)
                    return
                try:
                    result = self._on_receive(data)
                    if inspect.isawaitable(result):
                        await result
                except Exception as exc:  # noqa: BLE001 - a bad message ends the session
                    log.error("onReceive error: %s", exc)
                    return
        except ConnectionClosed:
            return

    async def _write(self) -> None:
        while True:
            data = await self._send_queue.get()
            if data is None:
                return
            try:
                await self.conn.send(bytes(data))
            except ConnectionClosed as exc:
                log.error("write error: %s", exc)
                return


class Service:
    """WebSocket server bound to a listening socket."""

    def __init__(
        self,
        sock: socket.socket,
        ctl: RemoteCtl,
        on_connect: ConnectFunc,
        on_disconnect: ConnectFunc,
    ) -> None:
        self._sock = sock
        self.ctl = ctl
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._auto_session_id = 0
        self._server = None

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return host, port

    def _gen_session_id(self) -> int:
        if self._auto_session_id == MAX_SESSION_ID:
            self._auto_session_id = 0
        self._auto_session_id += 1
        return self._auto_session_id

    def _process_request(self, connection, request):
        if self.ctl.check_origin(_format_addr(connection.remote_address)):
            return None
        return connection.respond(HTTPStatus.FORBIDDEN, "Forbidden\n")

    async def _handle(self, conn) -> None:
        session = Session(self._gen_session_id(), conn)
        try:
            self._on_connect(self, session)
        except Exception as exc:  # noqa: BLE001
            log.error("on_connect failed: %s", exc, exc_info=True)
            await session.close()
            return
        try:
            await session.serve_io()
        finally:
            with protect_error():
                self._on_disconnect(self, session)

    async def start(self) -> None:
        """Begin accepting connections on the bound socket."""
        log.info("WsService will start")
        self._server = await serve(
            self._handle,
            sock=self._sock,
            process_request=self._process_request,
            compression=None,
            max_size=None,
        )
        log.info("WsService start addr=%s", _format_addr(self.address))

    async def stop(self) -> None:
        """Stop accepting connections and close the open ones."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        else:
            self._sock.close()


def new_service(
    ip: str,
    port: int,
    ctl: RemoteCtl,
    on_connect: ConnectFunc,
    on_disconnect: ConnectFunc,
) -> Service:
    """Bind a listening socket at ip:port and return a service ready to start."""
    try:
        sock = socket.create_server((ip, port))
    except OSError as exc:
        log.error("listen error: %s", exc)
        raise
    sock.setblocking(False)
    return Service(sock, ctl, on_connect, on_disconnect)


async def connect_client(url: str) -> Session:
    """Open a WebSocket connection to url and wrap it in a session."""
    try:
        conn = await _ws_connect(url, compression=None, max_size=None)
    except (OSError, Exception) as exc:
        log.error("dial error: %s", exc)
        raise
    return Session(1, conn)