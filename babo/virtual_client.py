"""Command-line test client that logs in to the game server."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Optional

from websockets.sync.client import connect

from babo import logsetup
from babo.protocol import LoginReq, LoginRsp, MsgId, Proto, decode, decode_proto, encode_proto

log = logging.getLogger(__name__)

DEFAULT_URL = "ws://localhost:10005"
DEFAULT_ACCOUNT = "test"


class VirtualClient:
    """Connects, sends a login request and reads replies until the server closes."""

    def __init__(self, account: str = DEFAULT_ACCOUNT) -> None:
        self.account = account
        self.conn: Optional[Any] = None

    def start(self, url: str = DEFAULT_URL) -> list[Proto]:
        """Log in at url and return every envelope received before the connection closed."""
        with connect(url) as conn:
            self.conn = conn
            try:
                self.send_msg(MsgId.LOGIN, LoginReq(account=self.account))
                return self.receive_msg()
            finally:
                self.conn = None

    def send_msg(self, msg_id: MsgId | int, m: Any) -> None:
        if self.conn is None:
            raise RuntimeError("client is not connected")
        data = encode_proto(msg_id, m)
        self.conn.send(data)
        log.info("SendMsg id=%s msg=%r", msg_id, m)

    def receive_msg(self) -> list[Proto]:
        """Read messages until a clean close; raises on a broken connection or bad data."""
        if self.conn is None:
            raise RuntimeError("client is not connected")
        received: list[Proto] = []
        for message in self.conn:
            data = message.encode("utf-8") if isinstance(message, str) else message
            proto_msg = decode_proto(data)
            if proto_msg.id == MsgId.LOGIN:
                rsp = decode(LoginRsp, proto_msg.body)
                log.info("ReceiveMsg LoginRsp rsp=%r", rsp)
            else:
                log.error("ReceiveMsg unknown msg id=%s", proto_msg.id)
            received.append(proto_msg)
        return received


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="client_virtual")
    parser.add_argument("--url", default=DEFAULT_URL, help="server address")
    args = parser.parse_args(argv)

    logsetup.init("client_virtual", False, False)
    try:
        VirtualClient().start(args.url)
    finally:
        logsetup.sync()
    return 0