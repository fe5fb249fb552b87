import contextlib
import threading

import pytest
from websockets.sync.server import serve

from babo.protocol import (
    LoginReq,
    LoginRsp,
    MatchResultNtf,
    MsgId,
    Proto,
    ProtocolError,
    decode,
    decode_proto,
    encode,
    encode_proto,
)
from babo.virtual_client import VirtualClient, main


@contextlib.contextmanager
def fake_server(replies):
    requests = []

    def handler(conn):
        requests.append(conn.recv(timeout=5))
        for reply in replies:
            conn.send(reply)

    server = serve(handler, "127.0.0.1", 0)
    port = server.socket.getsockname()[1]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"ws://127.0.0.1:{port}", requests
    finally:
        server.shutdown()
        thread.join()


def test_start_sends_login_and_returns_reply():
    with fake_server([encode_proto(MsgId.LOGIN, LoginRsp(uid=42))]) as (url, requests):
        received = VirtualClient().start(url)
    request = decode_proto(requests[0])
    assert request.id == MsgId.LOGIN
    assert decode(LoginReq, request.body).account == "test"
    assert [p.id for p in received] == [MsgId.LOGIN]
    assert decode(LoginRsp, received[0].body).uid == 42


def test_unknown_messages_are_kept():
    replies = [
        encode_proto(MsgId.MATCH_RESULT, MatchResultNtf(room_id=9)),
        encode_proto(MsgId.LOGIN, LoginRsp(uid=5)),
    ]
    with fake_server(replies) as (url, _):
        received = VirtualClient(account="other").start(url)
    assert [p.id for p in received] == [MsgId.MATCH_RESULT, MsgId.LOGIN]
    assert decode(MatchResultNtf, received[0].body).room_id == 9


def test_account_is_sent():
    with fake_server([]) as (url, requests):
        received = VirtualClient(account="someone").start(url)
    assert received == []
    assert decode(LoginReq, decode_proto(requests[0]).body).account == "someone"


def test_corrupt_envelope_raises():
    with fake_server([b"\xff"]) as (url, _):
        with pytest.raises(ProtocolError):
            VirtualClient().start(url)


def test_corrupt_login_body_raises():
    bad = encode(Proto(id=MsgId.LOGIN, body=b"\x0a\x05ab"))
    with fake_server([bad]) as (url, _):
        with pytest.raises(ProtocolError):
            VirtualClient().start(url)


def test_send_without_connection_raises():
    with pytest.raises(RuntimeError):
        VirtualClient().send_msg(MsgId.LOGIN, LoginReq(account="test"))


def test_receive_without_connection_raises():
    with pytest.raises(RuntimeError):
        VirtualClient().receive_msg()


def test_main_logs_in(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with fake_server([encode_proto(MsgId.LOGIN, LoginRsp(uid=1))]) as (url, requests):
        assert main(["--url", url]) == 0
    assert decode_proto(requests[0]).id == MsgId.LOGIN
    assert (tmp_path / "log" / "info" / "client_virtual.log").exists()