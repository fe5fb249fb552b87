"""Handlers for client requests: login, heartbeat, matchmaking and entering rooms."""

from __future__ import annotations

import logging
import time
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from babo import handlers, orm
from babo import match as match_module
from babo import room as room_module
from babo import uuid as id_gen
from babo.models import AccountData, UserData
from babo.player import Player
from babo.protocol import (
    EnterRoomReq,
    EnterRoomRsp,
    HeartBeatReq,
    HeartBeatRsp,
    LoginReq,
    LoginRsp,
    MatchReq,
    MatchRsp,
    MsgId,
    Proto,
    ProtocolError,
    ResCode,
    decode,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(cls: type[T], msg: Proto, client: Player) -> T:
    try:
        return decode(cls, msg.body)
    except ProtocolError as exc:
        log.error("unmarshal %s failed: %s %s", cls.__name__, exc, client.describe())
        raise


def on_enter_room(client: Player, msg: Proto) -> EnterRoomRsp:
    """Let a matched player enter its room."""
    req = _decode(EnterRoomReq, msg, client)
    rsp = EnterRoomRsp(code=ResCode.SUCCESS)

    room = room_module.mgr.get_room(req.room_id)
    if room is None:
        log.error("room not found room_id=%d %s", req.room_id, client.describe())
        rsp.code = ResCode.FAIL
        return rsp

    if not room.is_valid_player(client):
        log.error("player not valid in room room_id=%d %s", req.room_id, client.describe())
        rsp.code = ResCode.FAIL
        return rsp

    if room.is_player_enter(client):
        log.error("player enter room repeatedly room_id=%d %s", req.room_id, client.describe())
        rsp.code = ResCode.FAIL
        return rsp

    rsp.target = room.on_player_enter(client)
    return rsp


def on_match_req(client: Player, msg: Proto) -> MatchRsp:
    """Queue the player for matchmaking."""
    _decode(MatchReq, msg, client)
    match_module.mgr.push_match(client)
    return MatchRsp(code=ResCode.SUCCESS)


def on_heart_beat_req(client: Player, msg: Proto) -> HeartBeatRsp:
    """Answer with the server time in seconds."""
    _decode(HeartBeatReq, msg, client)
    return HeartBeatRsp(time=int(time.time()))


def on_login_req(client: Player, msg: Proto) -> LoginRsp:
    """Find or create the account and user, then bind the user to the player."""
    req = _decode(LoginReq, msg, client)

    engine = orm.db()
    if engine is None:
        log.error("database not connected account=%s", req.account)
        raise RuntimeError("database not connected")

    try:
        with DbSession(engine, expire_on_commit=False) as session:
            account = session.scalars(
                select(AccountData).where(AccountData.account == req.account)
            ).first()
            if account is None:
                try:
                    uid = id_gen.generate()
                except Exception as exc:
                    log.error("generate uuid failed: %s account=%s", exc, req.account)
                    raise
                account = AccountData(account=req.account, uid=uid)
                session.add(account)
                session.commit()

            user = session.scalars(select(UserData).where(UserData.uid == account.uid)).first()
            if user is None:
                user = UserData(uid=account.uid, account=account.account)
                session.add(user)
                session.commit()
    except SQLAlchemyError as exc:
        log.error("login database error: %s account=%s", exc, req.account)
        raise

    client.on_login(user)
    client.manager.store_uid(client.session_id, user.uid)
    return LoginRsp(code=ResCode.SUCCESS, uid=user.uid)


def register_handlers() -> None:
    """Register every request handler of this module."""
    handlers.register(MsgId.LOGIN, on_login_req)
    handlers.register(MsgId.HEART_BEAT, on_heart_beat_req)
    handlers.register(MsgId.MATCH, on_match_req)
    handlers.register(MsgId.ENTER_ROOM, on_enter_room)