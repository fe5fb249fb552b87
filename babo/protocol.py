"""Wire messages exchanged with clients, in protobuf wire format."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, TypeVar, Union

TCP = "tcp"
WS = "ws"
WSS = "wss"

_UINT64_MASK = (1 << 64) - 1
_WIRE_VARINT = 0
_WIRE_FIXED64 = 1
_WIRE_LEN = 2
_WIRE_FIXED32 = 5


class ProtocolError(ValueError):
    """Raised when bytes cannot be decoded into a message."""


class MsgId(IntEnum):
    UNKNOWN = 0
    LOGIN = 1
    HEART_BEAT = 2
    MATCH = 3
    ENTER_ROOM = 4
    MATCH_RESULT = 5
    USER_ENTER_ROOM = 6


class ResCode(IntEnum):
    SUCCESS = 0
    FAIL = 1


class _Message:
    FIELDS: ClassVar[tuple] = ()


@dataclass
class Proto(_Message):
    id: Union[MsgId, int] = MsgId.UNKNOWN
    body: bytes = b""
    FIELDS: ClassVar[tuple] = ((1, "id", MsgId), (2, "body", "bytes"))


@dataclass
class LoginReq(_Message):
    account: str = ""
    FIELDS: ClassVar[tuple] = ((1, "account", "string"),)


@dataclass
class LoginRsp(_Message):
    code: Union[ResCode, int] = ResCode.SUCCESS
    uid: int = 0
    FIELDS: ClassVar[tuple] = ((1, "code", ResCode), (2, "uid", "int64"))


@dataclass
class HeartBeatReq(_Message):
    FIELDS: ClassVar[tuple] = ()


@dataclass
class HeartBeatRsp(_Message):
    time: int = 0
    FIELDS: ClassVar[tuple] = ((1, "time", "int64"),)


@dataclass
class MatchReq(_Message):
    FIELDS: ClassVar[tuple] = ()


@dataclass
class MatchRsp(_Message):
    code: Union[ResCode, int] = ResCode.SUCCESS
    FIELDS: ClassVar[tuple] = ((1, "code", ResCode),)


@dataclass
class MatchTarget(_Message):
    uid: int = 0
    FIELDS: ClassVar[tuple] = ((1, "uid", "int64"),)


@dataclass
class RoomTarget(_Message):
    uid: int = 0
    FIELDS: ClassVar[tuple] = ((1, "uid", "int64"),)


@dataclass
class EnterRoomReq(_Message):
    room_id: int = 0
    FIELDS: ClassVar[tuple] = ((1, "room_id", "int64"),)


@dataclass
class EnterRoomRsp(_Message):
    code: Union[ResCode, int] = ResCode.SUCCESS
    target: RoomTarget | None = None
    FIELDS: ClassVar[tuple] = ((1, "code", ResCode), (2, "target", RoomTarget))


@dataclass
class MatchResultNtf(_Message):
    room_id: int = 0
    target: MatchTarget | None = None
    FIELDS: ClassVar[tuple] = ((1, "room_id", "int64"), (2, "target", MatchTarget))


@dataclass
class UserEnterRoomNtf(_Message):
    target: RoomTarget | None = None
    FIELDS: ClassVar[tuple] = ((1, "target", RoomTarget),)


M = TypeVar("M", bound=_Message)


def _is_message(kind) -> bool:
    return isinstance(kind, type) and issubclass(kind, _Message)


def _is_enum(kind) -> bool:
    return isinstance(kind, type) and issubclass(kind, IntEnum)


def _varint(value: int) -> bytes:
    value &= _UINT64_MASK
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    for shift in range(0, 70, 7):
        if pos >= len(data):
            raise ProtocolError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & _UINT64_MASK, pos
    raise ProtocolError("varint too long")


def _take(data: bytes, pos: int, n: int) -> tuple[bytes, int]:
    if pos + n > len(data):
        raise ProtocolError("truncated field")
    return data[pos:pos + n], pos + n


def _iter_fields(data: bytes):
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        number, wire = key >> 3, key & 7
        if number == 0:
            raise ProtocolError("invalid field number 0")
        if wire == _WIRE_VARINT:
            value, pos = _read_varint(data, pos)
        elif wire == _WIRE_FIXED64:
            value, pos = _take(data, pos, 8)
        elif wire == _WIRE_LEN:
            length, pos = _read_varint(data, pos)
            value, pos = _take(data, pos, length)
        elif wire == _WIRE_FIXED32:
            value, pos = _take(data, pos, 4)
        else:
            raise ProtocolError(f"unsupported wire type {wire}")
        yield number, wire, value


def _signed(value: int) -> int:
    return value - (1 << 64) if value >= 1 << 63 else value


def encode(msg: _Message) -> bytes:
    """Serialize a message, omitting fields that hold their default value."""
    out = bytearray()
    for number, name, kind in msg.FIELDS:
        value = getattr(msg, name)
        if _is_message(kind):
            if value is None:
                continue
            payload = encode(value)
        elif kind in ("string", "bytes"):
            if not value:
                continue
            payload = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        else:
            if not value:
                continue
            out += _varint((number << 3) | _WIRE_VARINT) + _varint(int(value))
            continue
        out += _varint((number << 3) | _WIRE_LEN) + _varint(len(payload)) + payload
    return bytes(out)


def decode(cls: type[M], data: bytes) -> M:
    """Parse bytes into an instance of cls; unknown fields are skipped."""
    spec = {number: (name, kind) for number, name, kind in cls.FIELDS}
    values = {}
    for number, wire, raw in _iter_fields(bytes(data)):
        if number not in spec:
            continue
        name, kind = spec[number]
        length_delimited = kind in ("string", "bytes") or _is_message(kind)
        expected = _WIRE_LEN if length_delimited else _WIRE_VARINT
        if wire != expected:
            raise ProtocolError(f"field {name} has wire type {wire}")
        if _is_message(kind):
            values[name] = decode(kind, raw)
        elif kind == "string":
            try:
                values[name] = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ProtocolError(f"field {name} is not valid utf-8") from exc
        elif kind == "bytes":
            values[name] = raw
        elif _is_enum(kind):
            try:
                values[name] = kind(_signed(raw))
            except ValueError:
                values[name] = _signed(raw)
        else:
            values[name] = _signed(raw)
    return cls(**values)


def encode_proto(msg_id: MsgId | int, msg: _Message | None) -> bytes:
    """Wrap a message body in a Proto envelope and serialize it."""
    body = encode(msg) if msg is not None else b""
    return encode(Proto(id=msg_id, body=body))


def decode_proto(data: bytes) -> Proto:
    return decode(Proto, data)