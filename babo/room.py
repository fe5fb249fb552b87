"""Game rooms holding matched players."""

from __future__ import annotations

from typing import Iterable, Optional

from babo.player import Player
from babo.protocol import MatchResultNtf, MatchTarget, MsgId, RoomTarget, UserEnterRoomNtf


class Room:
    """Players matched together, keyed by uid, and which of them have entered."""

    def __init__(self, room_id: int, players: Iterable[Player] = ()) -> None:
        self.room_id = room_id
        self.players: dict[int, Player] = {p.uid: p for p in players}
        self._entered: dict[int, None] = {}

    def ntf_create(self) -> None:
        """Tell every player the room exists and who the opponent is."""
        for p in self.players.values():
            target = self.get_target(p)
            ntf = MatchResultNtf(room_id=self.room_id)
            if target is not None:
                ntf.target = MatchTarget(uid=target.uid)
            p.send_msg(MsgId.MATCH_RESULT, ntf)

    def ntf_enter(self, p: Player) -> None:
        """Tell the other players that p entered."""
        for other in self.players.values():
            if other.uid != p.uid:
                other.send_msg(MsgId.USER_ENTER_ROOM, UserEnterRoomNtf(target=RoomTarget(uid=p.uid)))

    def get_target(self, p: Player) -> Optional[Player]:
        for other in self.players.values():
            if other.uid != p.uid:
                return other
        return None

    def is_valid_player(self, p: Player) -> bool:
        return p.uid in self.players

    def is_player_enter(self, p: Player) -> bool:
        return p.uid in self._entered

    def on_player_enter(self, p: Player) -> Optional[RoomTarget]:
        """Record p as entered; return a player who entered before, if any."""
        result = None
        if self._entered:
            result = RoomTarget(uid=next(reversed(self._entered)))
        self.ntf_enter(p)
        self._entered[p.uid] = None
        return result


class RoomManager:
    def __init__(self) -> None:
        self._rooms: dict[int, Room] = {}

    def init(self) -> None:
        self._rooms.clear()

    def new_room(self, room_id: int, players: Iterable[Player]) -> Room:
        """Create a room, register it and notify its players."""
        room = Room(room_id, players)
        self._rooms[room_id] = room
        room.ntf_create()
        return room

    def get_room(self, room_id: int) -> Optional[Room]:
        return self._rooms.get(room_id)

    def __len__(self) -> int:
        return len(self._rooms)


mgr = RoomManager()