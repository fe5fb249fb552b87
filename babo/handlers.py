"""Registry mapping message ids to request handlers."""

from __future__ import annotations

from typing import Any, Callable, Optional

from babo.protocol import MsgId, Proto

Handler = Callable[[Any, Proto], Optional[Any]]


class HandlerRegistry:
    def __init__(self) -> None:
        self._handlers: dict[int, Handler] = {}

    def register(self, msg_id: MsgId | int, handler: Handler) -> None:
        self._handlers[msg_id] = handler

    def has_handler(self, msg_id: MsgId | int) -> bool:
        return msg_id in self._handlers

    def get_handler(self, msg_id: MsgId | int) -> Handler | None:
        return self._handlers.get(msg_id)


registry = HandlerRegistry()


def register(msg_id: MsgId | int, handler: Handler) -> None:
    registry.register(msg_id, handler)


def has_handler(msg_id: MsgId | int) -> bool:
    return registry.has_handler(msg_id)


def get_handler(msg_id: MsgId | int) -> Handler | None:
    return registry.get_handler(msg_id)