"""Game server application: configuration, service start-up and client lifecycle."""

from __future__ import annotations

import argparse
import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Coroutine, Optional

from sqlalchemy.exc import SQLAlchemyError

from babo import match as match_module
from babo import orm, user_handler, ws
from babo import player as player_module
from babo import room as room_module
from babo import uuid as id_gen
from babo.application import DefaultApplication, start_app
from babo.models import Base
from babo.protocol import WS

log = logging.getLogger(__name__)

APP_NAME = "gameserver"
DEFAULT_CONFIG = "./config/config.yml"


def _section(data: Any, name: str) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a mapping")
    return data


@dataclass
class MysqlConfig:
    ip: str = ""
    port: str = ""
    user: str = ""
    pwd: str = ""
    db_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "MysqlConfig":
        data = _section(data, "mysql")
        return cls(
            ip=str(data.get("ip", "")),
            port=str(data.get("port", "")),
            user=str(data.get("user", "")),
            pwd=str(data.get("pwd", "")),
            db_name=str(data.get("dbname", "")),
        )


@dataclass
class GameServerConfig:
    host: str = ""
    port: int = 0
    work_id: int = 0
    datacenter_id: int = 0
    json_path: str = ""
    mysql: MysqlConfig = field(default_factory=MysqlConfig)

    @classmethod
    def from_dict(cls, data: Any) -> "GameServerConfig":
        data = _section(data, "gameserver")
        return cls(
            host=str(data.get("host", "")),
            port=int(data.get("port", 0)),
            work_id=int(data.get("workid", 0)),
            datacenter_id=int(data.get("datacenterid", 0)),
            json_path=str(data.get("jsonpath", "")),
            mysql=MysqlConfig.from_dict(data.get("mysql")),
        )


@dataclass
class Config:
    game_server: GameServerConfig = field(default_factory=GameServerConfig)

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        """Build the config from a parsed YAML document; missing keys keep their defaults."""
        data = _section(data, "config")
        return cls(game_server=GameServerConfig.from_dict(data.get("gameserver")))


class GameServerApp(DefaultApplication):
    """Runs the network side on an event loop in a background thread."""

    def __init__(self) -> None:
        super().__init__()
        self.config: Config = Config()
        self.service: Optional[ws.Service] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def parse_config(self, data: Any) -> Config:
        return Config.from_dict(data)

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._loop.run_forever, name="babo-net", daemon=True)
            self._thread.start()
        return self._loop

    def _call(self, coro: Coroutine[Any, Any, Any]) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self._ensure_loop()).result()

    @staticmethod
    async def _start_match() -> None:
        match_module.mgr.init()

    def init_services(self) -> None:
        """Start id generation, managers, the database and finally the network."""
        cfg = self.config.game_server
        try:
            id_gen.init(cfg.work_id, cfg.datacenter_id)
        except ValueError as exc:
            log.error("init uuid failed: %s", exc)
            raise

        player_module.mgr.init()
        room_module.mgr.init()
        self._call(self._start_match())

        mysql = cfg.mysql
        engine = orm.connect(f"{mysql.ip}:{mysql.port}", mysql.user, mysql.pwd, mysql.db_name)
        try:
            Base.metadata.create_all(engine)
        except SQLAlchemyError as exc:
            log.error("create tables failed: %s", exc)
            raise

        user_handler.register_handlers()
        self.init_net(WS)

    def init_net(self, net_type: str) -> None:
        """Start the client-facing service of the given kind."""
        if net_type != WS:
            raise ValueError(f"unknown service type: {net_type}")
        cfg = self.config.game_server
        ctl = ws.RemoteCtl(use_white=False, use_black=False)
        service = ws.new_service(cfg.host, cfg.port, ctl, self.on_connect, self.on_disconnect)
        self._call(service.start())
        self.service = service

    def on_connect(self, service: Any, session: Any) -> None:
        p = player_module.mgr.new_player(session)
        log.info("New client connected remote_addr=%s sid=%d", session.remote_addr, session.id)
        p.start()

    def on_disconnect(self, service: Any, session: Any) -> None:
        log.info("client disconnected remote_addr=%s sid=%d", session.remote_addr, session.id)
        player_module.mgr.del_player(session.id)

    async def _shutdown(self) -> None:
        match_module.mgr.close()
        if self.service is not None:
            await self.service.stop()
            self.service = None
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def shutdown(self) -> None:
        """Stop the service and the background event loop."""
        if self._loop is None:
            return
        self._call(self._shutdown())
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join()
        self._loop.close()
        self._loop = None
        self._thread = None


def _parse_bool(value: str) -> bool:
    if value in ("1", "t", "T", "true", "TRUE", "True"):
        return True
    if value in ("0", "f", "F", "false", "FALSE", "False"):
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value: {value!r}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog=APP_NAME)
    parser.add_argument("-conf", "--conf", default=DEFAULT_CONFIG, help="config file path")
    parser.add_argument(
        "-cancelprint", "--cancelprint", type=_parse_bool, nargs="?", const=True, default=True,
        help="do not print log to console",
    )
    parser.add_argument(
        "-closedebug", "--closedebug", type=_parse_bool, nargs="?", const=True, default=True,
        help="close debug module",
    )
    args = parser.parse_args(argv)

    app = GameServerApp()
    try:
        start_app(app, APP_NAME, args.conf, args.cancelprint, False)
    except Exception as exc:  # noqa: BLE001 - report and exit with failure
        log.error("Start failed: %s", exc)
        return 1
    finally:
        app.shutdown()
    return 0