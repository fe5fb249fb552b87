"""Application skeleton: load a YAML config, start services, wait for a stop signal."""

from __future__ import annotations

import abc
import logging
import os
from typing import Any

import yaml

from babo import logsetup
from babo.common import wait_for_terminate

log = logging.getLogger(__name__)


class Application(abc.ABC):
    """What start_app needs from an application."""

    @abc.abstractmethod
    def load_config(self, config_path: str) -> Any:
        """Read the configuration file at config_path."""

    @abc.abstractmethod
    def init_services(self) -> None:
        """Start everything the application runs."""


class DefaultApplication(Application):
    """Application whose configuration is a YAML file."""

    def __init__(self) -> None:
        self.config: Any = None

    def parse_config(self, data: Any) -> Any:
        """Turn the parsed YAML document into the application's config object."""
        return {} if data is None else data

    def load_config(self, config_path: str) -> Any:
        """Read and parse the YAML file, store the result in self.config and return it."""
        try:
            with open(config_path, "rb") as fh:
                raw = fh.read()
        except OSError:
            log.error("Read yaml failed path=%s", config_path)
            raise
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            log.error("unmarshal yaml failed: %s", exc)
            raise
        self.config = self.parse_config(data)
        return self.config


def start_app(
    app: Application,
    app_name: str,
    config_path: str,
    cancel_print: bool,
    close_debug: bool,
) -> None:
    """Set up logging, load config, start services and block until SIGINT or SIGTERM."""
    logsetup.init(app_name, cancel_print, False)
    try:
        try:
            app.load_config(config_path)
        except Exception as exc:
            log.error("Load config failed: %s", exc)
            raise
        try:
            app.init_services()
        except Exception as exc:
            log.error("Init services failed: %s", exc)
            raise
        log.info("CPU count num=%s", os.cpu_count())
        log.info("Server started successfully.")
        wait_for_terminate()
    finally:
        logsetup.sync()