import logging

import pytest
import yaml

from babo import logsetup
from babo.application import Application, DefaultApplication, start_app


@pytest.fixture(autouse=True)
def _isolated_logging(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    yield
    logger = logsetup.get_logger()
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class _App(DefaultApplication):
    def __init__(self):
        super().__init__()
        self.started = False

    def init_services(self):
        self.started = True


class _FailingApp(DefaultApplication):
    def init_services(self):
        raise RuntimeError("boom")


def test_application_is_abstract():
    with pytest.raises(TypeError):
        Application()


def test_load_config_reads_yaml(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("gameserver:\n  host: 127.0.0.1\n  port: 10005\n")
    app = _App()
    result = DefaultApplication.load_config(app, str(path))
    assert result == {"gameserver": {"host": "127.0.0.1", "port": 10005}}
    assert app.config == result


def test_load_config_empty_file_gives_empty_config(tmp_path):
    path = tmp_path / "empty.yml"
    path.write_text("")
    app = _App()
    assert DefaultApplication.load_config(app, str(path)) == {}


def test_load_config_missing_file(tmp_path):
    app = _App()
    with pytest.raises(FileNotFoundError):
        DefaultApplication.load_config(app, str(tmp_path / "missing.yml"))


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yml"
    path.write_text("a: [1, 2\n")
    app = _App()
    with pytest.raises(yaml.YAMLError):
        DefaultApplication.load_config(app, str(path))


def test_start_app_missing_config_does_not_init(tmp_path):
    app = _App()
    with pytest.raises(FileNotFoundError):
        start_app(app, "gameserver", str(tmp_path / "nope.yml"), True, False)
    assert app.started is False
    assert (tmp_path / "log" / "info" / "gameserver.log").exists()


def test_start_app_init_failure_is_raised_and_logged(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("key: value\n")
    app = _FailingApp()
    with pytest.raises(RuntimeError, match="boom"):
        start_app(app, "gameserver", str(path), True, False)
    assert app.config == {"key": "value"}
    err_log = tmp_path / "log" / "err" / "gameserver.err.log"
    assert "Init services failed" in err_log.read_text(encoding="utf-8")