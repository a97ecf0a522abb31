import asyncio
import logging

import orjson
import pytest

from fakes import FakeTransport, channel, coordinator_transport, settle
from proxy_switcher.config import LoggingConfig
from proxy_switcher.gui.log_sink import ChannelLogSink, LoggerSink
from proxy_switcher.gui.security import SecureLogFilter
from proxy_switcher.logging_setup import setup_logging


def _record(msg, args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_filter_redacts_sensitive_dict_keys():
    record = _record("settings %s", ({"EXTRA_PAC_PARAMS": "token=abc", "ENABLED": "O"},))

    SecureLogFilter().filter(record)

    assert record.getMessage() == "settings {'EXTRA_PAC_PARAMS': '[REDACTED]', 'ENABLED': 'O'}"


def test_filter_redacts_sensitive_string_args():
    record = _record("%s = %s", ("auth_token", "region=eu"))

    assert SecureLogFilter().filter(record) is True
    assert record.args == ("[REDACTED]", "region=eu")


def test_logger_sink_uses_component_logger(caplog):
    caplog.set_level(logging.INFO)

    LoggerSink().log("popup", "start", "coordinator unreachable", logging.ERROR)

    [record] = caplog.records
    assert record.name == "proxy_switcher.popup"
    assert record.levelno == logging.ERROR
    assert record.getMessage() == "start: coordinator unreachable"


def test_channel_sink_forwards_to_coordinator():
    transport = coordinator_transport({})

    async def scenario():
        ChannelLogSink(channel(transport)).log("polyjuice", "select_country", "routing through FR")
        await settle()

    asyncio.run(scenario())

    assert transport.sent == [
        {
            "action": "LOG",
            "component": "polyjuice",
            "fn": "select_country",
            "message": "routing through FR",
        }
    ]


def test_channel_sink_survives_forwarding_failure(caplog):
    caplog.set_level(logging.INFO)

    def fail(_):
        raise ConnectionRefusedError("coordinator down")

    async def scenario():
        ChannelLogSink(channel(FakeTransport({"LOG": fail}))).log("popup", "start", "hello")
        await settle()

    asyncio.run(scenario())

    assert "start: hello" in caplog.text
    assert "Background task failed" not in caplog.text


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _logging_config(tmp_path, **overrides) -> LoggingConfig:
    values = dict(
        level="INFO",
        format="%(levelname)s %(message)s",
        date_format="%H:%M:%S",
        console=False,
        file=True,
        json=True,
        file_path=str(tmp_path / "logs" / "popup.log"),
        max_size_mb=1,
        backup_count=1,
    )
    values.update(overrides)
    return LoggingConfig(**values)


def test_setup_logging_writes_json_lines(tmp_path, restore_root_logger):
    config = _logging_config(tmp_path)

    setup_logging(config)
    logging.getLogger("proxy_switcher.popup").warning("mode %s", "D")
    logging.getLogger("proxy_switcher.popup").debug("not written")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = (tmp_path / "logs" / "popup.log").read_text().splitlines()
    assert len(lines) == 1
    entry = orjson.loads(lines[0])
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "proxy_switcher.popup"
    assert entry["message"] == "mode D"


def test_setup_logging_rejects_unknown_level(tmp_path, restore_root_logger):
    with pytest.raises(ValueError, match="LOUD"):
        setup_logging(_logging_config(tmp_path, level="LOUD"))
