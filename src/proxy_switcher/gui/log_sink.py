"""Logging sinks injected into the popup controller."""

import logging
from typing import Protocol

from .messaging import MessageChannel, MessageChannelError
from .models import Action
from .tasks import spawn_task

logger = logging.getLogger(__name__)


class LogSink(Protocol):
    def log(self, component: str, fn: str, message: str, level: int = logging.INFO) -> None: ...


class LoggerSink:
    """Route entries to ``proxy_switcher.<component>`` loggers."""

    def __init__(self, prefix: str = "proxy_switcher"):
        self._prefix = prefix

    def log(self, component: str, fn: str, message: str, level: int = logging.INFO) -> None:
        logging.getLogger(f"{self._prefix}.{component}").log(level, "%s: %s", fn, message)


class ChannelLogSink(LoggerSink):
    """Log locally and forward each entry to the coordinator."""

    def __init__(self, channel: MessageChannel, prefix: str = "proxy_switcher"):
        super().__init__(prefix)
        self._channel = channel

    def log(self, component: str, fn: str, message: str, level: int = logging.INFO) -> None:
        super().log(component, fn, message, level)
        spawn_task(self._forward(component, fn, message), context="log forward")

    async def _forward(self, component: str, fn: str, message: str) -> None:
        try:
            await self._channel.request(
                Action.LOG, component=component, fn=fn, message=message
            )
        except MessageChannelError as e:
            # Local logger only, forwarding the failure would loop
            logger.debug("Log forwarding failed: %s", e)
