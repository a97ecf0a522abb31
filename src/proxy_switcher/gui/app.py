"""Popup application entry point."""

import asyncio
import logging
import os
import sys
from pathlib import Path

from PyQt6.QtCore import QObject
from PyQt6.QtWidgets import QApplication
import qasync

from ..config import AppConfig, load_config
from ..logging_setup import setup_logging
from .controller import PopupController
from .countries import country_namer
from .log_sink import ChannelLogSink, LoggerSink
from .messaging import MessageChannel, WebSocketTransport
from .models import ProxyMode
from .popup import ProxyPopup
from .security import install_secure_logging
from .storage import ChannelKeyValueStore, JsonFileKeyValueStore, Storage
from .tasks import spawn_task

logger = logging.getLogger(__name__)


class PopupSession(QObject):
    """Owns the popup widget, its channels and its controller."""

    def __init__(self, config: AppConfig):
        super().__init__()
        self.popup = ProxyPopup()
        self.popup.resize(config.gui.width, config.gui.height)

        self.coordinator = MessageChannel(
            WebSocketTransport(config.coordinator.url, config.coordinator.request_timeout),
            "coordinator",
        )
        self.companion = MessageChannel(
            WebSocketTransport(config.companion.url, config.companion.request_timeout),
            "companion",
        )

        if config.storage.backend == "file":
            backend = JsonFileKeyValueStore(Path(config.storage.settings_file).expanduser())
        else:
            backend = ChannelKeyValueStore(self.coordinator)

        log = ChannelLogSink(self.coordinator) if config.gui.forward_logs else LoggerSink()

        self.controller = PopupController(
            view=self.popup,
            coordinator=self.coordinator,
            companion=self.companion,
            storage=Storage(backend),
            log=log,
            namer=country_namer(config.gui.locale),
        )

        self.popup.mode_selected.connect(self._on_mode_selected)
        self.popup.country_selected.connect(self._on_country_selected)

    def start(self) -> None:
        spawn_task(self.controller.start(), context="popup start")

    @qasync.asyncSlot(object)
    async def _on_mode_selected(self, mode: ProxyMode):
        await self.controller.select_mode(mode)

    @qasync.asyncSlot(str)
    async def _on_country_selected(self, code: str):
        await self.controller.select_country(code)

    async def close(self) -> None:
        await asyncio.gather(
            self.coordinator.close(), self.companion.close(), return_exceptions=True
        )


async def _run(app: QApplication, config: AppConfig) -> None:
    """Show the popup and keep it alive until the application quits."""
    closed = asyncio.Event()
    app.aboutToQuit.connect(closed.set)

    session = PopupSession(config)
    session.popup.show()
    session.start()

    await closed.wait()
    await session.close()


def main():
    """Main entry point."""
    config_dir = os.environ.get("APP_CONFIG_DIR") or "config"
    config = load_config(config_dir)

    setup_logging(config.logging)
    # Filter sits on handlers, so install after they exist
    install_secure_logging()
    logger.info("Starting %s %s", config.name, config.version)

    app = QApplication(sys.argv)
    app.setStyle("Fusion")
    app.setApplicationName(config.name)

    # Setup async event loop with qasync
    loop = qasync.QEventLoop(app)
    asyncio.set_event_loop(loop)

    with loop:
        loop.run_until_complete(_run(app, config))


if __name__ == "__main__":
    main()
