"""Popup controller: proxy mode selection and its settings/session protocol."""

import asyncio
import logging

from .countries import CountryNamer, country_namer
from .log_sink import LoggerSink, LogSink
from .messaging import MessageChannel, MessageChannelError
from .models import Action, ProxyMode, SELECTABLE_MODES
from .polyjuice import PolyjuiceFlow
from .states import STATES, resolve_state, state_for_mode
from .storage import Storage, StorageError
from .tasks import spawn_task
from .view import PopupView

COMPONENT = "popup"


class PopupController:
    """Binds the popup view to settings, the coordinator and the companion.

    The checked control is the primary state: one of the selectable modes,
    or None while the popup is pending.
    """

    def __init__(
        self,
        view: PopupView,
        coordinator: MessageChannel,
        companion: MessageChannel,
        storage: Storage,
        log: LogSink | None = None,
        namer: CountryNamer | None = None,
    ):
        self._view = view
        self._coordinator = coordinator
        self._companion = companion
        self._storage = storage
        self._log = log or LoggerSink()
        self.checked: ProxyMode | None = None
        self.probe_task: asyncio.Task | None = None
        self.polyjuice = PolyjuiceFlow(
            view=view,
            coordinator=coordinator,
            companion=companion,
            storage=storage,
            log=self._log,
            namer=namer or country_namer("en"),
            is_checked=lambda: self.checked is ProxyMode.POLYJUICE,
        )

    async def start(self) -> bool:
        """Load settings and the coordinator state into the view.

        Returns False if initialization was aborted.
        """
        self._view.show_state(STATES["PENDING"])
        self._view.set_polyjuice_visible(False)
        self._coordinator.on(Action.UI_CHANGE, self._on_ui_change)
        self.probe_task = spawn_task(self._probe_companion(), context="companion probe")

        try:
            settings = await self._storage.load()
        except (MessageChannelError, StorageError) as e:
            self._log.log(COMPONENT, "start", f"loading settings failed: {e}", logging.ERROR)
            return False

        self._view.set_china_visible(settings.show_china_option)
        self._check(settings.enabled)

        try:
            reply = await self._coordinator.request(Action.GET_STATE)
        except MessageChannelError as e:
            self._log.log(COMPONENT, "start", f"GET_STATE failed: {e.message}", logging.ERROR)
            return False

        self._check(self._reported_mode(reply))
        try:
            self._view.show_state(resolve_state(reply.get("state")))
        except ValueError as e:
            self._log.log(COMPONENT, "start", f"bad state from coordinator: {e}", logging.WARNING)
            if self.checked is not None:
                self._view.show_state(state_for_mode(self.checked))

        if self.checked is ProxyMode.POLYJUICE:
            await self.polyjuice.fetch_countries()
        return True

    def _reported_mode(self, reply: dict) -> ProxyMode | None:
        mode = ProxyMode.from_token(reply.get("enabled"))
        if mode is ProxyMode.BAKED_IN:
            # Hard-coded mode: show the user's stored choice instead
            mode = ProxyMode.from_token(reply.get("storageEnabled"))
        if mode is None:
            self._log.log(COMPONENT, "start", f"unknown mode in {reply!r}", logging.WARNING)
            return self.checked
        return mode

    def _check(self, mode: ProxyMode | None) -> None:
        if mode is not None and mode not in SELECTABLE_MODES:
            return
        self.checked = mode
        self._view.set_checked(mode)

    async def select_mode(self, mode: ProxyMode) -> None:
        """Handle the user picking a mode control."""
        if mode not in SELECTABLE_MODES:
            raise ValueError(f"Mode {mode.name} can't be selected")
        if mode is self.checked:
            # Re-clicking the checked control is not a change
            return

        previous = self.checked
        self._check(mode)
        self._storage.set({"enabled": mode})

        if mode is ProxyMode.POLYJUICE:
            self._view.show_state(STATES["POLYJUICE_PENDING"])
            await self.polyjuice.fetch_countries()
            return

        if previous is ProxyMode.POLYJUICE:
            await self.polyjuice.tear_down()

        try:
            await self._coordinator.request(Action.SET_PROXY, enabled=mode.value)
        except MessageChannelError as e:
            # The control stays checked; the coordinator pushes UI_CHANGE if it reverts
            self._log.log(COMPONENT, "select_mode", f"SET_PROXY {mode.name} failed: {e.message}", logging.ERROR)
            return
        self._log.log(COMPONENT, "select_mode", f"proxy mode set to {mode.name}")

    async def select_country(self, code: str) -> None:
        """Handle the user picking a Polyjuice country."""
        await self.polyjuice.select_country(code)

    async def _on_ui_change(self, message: dict) -> dict:
        state = resolve_state(message.get("state"))
        self._view.show_state(state)
        self._log.log(COMPONENT, "ui_change", f"state {state.name}", logging.DEBUG)
        return {}

    async def _probe_companion(self) -> None:
        try:
            await self._companion.request(Action.HELLO)
        except MessageChannelError as e:
            self._log.log(COMPONENT, "probe", f"routing extension not available: {e.message}", logging.DEBUG)
            return
        self._view.set_polyjuice_visible(True)
