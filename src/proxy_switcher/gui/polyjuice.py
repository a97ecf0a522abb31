"""Polyjuice country selection and session handling."""

import logging
from enum import Enum
from typing import Callable

from .countries import CountryNamer, sort_countries
from .log_sink import LogSink
from .messaging import MessageChannel, MessageChannelError
from .models import Action, ProxyMode
from .storage import Storage
from .view import PopupView

COMPONENT = "polyjuice"


class PolyjuiceState(Enum):
    """Polyjuice sub-flow status."""

    IDLE = "idle"
    FETCHING = "fetching"
    LIST_SHOWN = "list_shown"
    STARTING = "starting"
    ACTIVE = "active"
    ERROR = "error"


class PolyjuiceFlow:
    """Fetches routing countries from the companion and starts/ends sessions.

    Session requests go to the companion; ``SET_PROXY`` and error reports
    go to the coordinator.
    """

    def __init__(
        self,
        view: PopupView,
        coordinator: MessageChannel,
        companion: MessageChannel,
        storage: Storage,
        log: LogSink,
        namer: CountryNamer,
        is_checked: Callable[[], bool],
    ):
        self._view = view
        self._coordinator = coordinator
        self._companion = companion
        self._storage = storage
        self._log = log
        self._namer = namer
        self._is_checked = is_checked
        self.state = PolyjuiceState.IDLE
        # Bumped whenever a pending country list becomes stale
        self._generation = 0

    async def fetch_countries(self) -> None:
        """Request the country list and render it."""
        self._generation += 1
        generation = self._generation
        self.state = PolyjuiceState.FETCHING

        try:
            reply = await self._companion.request(Action.GET_POLYJUICE_COUNTRIES)
        except MessageChannelError as e:
            if generation != self._generation:
                return
            self.state = PolyjuiceState.ERROR
            self._log.log(COMPONENT, "fetch_countries", f"failed: {e.message}", logging.ERROR)
            await self._report_error()
            return

        if generation != self._generation:
            self._log.log(COMPONENT, "fetch_countries", "dropping stale country list", logging.DEBUG)
            return

        codes = [str(c) for c in reply.get("countries") or []]
        if not codes:
            self._view.set_country_selector_enabled(False)
            self._log.log(COMPONENT, "fetch_countries", "no countries available", logging.WARNING)
            return

        countries = sort_countries(codes, self._namer)
        stored = self._storage.settings.polyjuice_country
        selected = stored if stored in codes else None
        self._view.set_countries(countries, selected)
        self._view.set_country_selector_enabled(True)
        self.state = PolyjuiceState.LIST_SHOWN

    async def select_country(self, code: str) -> None:
        """Persist ``code`` and start a session routed through it."""
        self.state = PolyjuiceState.STARTING
        self._storage.set({"polyjuice_country": code})

        try:
            await self._companion.request(Action.START_POLYJUICE, country=code)
        except MessageChannelError as e:
            self.state = PolyjuiceState.ERROR
            self._log.log(COMPONENT, "select_country", f"start {code} failed: {e.message}", logging.ERROR)
            await self._report_error()
            return

        self.state = PolyjuiceState.ACTIVE
        self._log.log(COMPONENT, "select_country", f"routing through {code}")
        try:
            await self._coordinator.request(
                Action.SET_PROXY, enabled=ProxyMode.POLYJUICE.value
            )
        except MessageChannelError as e:
            self._log.log(COMPONENT, "select_country", f"SET_PROXY failed: {e.message}", logging.ERROR)

    async def tear_down(self) -> None:
        """End the session and forget the chosen country."""
        self._generation += 1
        self._view.set_country_selector_enabled(False)
        self._storage.set({"polyjuice_country": ""})
        self.state = PolyjuiceState.IDLE

        try:
            await self._companion.request(Action.END_POLYJUICE)
        except MessageChannelError as e:
            self.state = PolyjuiceState.ERROR
            self._log.log(COMPONENT, "tear_down", f"failed: {e.message}", logging.ERROR)
            await self._report_error()

    async def _report_error(self) -> None:
        if not self._is_checked():
            return
        try:
            await self._coordinator.request(Action.POLYJUICE_ERROR)
        except MessageChannelError as e:
            self._log.log(COMPONENT, "report_error", f"failed: {e.message}", logging.ERROR)
