"""Interface the popup controller drives."""

from typing import Protocol

from .models import Country, ProxyMode, UIStateDescriptor


class PopupView(Protocol):
    def show_state(self, state: UIStateDescriptor) -> None:
        """Replace banner title, description and colors."""

    def set_checked(self, mode: ProxyMode | None) -> None:
        """Check the control for ``mode``; None unchecks all."""

    def set_china_visible(self, visible: bool) -> None: ...

    def set_polyjuice_visible(self, visible: bool) -> None: ...

    def set_countries(self, countries: list[Country], selected: str | None) -> None:
        """Replace selector entries, selecting ``selected`` if given."""

    def set_country_selector_enabled(self, enabled: bool) -> None: ...
