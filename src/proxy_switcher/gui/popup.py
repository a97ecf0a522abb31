"""Proxy mode popup widget."""

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import (
    QButtonGroup,
    QComboBox,
    QFrame,
    QLabel,
    QRadioButton,
    QVBoxLayout,
    QWidget,
)

from .models import Country, ProxyMode, UIStateDescriptor
from .theme import Theme

MODE_LABELS = {
    ProxyMode.ON: "Proxy on",
    ProxyMode.DIRECT: "Direct connection",
    ProxyMode.SYSTEM: "Use system settings",
    ProxyMode.CHINA: "China connectivity",
    ProxyMode.POLYJUICE: "Polyjuice (choose a country)",
}


class ProxyPopup(QWidget):
    """Mode radio buttons, state banner and Polyjuice country selector.

    Emits signals only for user actions; setters called by the controller
    stay silent.
    """

    mode_selected = pyqtSignal(object)  # ProxyMode
    country_selected = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._buttons: dict[ProxyMode, QRadioButton] = {}
        self._setup_ui()

    def _setup_ui(self):
        """Setup popup UI."""
        self.setObjectName("proxyPopup")
        self.setStyleSheet(Theme.get_stylesheet())

        layout = QVBoxLayout(self)
        sp = Theme.spacing
        layout.setContentsMargins(sp.lg, sp.lg, sp.lg, sp.lg)
        layout.setSpacing(sp.sm)

        # State banner
        self._banner = QFrame()
        self._banner.setObjectName("stateBanner")
        banner_layout = QVBoxLayout(self._banner)
        banner_layout.setContentsMargins(sp.md, sp.md, sp.md, sp.md)
        banner_layout.setSpacing(sp.xs)

        self._title = QLabel("")
        self._title.setStyleSheet("font-size: 15px; font-weight: 600;")
        self._description = QLabel("")
        self._description.setWordWrap(True)
        banner_layout.addWidget(self._title)
        banner_layout.addWidget(self._description)
        layout.addWidget(self._banner)

        # Mode controls
        self._group = QButtonGroup(self)
        self._group.setExclusive(True)
        for index, (mode, label) in enumerate(MODE_LABELS.items()):
            button = QRadioButton(label)
            button.setObjectName(f"mode_{mode.name.lower()}")
            self._group.addButton(button, index)
            self._buttons[mode] = button
            layout.addWidget(button)
        self._modes = list(MODE_LABELS)
        # idClicked fires for user clicks only
        self._group.idClicked.connect(lambda i: self.mode_selected.emit(self._modes[i]))

        self._country_combo = QComboBox()
        self._country_combo.setObjectName("countrySelector")
        self._country_combo.setEnabled(False)
        self._country_combo.activated.connect(self._on_country_activated)
        layout.addWidget(self._country_combo)

        layout.addStretch()

        self._buttons[ProxyMode.CHINA].setVisible(False)
        self._buttons[ProxyMode.POLYJUICE].setVisible(False)
        self._country_combo.setVisible(False)

    def _on_country_activated(self, index: int):
        code = self._country_combo.itemData(index)
        if code:
            self.country_selected.emit(code)

    # PopupView

    def show_state(self, state: UIStateDescriptor) -> None:
        self._title.setText(state.popup.title)
        self._description.setText(state.popup.description)
        self._banner.setStyleSheet(Theme.banner_stylesheet(state))
        self.setWindowTitle(state.title)

    def set_checked(self, mode: ProxyMode | None) -> None:
        if mode is None:
            # Exclusive groups refuse to uncheck the last button
            self._group.setExclusive(False)
            for button in self._buttons.values():
                button.setChecked(False)
            self._group.setExclusive(True)
            return
        self._buttons[mode].setChecked(True)

    def set_china_visible(self, visible: bool) -> None:
        self._buttons[ProxyMode.CHINA].setVisible(visible)

    def set_polyjuice_visible(self, visible: bool) -> None:
        self._buttons[ProxyMode.POLYJUICE].setVisible(visible)
        self._country_combo.setVisible(visible)

    def set_countries(self, countries: list[Country], selected: str | None) -> None:
        self._country_combo.blockSignals(True)
        self._country_combo.clear()
        if selected is None:
            self._country_combo.addItem("Select a country…", None)
        for country in countries:
            self._country_combo.addItem(country.label(), country.code)
        if selected is not None:
            self._country_combo.setCurrentIndex(self._country_combo.findData(selected))
        self._country_combo.blockSignals(False)

    def set_country_selector_enabled(self, enabled: bool) -> None:
        self._country_combo.setEnabled(enabled)
