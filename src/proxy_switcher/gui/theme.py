"""Popup theme."""

from dataclasses import dataclass
from typing import ClassVar

from .models import UIStateDescriptor


@dataclass(frozen=True, slots=True)
class Colors:
    """Color palette - WCAG AA compliant."""

    bg_primary: str = "#1a1a1a"
    bg_secondary: str = "#161616"
    bg_hover: str = "#2a2a2a"

    accent: str = "#888888"

    text_primary: str = "#ffffff"
    text_secondary: str = "#d1d5db"
    text_muted: str = "#8b92a0"

    border: str = "#2e2e2e"


@dataclass(frozen=True, slots=True)
class Spacing:
    """Spacing values based on 4px grid."""

    xs: int = 4
    sm: int = 8
    md: int = 12
    lg: int = 16


class Theme:
    """Colors, spacing and stylesheets for the popup."""

    colors: ClassVar[Colors] = Colors()
    spacing: ClassVar[Spacing] = Spacing()

    @classmethod
    def get_stylesheet(cls) -> str:
        c = cls.colors
        return f"""
            QWidget {{
                background-color: {c.bg_primary};
                color: {c.text_primary};
                font-size: 13px;
            }}
            QRadioButton {{
                padding: 6px 4px;
            }}
            QRadioButton:hover {{
                background-color: {c.bg_hover};
            }}
            QComboBox {{
                background-color: {c.bg_secondary};
                border: 1px solid {c.border};
                border-radius: 4px;
                padding: 4px 8px;
            }}
            QComboBox:disabled {{
                color: {c.text_muted};
            }}
        """

    @classmethod
    def banner_stylesheet(cls, state: UIStateDescriptor) -> str:
        """Vertical gradient between the two state colors."""
        top, bottom = state.popup.colors
        return f"""
            #stateBanner {{
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 {top}, stop:1 {bottom});
                border-radius: 6px;
            }}
            #stateBanner QLabel {{
                background: transparent;
                color: {cls.colors.text_primary};
            }}
        """
