"""Data models for proxy modes, persisted settings and popup states."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ProxyMode(Enum):
    """Proxy routing mode. Values are the tokens used on the wire and in storage."""

    ON = "O"
    DIRECT = "D"
    SYSTEM = "S"
    CHINA = "C"
    POLYJUICE = "P"
    # Reported by the coordinator only, never chosen by the user
    BAKED_IN = "B"

    @classmethod
    def from_token(cls, token: Any) -> "ProxyMode | None":
        """Return the mode for a wire token, or None if it isn't one."""
        if isinstance(token, cls):
            return token
        try:
            return cls(token)
        except ValueError:
            return None


SELECTABLE_MODES: tuple[ProxyMode, ...] = (
    ProxyMode.ON,
    ProxyMode.DIRECT,
    ProxyMode.SYSTEM,
    ProxyMode.CHINA,
    ProxyMode.POLYJUICE,
)


class Action(Enum):
    """Message actions exchanged with the coordinator and the companion."""

    GET_STATE = "GET_STATE"
    SET_PROXY = "SET_PROXY"
    GET_POLYJUICE_COUNTRIES = "GET_POLYJUICE_COUNTRIES"
    START_POLYJUICE = "START_POLYJUICE"
    END_POLYJUICE = "END_POLYJUICE"
    POLYJUICE_ERROR = "POLYJUICE_ERROR"
    UI_CHANGE = "UI_CHANGE"
    HELLO = "hello"
    READ_LOCAL_STORAGE = "READ_LOCAL_STORAGE"
    WRITE_LOCAL_STORAGE = "WRITE_LOCAL_STORAGE"
    LOG = "LOG"


class StorageKey:
    """Reserved keys in the key-value store."""

    ENABLED = "ENABLED"
    SHOW_CHINA_PROXY = "SHOW_CHINA_PROXY"
    EXTRA_PAC_PARAMS = "EXTRA_PAC_PARAMS"
    SELECTED_COUNTRY = "SELECTED_COUNTRY"
    BREAK_PROXY = "BREAK_PROXY"

    ALL = (ENABLED, SHOW_CHINA_PROXY, EXTRA_PAC_PARAMS, SELECTED_COUNTRY, BREAK_PROXY)


# Booleans are stored as this token; anything else (or absence) reads as False
TRUE_TOKEN = "T"


@dataclass
class PersistedSettings:
    """Settings cached by the popup and persisted in the key-value store."""

    enabled: ProxyMode = ProxyMode.ON
    show_china_option: bool = False
    polyjuice_country: str = ""
    extra_pac_params: str = ""
    break_proxy: bool = False


@dataclass(frozen=True, slots=True)
class PopupText:
    """Banner shown at the top of the popup."""

    title: str
    description: str
    colors: tuple[str, str]

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "colors": list(self.colors),
        }


@dataclass(frozen=True, slots=True)
class UIStateDescriptor:
    """Static description of how the popup looks in a given state."""

    name: str
    title: str
    icon: str
    popup: PopupText

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "title": self.title,
            "icon": self.icon,
            "popup": self.popup.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UIStateDescriptor":
        """Build a descriptor from its wire form.

        Raises:
            ValueError: If required fields are missing or malformed.
        """
        try:
            popup = data["popup"]
            colors = popup["colors"]
            if len(colors) != 2:
                raise ValueError(f"Expected two popup colors, got {len(colors)}")
            return cls(
                name=str(data["name"]),
                title=str(data.get("title", "")),
                icon=str(data.get("icon", "")),
                popup=PopupText(
                    title=str(popup.get("title", "")),
                    description=str(popup.get("description", "")),
                    colors=(str(colors[0]), str(colors[1])),
                ),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid state descriptor: {e}") from e


@dataclass(frozen=True, slots=True)
class Country:
    """Polyjuice routing country as shown in the selector."""

    code: str
    name: str
    flag: str = field(default="", compare=False)

    def label(self) -> str:
        return f"{self.flag} {self.name}".strip()
