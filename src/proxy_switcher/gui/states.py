"""Popup state descriptors."""

from .models import PopupText, ProxyMode, UIStateDescriptor


_GREEN = ("#166534", "#14532d")
_GREY = ("#374151", "#1f2937")
_BLUE = ("#1e40af", "#1e3a8a")
_RED = ("#991b1b", "#7f1d1d")
_AMBER = ("#92400e", "#78350f")
_PURPLE = ("#6b21a8", "#581c87")


def _state(name: str, title: str, icon: str, heading: str, text: str, colors) -> UIStateDescriptor:
    return UIStateDescriptor(
        name=name,
        title=title,
        icon=icon,
        popup=PopupText(title=heading, description=text, colors=colors),
    )


STATES: dict[str, UIStateDescriptor] = {
    s.name: s
    for s in (
        _state(
            "ON",
            "Proxy on",
            "icon-on",
            "Proxy is on",
            "All traffic goes through the configured proxy.",
            _GREEN,
        ),
        _state(
            "DIRECT",
            "Proxy off",
            "icon-off",
            "Direct connection",
            "Traffic bypasses every proxy.",
            _GREY,
        ),
        _state(
            "SYSTEM",
            "System proxy",
            "icon-system",
            "Using system settings",
            "The operating system decides how traffic is routed.",
            _GREY,
        ),
        _state(
            "CHINA",
            "China connectivity",
            "icon-china",
            "China connectivity",
            "Traffic is routed for connectivity from mainland China.",
            _BLUE,
        ),
        _state(
            "POLYJUICE",
            "Polyjuice",
            "icon-polyjuice",
            "Polyjuice is on",
            "Traffic appears to come from the selected country.",
            _PURPLE,
        ),
        _state(
            "BAKED_IN",
            "Managed proxy",
            "icon-baked-in",
            "Proxy is managed",
            "A proxy mode is fixed by your administrator. Your choice is saved but not applied.",
            _AMBER,
        ),
        _state(
            "PENDING",
            "Loading",
            "icon-pending",
            "Loading",
            "Fetching the current proxy state.",
            _GREY,
        ),
        _state(
            "POLYJUICE_PENDING",
            "Polyjuice",
            "icon-pending",
            "Waiting for selection",
            "Choose a country to start Polyjuice.",
            _PURPLE,
        ),
        _state(
            "ERROR_LOAD",
            "Error",
            "icon-error",
            "Could not load settings",
            "The proxy state could not be read.",
            _RED,
        ),
        _state(
            "ERROR_PROXY_STOLEN",
            "Proxy overridden",
            "icon-error",
            "Another extension controls the proxy",
            "Disable the other extension to let this one manage proxy settings.",
            _RED,
        ),
        _state(
            "ERROR_POLYJUICE",
            "Polyjuice error",
            "icon-error",
            "Polyjuice failed",
            "The routing extension did not respond. Pick another mode or try again.",
            _RED,
        ),
    )
}


def state_for_mode(mode: ProxyMode) -> UIStateDescriptor:
    """Descriptor shown for a proxy mode."""
    return STATES[mode.name]


def resolve_state(value) -> UIStateDescriptor:
    """Resolve a descriptor from its wire form or its name.

    Raises:
        ValueError: If the value is neither a known state name nor a valid descriptor.
    """
    if isinstance(value, UIStateDescriptor):
        return value
    if isinstance(value, str):
        if value not in STATES:
            raise ValueError(f"Unknown state: {value}")
        return STATES[value]
    if isinstance(value, dict):
        return UIStateDescriptor.from_dict(value)
    raise ValueError(f"Invalid state descriptor: {value!r}")
