"""Settings store: persisted popup settings over a key-value backend."""

import asyncio
import logging
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any, Protocol

import orjson

from .messaging import MessageChannel, MessageChannelError
from .models import (
    Action,
    PersistedSettings,
    ProxyMode,
    SELECTABLE_MODES,
    StorageKey,
    TRUE_TOKEN,
)
from .tasks import spawn_task

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class StorageCorruptedError(StorageError):
    """Raised when storage file is corrupted."""

    pass


class KeyValueStore(Protocol):
    """String key-value store holding the persisted settings."""

    async def read(self, keys: list[str]) -> dict[str, Any]: ...

    async def write(self, values: dict[str, Any]) -> None: ...


class ChannelKeyValueStore:
    """Key-value store owned by the coordinator, reached over its channel."""

    def __init__(self, channel: MessageChannel):
        self._channel = channel

    async def read(self, keys: list[str]) -> dict[str, Any]:
        reply = await self._channel.request(Action.READ_LOCAL_STORAGE, keys=list(keys))
        values = reply.get("values") or {}
        if not isinstance(values, dict):
            raise StorageError(f"Unexpected storage values: {values!r}")
        return {k: v for k, v in values.items() if k in keys}

    async def write(self, values: dict[str, Any]) -> None:
        await self._channel.request(Action.WRITE_LOCAL_STORAGE, values=dict(values))


class JsonFileKeyValueStore:
    """Key-value store kept as one JSON object in a local file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Settings file: {self._path}")

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = orjson.loads(self._path.read_bytes())
        except orjson.JSONDecodeError as e:
            logger.error(f"Invalid JSON in settings file: {e}")
            raise StorageCorruptedError(f"Settings file is corrupted: {e}")
        if not isinstance(data, dict):
            raise StorageCorruptedError("Settings file does not hold an object")
        return data

    def _atomic_write(self, data: bytes) -> None:
        """Write file atomically to prevent corruption.

        Raises:
            StorageError: If write fails
        """
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.stem}_", suffix=".tmp"
            )
        except OSError as e:
            raise StorageError(f"Failed to create temp file: {e}")

        try:
            with open(fd, "wb") as f:
                f.write(data)
            Path(temp_path).replace(self._path)
            logger.debug(f"Atomically wrote {self._path}")
        except OSError as e:
            try:
                Path(temp_path).unlink()
            except OSError:
                pass
            raise StorageError(f"Failed to write {self._path}: {e}")

    async def read(self, keys: list[str]) -> dict[str, Any]:
        data = self._load()
        return {k: data[k] for k in keys if k in data}

    async def write(self, values: dict[str, Any]) -> None:
        data = self._load()
        data.update(values)
        self._atomic_write(orjson.dumps(data, option=orjson.OPT_INDENT_2))


# Settings field -> reserved storage key
FIELD_KEYS = {
    "enabled": StorageKey.ENABLED,
    "show_china_option": StorageKey.SHOW_CHINA_PROXY,
    "polyjuice_country": StorageKey.SELECTED_COUNTRY,
    "extra_pac_params": StorageKey.EXTRA_PAC_PARAMS,
    "break_proxy": StorageKey.BREAK_PROXY,
}

_BOOLEAN_FIELDS = ("show_china_option", "break_proxy")


def _encode_bool(value: Any) -> str:
    return TRUE_TOKEN if value else ""


class Storage:
    """In-memory cache of the persisted settings."""

    def __init__(self, backend: KeyValueStore):
        self._backend = backend
        self.settings = PersistedSettings()

    async def load(self) -> PersistedSettings:
        """Read the persisted settings into the cache.

        Missing or invalid values keep their defaults.

        Raises:
            MessageChannelError: If the coordinator store can't be read.
            StorageError: If the local store can't be read.
        """
        values = await self._backend.read(list(StorageKey.ALL))

        mode = ProxyMode.from_token(values.get(StorageKey.ENABLED))
        if mode in SELECTABLE_MODES:
            self.settings.enabled = mode
        elif StorageKey.ENABLED in values:
            logger.debug("Ignoring stored mode %r", values[StorageKey.ENABLED])

        self.settings.show_china_option = (
            values.get(StorageKey.SHOW_CHINA_PROXY) == TRUE_TOKEN
        )
        self.settings.break_proxy = values.get(StorageKey.BREAK_PROXY) == TRUE_TOKEN

        if StorageKey.SELECTED_COUNTRY in values:
            self.settings.polyjuice_country = str(values[StorageKey.SELECTED_COUNTRY])
        if StorageKey.EXTRA_PAC_PARAMS in values:
            self.settings.extra_pac_params = str(values[StorageKey.EXTRA_PAC_PARAMS])

        logger.info(
            "Loaded settings: mode=%s china=%s country=%r",
            self.settings.enabled.name,
            self.settings.show_china_option,
            self.settings.polyjuice_country,
        )
        return replace(self.settings)

    def set(self, partial: dict[str, Any]) -> asyncio.Task | None:
        """Update the cache and persist ``partial`` in the background.

        Known fields are written under their reserved key; other keys are
        written through unchanged. The returned task never raises; write
        failures are logged.
        """
        if "enabled" in partial and ProxyMode.from_token(partial["enabled"]) is None:
            raise ValueError(f"Unknown proxy mode: {partial['enabled']!r}")

        values: dict[str, Any] = {}
        for name, value in partial.items():
            key = FIELD_KEYS.get(name)
            if key is None:
                values[name] = value
                continue

            if name == "enabled":
                mode = ProxyMode.from_token(value)
                self.settings.enabled = mode
                values[key] = mode.value
            elif name in _BOOLEAN_FIELDS:
                setattr(self.settings, name, bool(value))
                values[key] = _encode_bool(value)
            else:
                setattr(self.settings, name, str(value))
                values[key] = str(value)

        return spawn_task(self._write(values), context="settings write")

    async def _write(self, values: dict[str, Any]) -> None:
        try:
            await self._backend.write(values)
        except (MessageChannelError, StorageError) as e:
            logger.warning("Failed to persist settings %s: %s", sorted(values), e)
