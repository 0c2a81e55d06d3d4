"""Key/value settings stores and endpoint persistence."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import platform
import threading
from typing import Any, Protocol

import voluptuous as vol

from .const import (
    CONF_CONNECTION_TYPE,
    CONF_PRINTER_DEVICE_ID,
    CONF_PRINTER_DEVICE_NAME,
    CONF_PRINTER_IP,
    CONF_PRINTER_PATH,
    CONNECTION_TYPE_BLUETOOTH,
    CONNECTION_TYPE_NETWORK,
    CONNECTION_TYPE_SERIAL,
    ENDPOINT_KEYS,
)
from .models import BluetoothEndpoint, ConnectionEndpoint, NetworkEndpoint, SerialEndpoint
from .security import sanitize_log_message, validate_ipv4, validate_serial_path

_LOGGER = logging.getLogger(__name__)

_MISSING = object()


class SettingsStore(Protocol):
    """Injected key/value capability used to persist the current endpoint."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySettingsStore:
    """Process-local store, used when persistence is not wanted."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)


def settings_path() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "StickyPrint" / "settings.json"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "StickyPrint" / "settings.json"
    return Path.home() / ".config" / "stickyprint" / "settings.json"


class JsonSettingsStore:
    """Settings persisted as a flat JSON object, rewritten on every change."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or settings_path()
        self._lock = threading.Lock()
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        data: dict[str, Any] = {}
        if self._path.exists():
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as err:
                _LOGGER.warning(
                    "Ignoring unreadable settings file %s: %s", self._path, sanitize_log_message(str(err))
                )
            else:
                if isinstance(raw, dict):
                    data = raw
        self._data = data
        return data

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._load()[key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._load().pop(key, _MISSING) is not _MISSING:
                self._save()


ENDPOINT_SCHEMA = vol.Any(
    vol.Schema(
        {
            vol.Required(CONF_CONNECTION_TYPE): CONNECTION_TYPE_NETWORK,
            vol.Required(CONF_PRINTER_IP): validate_ipv4,
        },
        extra=vol.REMOVE_EXTRA,
    ),
    vol.Schema(
        {
            vol.Required(CONF_CONNECTION_TYPE): CONNECTION_TYPE_SERIAL,
            vol.Required(CONF_PRINTER_PATH): validate_serial_path,
        },
        extra=vol.REMOVE_EXTRA,
    ),
    vol.Schema(
        {
            vol.Required(CONF_CONNECTION_TYPE): CONNECTION_TYPE_BLUETOOTH,
            vol.Required(CONF_PRINTER_DEVICE_ID): vol.All(str, vol.Length(min=1)),
            vol.Optional(CONF_PRINTER_DEVICE_NAME, default=""): str,
        },
        extra=vol.REMOVE_EXTRA,
    ),
)


def _infer_connection_type(store: SettingsStore) -> str | None:
    """Older settings files carry only ``printerPath`` or ``printerIP``."""
    if store.get(CONF_PRINTER_IP):
        return CONNECTION_TYPE_NETWORK
    if store.get(CONF_PRINTER_PATH):
        return CONNECTION_TYPE_SERIAL
    if store.get(CONF_PRINTER_DEVICE_ID):
        return CONNECTION_TYPE_BLUETOOTH
    return None


def load_endpoint(store: SettingsStore, port: int | None = None) -> ConnectionEndpoint | None:
    """Return the persisted endpoint, or None if nothing valid is stored."""
    connection_type = store.get(CONF_CONNECTION_TYPE) or _infer_connection_type(store)
    if connection_type is None:
        return None
    raw = {key: store.get(key) for key in ENDPOINT_KEYS if store.get(key) is not None}
    raw[CONF_CONNECTION_TYPE] = connection_type
    try:
        data = ENDPOINT_SCHEMA(raw)
    except vol.Invalid as err:
        _LOGGER.warning("Discarding invalid persisted printer settings: %s", sanitize_log_message(str(err)))
        return None

    if connection_type == CONNECTION_TYPE_NETWORK:
        if port is not None:
            return NetworkEndpoint(data[CONF_PRINTER_IP], port=port)
        return NetworkEndpoint(data[CONF_PRINTER_IP])
    if connection_type == CONNECTION_TYPE_SERIAL:
        return SerialEndpoint(data[CONF_PRINTER_PATH])
    return BluetoothEndpoint(data[CONF_PRINTER_DEVICE_ID], data[CONF_PRINTER_DEVICE_NAME])


def clear_endpoint(store: SettingsStore) -> None:
    for key in ENDPOINT_KEYS:
        store.delete(key)


def save_endpoint(store: SettingsStore, endpoint: ConnectionEndpoint) -> None:
    """Persist an endpoint, clearing keys that belong to the other kinds."""
    clear_endpoint(store)
    if isinstance(endpoint, NetworkEndpoint):
        store.set(CONF_PRINTER_IP, endpoint.address)
    elif isinstance(endpoint, SerialEndpoint):
        store.set(CONF_PRINTER_PATH, endpoint.path)
    else:
        store.set(CONF_PRINTER_DEVICE_ID, endpoint.device_id)
        store.set(CONF_PRINTER_DEVICE_NAME, endpoint.device_name)
    store.set(CONF_CONNECTION_TYPE, endpoint.kind)
