"""Tests for settings stores and endpoint persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stickyprint.models import BluetoothEndpoint, NetworkEndpoint, SerialEndpoint
from stickyprint.store import (
    JsonSettingsStore,
    MemorySettingsStore,
    clear_endpoint,
    load_endpoint,
    save_endpoint,
)


class TestEndpointPersistence:
    @pytest.mark.parametrize(
        "endpoint",
        [
            NetworkEndpoint("192.168.1.20"),
            SerialEndpoint("/dev/rfcomm0"),
            BluetoothEndpoint("AA:BB:CC:DD:EE:FF", "MTP-II"),
        ],
    )
    def test_save_then_load(self, store: MemorySettingsStore, endpoint) -> None:
        save_endpoint(store, endpoint)
        assert load_endpoint(store) == endpoint

    def test_switching_kind_clears_other_keys(self, store: MemorySettingsStore) -> None:
        save_endpoint(store, NetworkEndpoint("192.168.1.20"))
        save_endpoint(store, SerialEndpoint("COM3"))
        assert store.as_dict() == {"connectionType": "serial", "printerPath": "COM3"}

    def test_legacy_keys_without_type(self) -> None:
        assert load_endpoint(MemorySettingsStore({"printerIP": "10.0.0.25"})) == NetworkEndpoint("10.0.0.25")
        assert load_endpoint(MemorySettingsStore({"printerPath": "/dev/ttyS0"})) == SerialEndpoint("/dev/ttyS0")

    def test_port_override(self, store: MemorySettingsStore) -> None:
        store.set("printerIP", "10.0.0.25")
        assert load_endpoint(store, port=9101) == NetworkEndpoint("10.0.0.25", port=9101)

    def test_invalid_values_are_discarded(self) -> None:
        assert load_endpoint(MemorySettingsStore({"connectionType": "network", "printerIP": "not-an-ip"})) is None
        assert load_endpoint(MemorySettingsStore({"connectionType": "usb", "printerPath": "x"})) is None

    def test_empty_store(self, store: MemorySettingsStore) -> None:
        assert load_endpoint(store) is None

    def test_clear_keeps_unrelated_keys(self) -> None:
        store = MemorySettingsStore({"printerIP": "10.0.0.25", "theme": "dark"})
        clear_endpoint(store)
        assert store.as_dict() == {"theme": "dark"}


class TestJsonSettingsStore:
    def test_round_trip_through_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cfg" / "settings.json"
        save_endpoint(JsonSettingsStore(path), NetworkEndpoint("192.168.1.20"))

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "connectionType": "network",
            "printerIP": "192.168.1.20",
        }
        assert load_endpoint(JsonSettingsStore(path)) == NetworkEndpoint("192.168.1.20")

    def test_preserves_foreign_keys(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"windowBounds": [0, 0, 300, 300]}), encoding="utf-8")

        save_endpoint(JsonSettingsStore(path), SerialEndpoint("/dev/rfcomm0"))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["windowBounds"] == [0, 0, 300, 300]
        assert data["printerPath"] == "/dev/rfcomm0"

    def test_corrupt_file_reads_as_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonSettingsStore(path)
        assert store.get("printerIP") is None
        store.set("printerIP", "10.0.0.2")
        assert json.loads(path.read_text(encoding="utf-8")) == {"printerIP": "10.0.0.2"}

    def test_delete_missing_key_does_not_write(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        JsonSettingsStore(path).delete("printerIP")
        assert not path.exists()
