"""Printer transports and the print submission pipeline.

Network and serial printers are driven through python-escpos; Bluetooth
LE printers receive the same ESC/POS bytes over a GATT characteristic.
"""

from __future__ import annotations

from .mapping_utils import (
    map_align,
    map_cut,
    map_multiplier,
    map_size_class,
    map_underline,
    size_class_for_point_size,
)
from .pipeline import PrintJob, PrintPipeline
from .transport import BluetoothDevice, EscposDevice, PrinterDevice, create_device, opened

__all__ = [
    "BluetoothDevice",
    "EscposDevice",
    "PrintJob",
    "PrintPipeline",
    "PrinterDevice",
    "create_device",
    "map_align",
    "map_cut",
    "map_multiplier",
    "map_size_class",
    "map_underline",
    "opened",
    "size_class_for_point_size",
]
