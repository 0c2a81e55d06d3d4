# Persisted settings keys
CONF_CONNECTION_TYPE = "connectionType"
CONF_PRINTER_IP = "printerIP"
CONF_PRINTER_PATH = "printerPath"
CONF_PRINTER_DEVICE_ID = "printerDeviceId"
CONF_PRINTER_DEVICE_NAME = "printerDeviceName"

ENDPOINT_KEYS: tuple[str, ...] = (
    CONF_CONNECTION_TYPE,
    CONF_PRINTER_IP,
    CONF_PRINTER_PATH,
    CONF_PRINTER_DEVICE_ID,
    CONF_PRINTER_DEVICE_NAME,
)

# Connection types
CONNECTION_TYPE_NETWORK = "network"
CONNECTION_TYPE_SERIAL = "serial"
CONNECTION_TYPE_BLUETOOTH = "bluetooth"

# Default values
DEFAULT_PORT = 9100
DEFAULT_BAUDRATE = 9600
DEFAULT_PROBE_TIMEOUT = 0.8
DEFAULT_STATUS_TIMEOUT = 0.3
DEFAULT_PRINT_TIMEOUT = 4.0
DEFAULT_BATCH_SIZE = 50
DEFAULT_BLUETOOTH_SCAN_TIMEOUT = 10.0
DEFAULT_BLUETOOTH_PROBE_TIMEOUT = 5.0
DEFAULT_ALIGN = "left"
DEFAULT_CUT = "partial"
DEFAULT_FEED_LINES = 3

# Retry supervisor defaults (seconds)
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY = 1.0
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_DELAY = 16.0
DEFAULT_PERIODIC_INTERVAL = 30.0

# DLE EOT 1: transmit real-time printer status
STATUS_QUERY = b"\x10\x04\x01"

# Scan modes
SCAN_MODE_QUICK = "quick"
SCAN_MODE_FULL = "full"

# Last-octet ranges probed by a quick scan, in priority order
QUICK_SCAN_RANGES: tuple[tuple[int, int], ...] = (
    (1, 50),  # routers and low static assignments
    (100, 120),  # very common for printers
    (150, 240),  # general DHCP pools
    (250, 254),  # high static assignments
)
FULL_SCAN_RANGE: tuple[int, int] = (2, 254)

# Last-octet sub-range preferred when several devices answer on 9100
PREFERRED_OCTET_RANGE: tuple[int, int] = (10, 30)

# Advertised BLE name fragments of common ESC/POS thermal printers
BLUETOOTH_NAME_PATTERNS: tuple[str, ...] = (
    "printer",
    "pos-",
    "mtp-",
    "rpp",
    "pt-210",
    "tm-m30",
    "xp-",
)

# Generic BLE serial characteristic used by most ESC/POS BLE printers
BLUETOOTH_WRITE_CHARACTERISTIC = "00002af1-0000-1000-8000-00805f9b34fb"
BLUETOOTH_CHUNK_SIZE = 180

# Size classes exposed to the UI; values are ESC/POS character multipliers
SIZE_SMALL = "small"
SIZE_MEDIUM = "medium"
SIZE_LARGE = "large"
SIZE_CLASS_MULTIPLIERS: dict[str, int] = {
    SIZE_SMALL: 2,
    SIZE_MEDIUM: 3,
    SIZE_LARGE: 4,
}

# UI font sizes (pt) at which the size class steps up
FONT_SIZE_MEDIUM_PT = 28
FONT_SIZE_LARGE_PT = 40

ALIGN_CHOICES: tuple[str, ...] = ("left", "center", "right")
CUT_CHOICES: tuple[str, ...] = ("none", "partial", "full")

# Status values
STATUS_DISCONNECTED = "disconnected"
STATUS_SCANNING = "scanning"
STATUS_CONNECTED = "connected"
