"""Constants for Smart Power Monitor integration."""
from __future__ import annotations

DOMAIN = "smart_power_monitor"
NAME = "Smart Power Monitor"

# Config file
CONFIG_FILE = "smart_power_monitor.json"

# Config entry keys
CONF_DATABASE_URL = "database_url"
CONF_AUTH_TOKEN = "auth_token"
CONF_NOTIFY_SERVICE = "notify_service"
CONF_SOURCE = "source"
CONF_COMMAND_DELAY = "command_delay"
CONF_RESET_ON_TURN_OFF = "reset_on_turn_off"
CONF_OPTIMISTIC = "optimistic"

SOURCE_REALTIME = "realtime"
SOURCE_SIMULATED = "simulated"

PLATFORMS = ["sensor", "switch"]

# Remote document
MONITORING_PATH = "monitoring"
FIELD_POWER = "power"
FIELD_DAILY_ENERGY = "dailyEnergy"
FIELD_TOTAL_ENERGY = "totalEnergy"
FIELD_THRESHOLD_LEVEL = "thresholdLevel"
FIELD_WARNING_THRESHOLD = "WARNING_THRESHOLD"
FIELD_CRITICAL_THRESHOLD = "CRITICAL_THRESHOLD"
FIELD_COMMAND = "command"
COMPONENT_IDS = (1, 2, 3)
COMPONENT_NAMES = {1: "Component 1", 2: "Component 2", 3: "Component 3"}

# Command channel values
COMMAND_NONE = "NONE"
COMMAND_TURN_OFF_ALL = "TURNOFFALL"
COMMAND_TOGGLE_PREFIX = "TOGGLE"

# Thresholds are stored per 30-day month in Wh; per-day limits divide by this
DAYS_PER_MONTH = 30
DEFAULT_WARNING_THRESHOLD = 100000  # Wh (100 kWh)
DEFAULT_CRITICAL_THRESHOLD = 300000  # Wh (300 kWh)

# Command dispatcher settings
DEFAULT_COMMAND_DELAY = 0.2  # seconds between clearing and writing a command
VIBRATION_DURATION = 4  # seconds

# Simulated device (stands in for the metering device when no database is used)
SIMULATED_INTERVAL = 5  # seconds between readings
SIMULATED_COMPONENT_POWER = {1: 25, 2: 45, 3: 120}  # watts
SIMULATED_JITTER = 5  # +/- watts
SIMULATED_WARNING_POWER = 100  # watts
SIMULATED_CRITICAL_POWER = 150  # watts

# Tiered tariff (kWh breakpoints come from the monitoring record)
TIER_RATES = (4, 6, 14)  # per kWh
TIER_FIXED_CHARGES = (75, 200, 400)

# Messages
ERROR_FETCH_FAILED = "Failed to fetch monitoring data"
ALERT_EVENT = f"{DOMAIN}_alert"
DEFAULT_WARNING_MSG = "Power usage ({value}) has exceeded the first threshold."
DEFAULT_CRITICAL_MSG = "Power usage ({value}) has reached critical levels!"

# Default config structure
DEFAULT_CONFIG = {
    "product_name": NAME,
    "notifications": {
        "enabled": True,
    },
    "tariff": {
        "tariff": "",
        "daily_hours": "",
        "use_dual_tariff": False,
        "peak_tariff": "",
        "off_peak_tariff": "",
        "peak_hours": "",
        "off_peak_hours": "",
    },
}
