"""Constants for the Charge Optimizer integration."""

from datetime import timedelta

DOMAIN = "charge_optimizer"

# Cost sources
COST_SOURCE_TIBBER = "tibber"
COST_SOURCE_NONE = "none"
COST_SOURCES = [COST_SOURCE_TIBBER, COST_SOURCE_NONE]

# Config keys
CONF_STATE_ENTITY = "state_entity"
CONF_ENABLE_ENTITY = "enable_entity"
CONF_COST_SOURCE = "cost_source"
CONF_ACCESS_TOKEN = "access_token"  # noqa: S105

# Option keys
CONF_MINIMUM_CHARGING_TIME = "minimum_charging_time"
CONF_OPTIMIZATION_TIME = "optimization_time"
CONF_GRANULARITY = "granularity"
CONF_CHECK_INTERVAL = "check_interval"
CONF_LOG_INTERVAL = "log_interval"

# Option defaults (minutes for durations, seconds for intervals)
DEFAULT_MINIMUM_CHARGING_TIME = 180
DEFAULT_OPTIMIZATION_TIME = 480
DEFAULT_GRANULARITY = 5
DEFAULT_CHECK_INTERVAL = 5
DEFAULT_LOG_INTERVAL = 60

# Tibber API
TIBBER_API_ENDPOINT = "https://api.tibber.com/v1-beta/gql"
TIBBER_SLOT_DURATION = timedelta(minutes=15)

# Control loop
SHUTDOWN_GRACE_PERIOD = timedelta(seconds=5)

# Statistics
STATISTICS_STORAGE_KEY = "charge_optimizer_statistics"
STATISTICS_STORAGE_VERSION = 1
STATISTICS_SAVE_DELAY = 300
STATISTICS_MAX_RECORDS = 7 * 24 * 60
