"""Internal constants shared across the library."""

BASE_URL = "https://owner-api.teslamotors.com"
USER_AGENT = "pyrecorder/0.1"
DEFAULT_CONFIG_PATH = "~/.recorder_conf.json"

# ------------------------------------------------------------------
# Recording session cadence (seconds)
# ------------------------------------------------------------------

IDLE_TIME_BEFORE_SLEEP = 5 * 60.0
IDLE_SAMPLING_FREQUENCY = 10.0

MOVING_INTERVAL = 1.0
IN_GEAR_INTERVAL = 2.0
CHARGING_INTERVAL = 3.0
SENTRY_MODE_INTERVAL = 30.0
DISPLAY_ON_INTERVAL = 10.0
CLIMATE_ON_INTERVAL = 30.0

# ------------------------------------------------------------------
# Coarse state monitor
# ------------------------------------------------------------------

POLL_INTERVAL = 10.0

# ------------------------------------------------------------------
# Snapshot tracker rate limiter (seconds)
# ------------------------------------------------------------------

FIRST_TICK_DURATION = 15.0
DRIVING_REFRESH_DURATION = 15.0
CHARGING_REFRESH_DURATION = 60.0
NORMAL_REFRESH_DURATION = 30 * 60.0

# ------------------------------------------------------------------
# Resilient fetcher backoff schedule
# ------------------------------------------------------------------

BACKOFF_INITIAL_INTERVAL = 0.5
BACKOFF_MULTIPLIER = 1.5
BACKOFF_MAX_INTERVAL = 60.0
