"""Configuration constants for the status chat client"""

from pathlib import Path

# Backend configuration
DEFAULT_ENDPOINT = (
    "https://script.google.com/macros/s/"
    "AKfycbykbaXGYsA1INdEZUlSy02wJsGwsTdKTtFMoeB8H7c7JPzn81HKs-cu2x8DR_IOtusv-g/exec"
)

# Origin the client presents on direct fetches (the page it is served from)
PAGE_ORIGIN = "https://statuschat.github.io"

# Public CORS relay: GET {RELAY_URL}?url=<target> -> {contents, status: {http_code}}
RELAY_URL = "https://api.allorigins.win/get"

# Script-injection callbacks
CALLBACK_PARAM = "callback"
CALLBACK_PREFIX = "jsonp_callback_"
CALLBACK_SUFFIX_LENGTH = 9

# Retry configuration
MAX_ATTEMPTS = 3
BACKOFF_STEP = 1.0  # Seconds, multiplied by the failed attempt number
RETRYABLE_STATUSES = frozenset({0, 408, 429, 500, 502, 503, 504})

# Timeouts
DEFAULT_REQUEST_TIMEOUT = 10.0  # Seconds, per attempt

# Backend operations
OPERATION_HEALTH = "health"
OPERATION_STATUSES = "statuses"
OPERATION_UPDATE_STATUS = "update-status"
OPERATIONS = (OPERATION_HEALTH, OPERATION_STATUSES, OPERATION_UPDATE_STATUS)
MUTATING_OPERATIONS = frozenset({OPERATION_UPDATE_STATUS})

# Feed polling
AUTO_REFRESH_INTERVAL = 10.0  # Seconds

# Local preferences
DEFAULT_PREFS_FILE = Path.home() / ".status_chat" / "preferences.json"
PREF_ENDPOINT_KEY = "chat-api-url"
PREF_USERNAME_KEY = "chat-username"
