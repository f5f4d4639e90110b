# --- Twitch API ---
TWITCH_AUTH_URL = "https://id.twitch.tv/oauth2/token"
TWITCH_API_BASE_URL = "https://api.twitch.tv/helix"
TWITCH_STREAMS_URL = f"{TWITCH_API_BASE_URL}/streams"
TWITCH_CHANNEL_URL_TEMPLATE = "twitch.tv/{channel}"

HEADER_CLIENT_ID = "Client-ID"
HEADER_AUTHORIZATION = "Authorization"

# --- Poll Loop ---
DEFAULT_POLL_INTERVAL_SECONDS = 15
DEFAULT_REQUEST_TIMEOUT_SECONDS = 10

# --- Streamlink ---
DEFAULT_STREAMLINK_PATH = "streamlink"
DEFAULT_QUALITY = "best"
FALLBACK_QUALITY = "best"
MANIFEST_TIMEOUT_SECONDS = 60
TERMINATE_TIMEOUT_SECONDS = 10
RECORDING_FILE_EXTENSION = ".ts"
RECORDING_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

# --- Config ---
CONFIG_FILE = "config.json"
CONFIG_ENV_VAR = "TWITCH_RECORDER_CONFIG"
PLACEHOLDER_MARKERS = ("YOUR_", "HERE")
