import json
import logging
import os
import shutil
from dataclasses import dataclass, field

from twitch_recorder.errors import ConfigError
from twitch_recorder.utils.constants import (
    CONFIG_ENV_VAR,
    CONFIG_FILE,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_QUALITY,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_STREAMLINK_PATH,
    PLACEHOLDER_MARKERS,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s:%(levelname)s:%(name)s:[%(threadName)s]: %(message)s'

REQUIRED_KEYS = ('client_id', 'client_secret', 'download_folder', 'streamer')


@dataclass
class RecorderConfig:
    client_id: str
    client_secret: str
    download_folder: str
    streamer: str
    quality: str = DEFAULT_QUALITY
    interval: int = DEFAULT_POLL_INTERVAL_SECONDS
    streamlink_path: str = DEFAULT_STREAMLINK_PATH
    streamlink_args: list = field(default_factory=list)
    validate_quality: bool = False
    retry_on_unauthorized: bool = False
    redact_credentials: bool = False
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    log_level: str = "INFO"


def setup_logging(level="INFO"):
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)


def default_config_path():
    return os.environ.get(CONFIG_ENV_VAR, CONFIG_FILE)


def _is_placeholder(value) -> bool:
    return any(marker in str(value) for marker in PLACEHOLDER_MARKERS)


def _expect(source: dict, key: str, expected_type, default):
    value = source.get(key, default)
    # bool is a subclass of int; keep "interval": true out
    if expected_type is int and isinstance(value, bool):
        raise ConfigError(f"Configuration key '{key}' must be an integer, got {value!r}.")
    if not isinstance(value, expected_type):
        raise ConfigError(f"Configuration key '{key}' must be of type {expected_type.__name__}, got {type(value).__name__}.")
    return value


def config_from_dict(source: dict) -> RecorderConfig:
    if not isinstance(source, dict):
        raise ConfigError("Configuration root must be a JSON object.")

    for key in REQUIRED_KEYS:
        value = source.get(key)
        if not value or not isinstance(value, str) or _is_placeholder(value):
            raise ConfigError(f"Essential configuration key '{key}' is missing or contains a placeholder value.")

    interval = _expect(source, 'interval', int, DEFAULT_POLL_INTERVAL_SECONDS)
    if interval <= 0:
        raise ConfigError(f"Configuration key 'interval' must be positive, got {interval}.")
    request_timeout = _expect(source, 'request_timeout', int, DEFAULT_REQUEST_TIMEOUT_SECONDS)
    if request_timeout <= 0:
        raise ConfigError(f"Configuration key 'request_timeout' must be positive, got {request_timeout}.")

    streamlink_args = _expect(source, 'streamlink_args', list, [])
    if not all(isinstance(arg, str) for arg in streamlink_args):
        raise ConfigError("Configuration key 'streamlink_args' must be a list of strings.")

    quality = _expect(source, 'quality', str, DEFAULT_QUALITY) or DEFAULT_QUALITY

    return RecorderConfig(
        client_id=source['client_id'],
        client_secret=source['client_secret'],
        download_folder=os.path.abspath(os.path.expanduser(source['download_folder'])),
        streamer=source['streamer'].strip().lower(),
        quality=quality,
        interval=interval,
        streamlink_path=_expect(source, 'streamlink_path', str, DEFAULT_STREAMLINK_PATH),
        streamlink_args=list(streamlink_args),
        validate_quality=_expect(source, 'validate_quality', bool, False),
        retry_on_unauthorized=_expect(source, 'retry_on_unauthorized', bool, False),
        redact_credentials=_expect(source, 'redact_credentials', bool, False),
        request_timeout=request_timeout,
        log_level=_expect(source, 'log_level', str, "INFO"),
    )


def load_config(path=None) -> RecorderConfig:
    path = path or default_config_path()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            loaded_json = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"{path} not found. Please create it based on config.example.json.") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Error decoding {path}. Please check its JSON syntax. Details: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e

    config = config_from_dict(loaded_json)
    logger.info(f"Configuration loaded from {path} (streamer: {config.streamer}, quality: {config.quality}, interval: {config.interval}s).")
    return config


def check_streamlink_available(streamlink_path: str) -> bool:
    if shutil.which(streamlink_path):
        return True
    logger.critical(f"Streamlink executable ('{streamlink_path}') not found. Recorder cannot start.")
    return False
