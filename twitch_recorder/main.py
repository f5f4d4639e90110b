import argparse
import logging
import sys

from twitch_recorder import __version__
from twitch_recorder import config_manager
from twitch_recorder.core.poll_loop import recording_monitor_loop
from twitch_recorder.core.shutdown import install_signal_handlers
from twitch_recorder.errors import ConfigError, StreamResolutionError, TwitchAuthError
from twitch_recorder.services.recording_service import Recorder
from twitch_recorder.services.streamlink_service import get_available_qualities
from twitch_recorder.services.twitch_api_handler import TwitchAPIHelper, TwitchAuthManager

logger = logging.getLogger('twitch_recorder')


def build_parser():
    parser = argparse.ArgumentParser(prog="twitch-recorder", description="Record a Twitch channel whenever it goes live.")
    parser.add_argument("-c", "--config", default=None,
                        help=f"Path to the JSON configuration (default: ${config_manager.CONFIG_ENV_VAR} or {config_manager.CONFIG_FILE})")
    parser.add_argument("--log-level", default=None, help="Override the configured log level (DEBUG, INFO, ...)")
    parser.add_argument("--list-qualities", action="store_true",
                        help="Print the qualities streamlink offers for the configured streamer and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def list_qualities(config) -> int:
    try:
        qualities = get_available_qualities(config.streamer, streamlink_path=config.streamlink_path)
    except StreamResolutionError as e:
        logger.error(f"Could not resolve qualities for {config.streamer}: {e}")
        return 1
    for quality in sorted(qualities):
        print(quality)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config_manager.setup_logging(args.log_level or "INFO")

    try:
        config = config_manager.load_config(args.config)
    except ConfigError as e:
        logger.critical(f"CRITICAL: {e}")
        return 1
    if not args.log_level:
        config_manager.setup_logging(config.log_level)

    if not config_manager.check_streamlink_available(config.streamlink_path):
        return 1

    if args.list_qualities:
        return list_qualities(config)

    auth = TwitchAuthManager(config.client_id, config.client_secret, timeout=config.request_timeout)
    try:
        auth.initialize()
    except TwitchAuthError as e:
        logger.critical(f"CRITICAL: Failed to obtain a Twitch access token: {e}")
        return 1
    auth.log_client_info(redact=config.redact_credentials)

    api = TwitchAPIHelper(auth, timeout=config.request_timeout, retry_on_unauthorized=config.retry_on_unauthorized)
    recorder = Recorder(
        streamlink_path=config.streamlink_path,
        validate_quality=config.validate_quality,
        extra_args=config.streamlink_args,
    )

    stop_event = install_signal_handlers()
    logger.info(f"Recordings will be written to {config.download_folder}")
    try:
        recording_monitor_loop(api, recorder, config, stop_event)
    finally:
        auth.session.close()
        logger.info("Shutdown sequence finished. Exiting.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
