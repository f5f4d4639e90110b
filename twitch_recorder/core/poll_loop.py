import logging
import threading

from twitch_recorder.errors import RecorderStateError, RecordingStartError

logger = logging.getLogger(__name__)

ACTION_START = "start"
ACTION_STOP = "stop"


def next_action(live: bool, recording: bool):
    """Edge-triggered decision: act only when the observed state differs from the local flag."""
    if live and not recording:
        return ACTION_START
    if not live and recording:
        return ACTION_STOP
    return None


def _describe_stream(api) -> str:
    info = api.last_stream_info()
    if info is None:
        return ""
    return f" Title: {info.title or 'N/A'}, Game: {info.game_name or 'N/A'}"


def run_tick(api, recorder, config, recording: bool) -> bool:
    """Runs one poll cycle and returns the new value of the local recording flag."""
    live = api.is_live(config.streamer)

    if recording and recorder.poll() is not None:
        logger.warning(f"Poll Loop: Recording of {config.streamer} stopped on its own. Will restart on the next live check.")
        recording = False

    action = next_action(live, recording)
    if action == ACTION_START:
        logger.info(f"Poll Loop: {config.streamer} is now live!{_describe_stream(api)}")
        try:
            recorder.start_recording(config.streamer, config.download_folder, config.quality)
        except (RecordingStartError, RecorderStateError) as e:
            logger.error(f"Poll Loop: Could not start recording {config.streamer}: {e}. Retrying on the next check.")
            return False
        return True

    if action == ACTION_STOP:
        logger.info(f"Poll Loop: {config.streamer} has gone offline!")
        recorder.stop_recording()
        return False

    return recording


def recording_monitor_loop(api, recorder, config, stop_event: threading.Event):
    logger.info(f"Poll Loop: Monitoring {config.streamer} every {config.interval}s ({threading.current_thread().name}).")
    recording = False

    try:
        while not stop_event.is_set():
            try:
                recording = run_tick(api, recorder, config, recording)
            except Exception as e:
                logger.error(f"Poll Loop: Unexpected error while checking {config.streamer}: {e}", exc_info=True)

            if stop_event.wait(timeout=config.interval):
                break
    finally:
        if recorder.session is not None:
            logger.info("Poll Loop: Shutdown requested while recording. Stopping capture...")
            recorder.stop_recording()
        logger.info("Poll Loop: Stopped.")
