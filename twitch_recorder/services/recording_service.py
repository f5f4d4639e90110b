import logging
import os
import signal
import subprocess
from datetime import datetime, timezone

from twitch_recorder.errors import RecorderStateError, RecordingStartError, StreamResolutionError
from twitch_recorder.models import RecordingSession
from twitch_recorder.services.streamlink_service import channel_url, choose_quality, get_available_qualities
from twitch_recorder.utils.constants import (
    DEFAULT_STREAMLINK_PATH,
    RECORDING_FILE_EXTENSION,
    RECORDING_TIMESTAMP_FORMAT,
    TERMINATE_TIMEOUT_SECONDS,
)
from twitch_recorder.utils.formatters import format_duration_human, sanitize_filename

logger = logging.getLogger(__name__)


def _popen_group_kwargs():
    # streamlink may spawn ffmpeg; a dedicated group lets stop take the whole tree down
    if os.name == 'nt':
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _signal_process_tree(process, sig):
    if os.name == 'nt':
        if sig == signal.SIGTERM:
            process.terminate()
        else:
            process.kill()
        return
    try:
        os.killpg(os.getpgid(process.pid), sig)
    except ProcessLookupError:
        pass


def _terminate_process(process, name: str, timeout: int = TERMINATE_TIMEOUT_SECONDS):
    if process is None:
        return None
    if process.poll() is not None:
        return process.returncode

    logger.info(f"Recorder Service: Terminating {name} (PID: {process.pid})...")
    try:
        _signal_process_tree(process, signal.SIGTERM)
        process.wait(timeout=timeout)
        logger.info(f"Recorder Service: {name} (PID: {process.pid}) terminated gracefully (Code: {process.returncode}).")
    except subprocess.TimeoutExpired:
        logger.warning(f"Recorder Service: {name} (PID: {process.pid}) did not terminate gracefully after {timeout}s, killing...")
        _signal_process_tree(process, getattr(signal, "SIGKILL", signal.SIGTERM))
        process.wait()
        logger.info(f"Recorder Service: {name} (PID: {process.pid}) process killed (Code: {process.returncode}).")
    return process.returncode


def build_output_path(folder: str, channel: str, started_at: datetime) -> str:
    # streamlink will not overwrite an existing file, so a restart within the same second gets a suffix
    stem = f"{sanitize_filename(channel)}_{started_at.strftime(RECORDING_TIMESTAMP_FORMAT)}"
    path = os.path.join(folder, f"{stem}{RECORDING_FILE_EXTENSION}")
    suffix = 1
    while os.path.exists(path):
        path = os.path.join(folder, f"{stem}_{suffix}{RECORDING_FILE_EXTENSION}")
        suffix += 1
    return path


class Recorder:
    """
    Supervises at most one streamlink capture process.

    Idle -> Recording on start_recording, Recording -> Idle on stop_recording
    or when the process is found to have exited on its own.
    """

    def __init__(self, streamlink_path: str = DEFAULT_STREAMLINK_PATH, validate_quality: bool = False,
                 extra_args=(), terminate_timeout: int = TERMINATE_TIMEOUT_SECONDS):
        self.streamlink_path = streamlink_path
        self.validate_quality = validate_quality
        self.extra_args = list(extra_args)
        self.terminate_timeout = terminate_timeout
        self._session = None

    @property
    def session(self):
        return self._session

    @property
    def is_recording(self) -> bool:
        self.poll()
        return self._session is not None

    def poll(self):
        """Reaps a capture process that exited on its own and returns its exit code, else None."""
        if self._session is None:
            return None
        exit_code = self._session.process.poll()
        if exit_code is None:
            return None
        logger.warning(f"Recorder Service: Streamlink (PID: {self._session.pid}) for '{self._session.channel}' exited unexpectedly (Code: {exit_code}).")
        self._release(exit_code)
        return exit_code

    def _release(self, exit_code):
        session = self._session
        self._session = None
        duration = (datetime.now(timezone.utc) - session.started_at).total_seconds()
        logger.info(f"Recorder Service: Recording of '{session.channel}' ended after {format_duration_human(duration)} (Code: {exit_code}). File: {session.output_path}")

    def _resolve_quality(self, channel: str, quality: str) -> str:
        if not self.validate_quality:
            return quality
        try:
            available = get_available_qualities(channel, streamlink_path=self.streamlink_path)
            return choose_quality(quality, available)
        except StreamResolutionError as e:
            logger.warning(f"Recorder Service: Could not validate quality '{quality}' for '{channel}', using it unvalidated: {e}")
            return quality

    def start_recording(self, channel: str, folder: str, quality: str) -> RecordingSession:
        if self.is_recording:
            raise RecorderStateError(
                f"Already recording '{self._session.channel}' (PID: {self._session.pid}); stop_recording must be called first."
            )

        quality = self._resolve_quality(channel, quality)
        started_at = datetime.now(timezone.utc)
        try:
            os.makedirs(folder, exist_ok=True)
        except OSError as e:
            raise RecordingStartError(f"Could not create download folder '{folder}': {e}") from e
        output_path = build_output_path(folder, channel, started_at)

        streamlink_command = [
            self.streamlink_path,
            channel_url(channel),
            quality,
            "--output", output_path,
            *self.extra_args,
        ]
        logger.info(f"Recorder Service: Starting Streamlink for '{channel}' ({quality}) -> {output_path}")
        try:
            process = subprocess.Popen(
                streamlink_command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                **_popen_group_kwargs(),
            )
        except OSError as e:
            raise RecordingStartError(f"Failed to start streamlink for '{channel}': {e}") from e

        self._session = RecordingSession(
            channel=channel,
            folder=folder,
            quality=quality,
            output_path=output_path,
            process=process,
            started_at=started_at,
        )
        logger.info(f"Recorder Service: Streamlink process started (PID: {process.pid})")
        return self._session

    def stop_recording(self):
        if self._session is None:
            logger.debug("Recorder Service: stop_recording called while idle. Nothing to do.")
            return None
        exit_code = _terminate_process(self._session.process, "Streamlink", timeout=self.terminate_timeout)
        self._release(exit_code)
        return exit_code
