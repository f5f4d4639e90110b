import json
import logging
import os
import subprocess

from twitch_recorder.errors import StreamResolutionError
from twitch_recorder.models import CaptureManifest
from twitch_recorder.utils.constants import (
    DEFAULT_STREAMLINK_PATH,
    FALLBACK_QUALITY,
    MANIFEST_TIMEOUT_SECONDS,
    TWITCH_CHANNEL_URL_TEMPLATE,
)

logger = logging.getLogger(__name__)


def channel_url(channel_name: str) -> str:
    return TWITCH_CHANNEL_URL_TEMPLATE.format(channel=channel_name)


def _startupinfo():
    if os.name != 'nt':
        return None
    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = subprocess.SW_HIDE
    return startupinfo


def parse_manifest(raw) -> CaptureManifest:
    """
    Parses the JSON printed by `streamlink <url> --json`.
    Raises StreamResolutionError for anything that is not a usable manifest,
    including streamlink's own {"error": "..."} output.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StreamResolutionError(f"Streamlink output is not valid JSON: {e}") from e

    if isinstance(data, dict) and data.get("error"):
        raise StreamResolutionError(f"Streamlink reported an error: {data['error']}")

    try:
        return CaptureManifest.from_dict(data)
    except ValueError as e:
        raise StreamResolutionError(f"Unexpected streamlink manifest structure: {e}") from e


def resolve_manifest(channel_name: str, streamlink_path: str = DEFAULT_STREAMLINK_PATH,
                     timeout: int = MANIFEST_TIMEOUT_SECONDS) -> CaptureManifest:
    streamlink_command = [streamlink_path, channel_url(channel_name), "--json"]
    logger.info(f"Streamlink Service: Executing command: {' '.join(streamlink_command)}")

    try:
        result = subprocess.run(
            streamlink_command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            startupinfo=_startupinfo(),
        )
    except FileNotFoundError as e:
        raise StreamResolutionError(f"Streamlink executable '{streamlink_path}' not found") from e
    except subprocess.TimeoutExpired as e:
        raise StreamResolutionError(f"Streamlink did not answer within {timeout}s for '{channel_name}'") from e
    except OSError as e:
        raise StreamResolutionError(f"Failed to execute streamlink for '{channel_name}': {e}") from e

    if result.returncode != 0:
        # streamlink --json still prints {"error": ...} on stdout when it fails
        detail = ""
        try:
            parse_manifest(result.stdout)
        except StreamResolutionError as e:
            detail = str(e)
        stderr_text = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        raise StreamResolutionError(
            f"Streamlink exited with code {result.returncode} for '{channel_name}'"
            + (f": {detail}" if detail else "")
            + (f" (stderr: {stderr_text})" if stderr_text else "")
        )

    manifest = parse_manifest(result.stdout)
    logger.debug(f"Streamlink Service: Manifest for '{channel_name}' via plugin '{manifest.plugin}': {sorted(manifest.streams)}")
    return manifest


def get_available_qualities(channel_name: str, streamlink_path: str = DEFAULT_STREAMLINK_PATH,
                            timeout: int = MANIFEST_TIMEOUT_SECONDS) -> set:
    return resolve_manifest(channel_name, streamlink_path=streamlink_path, timeout=timeout).qualities


def choose_quality(requested: str, available, fallback: str = FALLBACK_QUALITY) -> str:
    """
    Returns `requested` when one of its comma separated alternatives
    (e.g. "1080p60,720p") is available, otherwise `fallback`.
    """
    alternatives = [q.strip() for q in (requested or "").split(",") if q.strip()]
    if any(q in available for q in alternatives):
        return requested
    if fallback in available:
        logger.warning(f"Streamlink Service: Requested quality '{requested}' not available (have: {sorted(available)}). Falling back to '{fallback}'.")
        return fallback
    raise StreamResolutionError(f"Neither '{requested}' nor '{fallback}' is among the available qualities {sorted(available)}")
