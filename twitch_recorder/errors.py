class RecorderError(Exception):
    """Base class for every error raised by twitch_recorder."""


class ConfigError(RecorderError):
    pass


class TwitchAuthError(RecorderError):
    pass


class StreamResolutionError(RecorderError):
    pass


class RecordingStartError(RecorderError):
    pass


class RecorderStateError(RecorderError):
    """Raised when start_recording is called while a capture is still running."""
