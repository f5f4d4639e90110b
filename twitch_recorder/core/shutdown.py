import logging
import signal
import threading

logger = logging.getLogger(__name__)

shutdown_event = threading.Event()


def _handle_signal(signum, frame):
    logger.info(f"Shutdown: Received signal {signal.Signals(signum).name}. Stopping after the current check...")
    shutdown_event.set()


def install_signal_handlers():
    """Routes SIGINT/SIGTERM to shutdown_event. Must be called from the main thread."""
    for sig_name in ("SIGINT", "SIGTERM"):
        sig = getattr(signal, sig_name, None)
        if sig is not None:
            signal.signal(sig, _handle_signal)
    return shutdown_event
