import json
import subprocess

import pytest

from twitch_recorder.config_manager import RecorderConfig


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeProcess:
    """Stands in for subprocess.Popen; exits when signalled unless told to ignore SIGTERM."""

    def __init__(self, pid=4242, ignore_sigterm=False):
        self.pid = pid
        self.returncode = None
        self.ignore_sigterm = ignore_sigterm
        self.signals = []

    def poll(self):
        return self.returncode

    def wait(self, timeout=None):
        if self.returncode is None:
            raise subprocess.TimeoutExpired("streamlink", timeout)
        return self.returncode

    def receive(self, sig):
        self.signals.append(sig)
        if self.returncode is None and not (self.ignore_sigterm and sig == 15):
            self.returncode = -int(sig)

    def terminate(self):
        self.receive(15)

    def kill(self):
        self.receive(9)


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides):
        values = dict(
            client_id="cid",
            client_secret="csecret",
            download_folder=str(tmp_path / "recordings"),
            streamer="somestreamer",
            quality="best",
            interval=15,
        )
        values.update(overrides)
        return RecorderConfig(**values)
    return _make
