import pytest

from twitch_recorder.utils.formatters import format_duration_human, mask_secret, sanitize_filename


@pytest.mark.parametrize("seconds, expected", [
    (0, "no time"),
    (-3, "no time"),
    (1, "1 second"),
    (61, "1 minute, 1 second"),
    (7325, "2 hours, 2 minutes, 5 seconds"),
    (90000.7, "1 day, 1 hour"),
])
def test_format_duration_human(seconds, expected):
    assert format_duration_human(seconds) == expected


def test_mask_secret():
    assert mask_secret("abcdefgh") == "****efgh"
    assert mask_secret("abc") == "***"
    assert mask_secret("") == "<empty>"


def test_sanitize_filename():
    assert sanitize_filename("some_streamer") == "some_streamer"
    assert sanitize_filename("../etc/passwd") == "etcpasswd"
    assert sanitize_filename("???") == "unknown"
    assert sanitize_filename("") == "unknown"
