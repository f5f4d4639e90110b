"""Typed structures for Twitch API responses, streamlink manifests and recording sessions."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from datetime import datetime


def _optional_str(source: dict, key: str) -> str | None:
    value = source.get(key)
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValueError(f"field '{key}' must be a scalar, got {type(value).__name__}")
    return str(value)


@dataclass
class Credential:
    """Client identity plus the bearer token obtained with it."""

    client_id: str
    client_secret: str
    access_token: str = ""


@dataclass
class StreamInfo:
    """One entry of the Helix /streams `data` array."""

    user_login: str | None = None
    title: str | None = None
    game_name: str | None = None
    started_at: str | None = None
    type: str | None = None

    @classmethod
    def from_dict(cls, entry: dict) -> StreamInfo:
        if not isinstance(entry, dict):
            raise ValueError(f"stream entry must be an object, got {type(entry).__name__}")
        return cls(
            user_login=_optional_str(entry, "user_login"),
            title=_optional_str(entry, "title"),
            game_name=_optional_str(entry, "game_name"),
            started_at=_optional_str(entry, "started_at"),
            type=_optional_str(entry, "type"),
        )


@dataclass
class StreamsResponse:
    data: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, body) -> StreamsResponse:
        if not isinstance(body, dict):
            raise ValueError(f"response body must be an object, got {type(body).__name__}")
        data = body.get("data")
        if not isinstance(data, list):
            raise ValueError(f"'data' field missing or not a list (got {type(data).__name__})")
        return cls(data=data)

    @property
    def is_live(self) -> bool:
        return len(self.data) > 0

    def first_stream(self) -> StreamInfo | None:
        if not self.data:
            return None
        return StreamInfo.from_dict(self.data[0])


@dataclass
class StreamMetadata:
    id: str | None = None
    author: str | None = None
    category: str | None = None
    title: str | None = None

    @classmethod
    def from_dict(cls, source) -> StreamMetadata:
        if source is None:
            return cls()
        if not isinstance(source, dict):
            raise ValueError(f"'metadata' must be an object, got {type(source).__name__}")
        return cls(
            id=_optional_str(source, "id"),
            author=_optional_str(source, "author"),
            category=_optional_str(source, "category"),
            title=_optional_str(source, "title"),
        )


@dataclass
class StreamDescriptor:
    type: str | None = None
    url: str | None = None
    headers: dict = field(default_factory=dict)
    master: str | None = None

    @classmethod
    def from_dict(cls, source) -> StreamDescriptor:
        if source is None:
            return cls()
        if not isinstance(source, dict):
            raise ValueError(f"stream descriptor must be an object, got {type(source).__name__}")
        headers = source.get("headers") or {}
        if not isinstance(headers, dict):
            raise ValueError("'headers' must be an object")
        return cls(
            type=_optional_str(source, "type"),
            url=_optional_str(source, "url"),
            headers={str(k): str(v) for k, v in headers.items()},
            master=_optional_str(source, "master"),
        )


@dataclass
class CaptureManifest:
    """Parsed output of `streamlink <url> --json`."""

    plugin: str | None = None
    metadata: StreamMetadata = field(default_factory=StreamMetadata)
    streams: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, source) -> CaptureManifest:
        if not isinstance(source, dict):
            raise ValueError(f"manifest must be an object, got {type(source).__name__}")
        streams = source.get("streams")
        if streams is None:
            streams = {}
        if not isinstance(streams, dict):
            raise ValueError(f"'streams' must be an object, got {type(streams).__name__}")
        return cls(
            plugin=_optional_str(source, "plugin"),
            metadata=StreamMetadata.from_dict(source.get("metadata")),
            streams={quality: StreamDescriptor.from_dict(desc) for quality, desc in streams.items()},
        )

    @property
    def qualities(self) -> set:
        return set(self.streams)


@dataclass
class RecordingSession:
    channel: str
    folder: str
    quality: str
    output_path: str
    process: subprocess.Popen
    started_at: datetime

    @property
    def pid(self) -> int:
        return self.process.pid
