"""Test fixtures for school-upload-api unit tests."""

from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from app.middlewares.upload import UploadIngestor
from app.models.uploads import UploadConfig

BOUNDARY = "----schoolportalboundary7MA4YWxkTrZu0gW"


# -----------------------------------------------------------------------------
# Mock classes for Robyn Request
# -----------------------------------------------------------------------------


@dataclass
class MockHeaders:
    """Mock Headers object for Robyn Request (keys stored lower-case)."""

    _data: dict = field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key.lower(), default)

    def set(self, key: str, value: str) -> None:
        self._data[key.lower()] = value

    def __getitem__(self, key: str) -> str:
        return self._data[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key.lower()] = value


@dataclass
class MockRequest:
    """Mock Request object for Robyn."""

    body: str | bytes = b""
    headers: MockHeaders = field(default_factory=MockHeaders)
    path_params: dict = field(default_factory=dict)
    method: str = "POST"
    path: str = "/"


# -----------------------------------------------------------------------------
# Multipart helpers
# -----------------------------------------------------------------------------


def multipart_content_type(boundary: str = BOUNDARY) -> str:
    return f"multipart/form-data; boundary={boundary}"


def build_multipart(
    fields: dict[str, str] | None = None,
    files: Iterable[tuple[str, str, str | None, bytes]] = (),
    boundary: str = BOUNDARY,
) -> bytes:
    """Encode scalar fields and (field, filename, content type, payload) file parts."""
    delimiter = f"--{boundary}".encode()
    body = bytearray()
    for name, value in (fields or {}).items():
        body += delimiter + b"\r\n"
        body += f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
        body += value.encode() + b"\r\n"
    for name, filename, content_type, payload in files:
        body += delimiter + b"\r\n"
        body += f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'.encode()
        if content_type is not None:
            body += f"Content-Type: {content_type}\r\n".encode()
        body += b"\r\n" + payload + b"\r\n"
    body += delimiter + b"--\r\n"
    return bytes(body)


async def stream_of(payload: bytes, chunk_size: int = 1024) -> AsyncIterator[bytes]:
    for start in range(0, len(payload), chunk_size):
        yield payload[start : start + chunk_size]


def make_upload_request_mock(body: bytes, content_type: str | None = None, **path_params) -> MockRequest:
    headers = MockHeaders()
    if content_type is not None:
        headers["content-type"] = content_type
    return MockRequest(body=body, headers=headers, path_params=path_params)


# -----------------------------------------------------------------------------
# Upload fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads" / "assignments"


@pytest.fixture
def upload_config(upload_dir: Path) -> UploadConfig:
    return UploadConfig(
        destination_dir=upload_dir,
        field_name="assignment-file",
        max_bytes=20 * 1024 * 1024,
        allowed_type_prefix="application/",
        timeout_seconds=5.0,
    )


@pytest.fixture
def make_ingestor(upload_dir: Path) -> Callable[..., UploadIngestor]:
    """Factory fixture for ingestors writing under the test upload directory."""

    def _make(**overrides) -> UploadIngestor:
        options = {
            "destination_dir": upload_dir,
            "field_name": "assignment-file",
            "timeout_seconds": 5.0,
        }
        options.update(overrides)
        return UploadIngestor(UploadConfig(**options))

    return _make


@pytest.fixture
def ingestor(upload_config: UploadConfig) -> UploadIngestor:
    return UploadIngestor(upload_config)
