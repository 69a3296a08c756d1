"""Multipart upload ingestor.

The request body is parsed in a single pass: every chunk received from the
stream is fed straight into werkzeug's incremental ``MultipartDecoder`` and the
file part is written to a hidden ``.part`` file as it arrives. Nothing is
re-buffered, so the ingestor holds at most one chunk plus the decoder's
boundary look-behind in memory. The decoder is only told the input is finished
once the stream itself ends, which is what makes a truncated body detectable.

The temp file is renamed to its stored name only after the closing boundary has
been parsed; every failure path deletes it.
"""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from robyn import Response
from werkzeug.datastructures import Headers
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.http import parse_options_header
from werkzeug.sansio.multipart import Data, Epilogue, Field, File, MultipartDecoder, NeedData, Preamble

from app.core.errors import (
    FilesystemFailure,
    MalformedMultipart,
    PayloadTooLarge,
    StreamFailure,
    UnsupportedMediaType,
    UploadError,
    UploadTimeout,
    upload_error_response,
)
from app.core.logger import LogIcon, logger
from app.core.storage import PartWriter, ensure_directory, generate_stored_name, safe_extension
from app.models.core import FormFields, IngestState
from app.models.uploads import UploadConfig, UploadedFile, UploadRequest

# RFC 7578: a part without Content-Type is text/plain.
DEFAULT_PART_TYPE = "text/plain"

CallNext = Callable[[], Awaitable[Response]]


def parse_boundary(content_type: str | None) -> bytes:
    """Extract the multipart boundary from a Content-Type header."""
    mimetype, options = parse_options_header(content_type or "")
    if mimetype.lower() != "multipart/form-data":
        raise MalformedMultipart("Content-Type must be multipart/form-data")
    boundary = options.get("boundary")
    if not boundary:
        raise MalformedMultipart("Multipart boundary is missing")
    try:
        return boundary.encode("latin-1")
    except UnicodeEncodeError as exc:
        raise MalformedMultipart("Multipart boundary is invalid") from exc


async def iter_chunks(payload: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    """Replay a body the framework already buffered as an async chunk stream."""
    view = memoryview(payload)
    for start in range(0, len(view), chunk_size):
        yield bytes(view[start : start + chunk_size])


async def _guarded(stream: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    iterator = aiter(stream)
    while True:
        try:
            chunk = await anext(iterator)
        except StopAsyncIteration:
            return
        except Exception as exc:
            raise StreamFailure("Upload stream failed before completion") from exc
        yield bytes(chunk)


async def _disk_io(func: Callable[..., Any], *args: Any) -> Any:
    try:
        return await asyncio.to_thread(func, *args)
    except OSError as exc:
        logger.error("Upload storage failure", icon=LogIcon.STORAGE, error=type(exc).__name__)
        raise FilesystemFailure("Could not store uploaded file") from exc


@dataclass
class _FilePart:
    writer: PartWriter
    original_name: str
    media_type: str


@dataclass
class _FieldPart:
    name: str
    buffer: bytearray = field(default_factory=bytearray)


class _IngestSession:
    """Decoder state for one request: AWAITING_BODY -> BUFFERING -> PARSING -> ACCEPTED | REJECTED."""

    def __init__(self, config: UploadConfig, boundary: bytes) -> None:
        self.config = config
        self.state = IngestState.AWAITING_BODY
        self.received = 0
        self.form = FormFields()
        self._decoder = MultipartDecoder(boundary, max_parts=config.max_parts)
        self._part: _FilePart | _FieldPart | None = None
        self._file: _FilePart | None = None
        self._complete = False

    async def feed(self, chunk: bytes) -> None:
        if not chunk:
            return
        self.state = IngestState.BUFFERING
        self.received += len(chunk)
        if self.received > self.config.max_body_bytes:
            raise PayloadTooLarge("Request body too large")
        self._decoder.receive_data(chunk)
        await self._drain()

    async def finish(self) -> None:
        if self.received == 0:
            raise MalformedMultipart("Request body is empty")
        self.state = IngestState.PARSING
        self._decoder.receive_data(None)
        await self._drain()
        if self._file is None:
            raise MalformedMultipart(f"Missing file field '{self.config.field_name}'")

    async def commit(self) -> tuple[UploadedFile, FormFields]:
        part = self._file
        if part is None:
            raise RuntimeError("commit() before a file part was parsed")
        path = await _disk_io(part.writer.commit)
        self.state = IngestState.ACCEPTED
        uploaded = UploadedFile(
            field_name=self.config.field_name,
            original_name=part.original_name,
            stored_name=path.name,
            path=path,
            media_type=part.media_type,
            size=part.writer.size,
        )
        return uploaded, self.form

    def abort(self) -> None:
        self.state = IngestState.REJECTED
        if self._file is not None:
            self._file.writer.abort()

    async def _drain(self) -> None:
        while not self._complete:
            try:
                event = self._decoder.next_event()
            except RequestEntityTooLarge as exc:
                raise MalformedMultipart("Too many parts in multipart body") from exc
            except ValueError as exc:
                raise MalformedMultipart("Malformed multipart body") from exc

            match event:
                case NeedData():
                    return
                case Epilogue():
                    self._complete = True
                case Preamble():
                    continue
                case File(name=name, filename=filename, headers=headers):
                    await self._start_file(name, filename, headers)
                case Field(name=name):
                    self._part = _FieldPart(name)
                case Data(data=data, more_data=more_data):
                    await self._consume(data, more_data)

    async def _start_file(self, name: str, filename: str, headers: Headers) -> None:
        config = self.config
        if name != config.field_name:
            raise MalformedMultipart(f"Unexpected file field '{name}'")
        if self._file is not None:
            raise MalformedMultipart(f"Only one file may be uploaded as '{name}'")

        original_name = PurePosixPath(filename.replace("\\", "/")).name
        if not original_name:
            raise MalformedMultipart("No file uploaded")

        media_type = parse_options_header(headers.get("content-type") or DEFAULT_PART_TYPE)[0].lower()
        if not config.accepts_media_type(media_type):
            raise UnsupportedMediaType(config.rejection_message)
        if not config.accepts_extension(safe_extension(original_name)):
            raise UnsupportedMediaType(config.rejection_message)

        writer = PartWriter(config.destination_dir, generate_stored_name(name, original_name))
        await _disk_io(writer.open)
        self._file = self._part = _FilePart(writer, original_name, media_type)

    async def _consume(self, data: bytes, more_data: bool) -> None:
        match self._part:
            case _FilePart(writer=writer):
                if writer.size + len(data) > self.config.max_bytes:
                    raise PayloadTooLarge("File too large")
                if data:
                    await _disk_io(writer.write, data)
            case _FieldPart(name=name, buffer=buffer):
                buffer.extend(data)
                if not more_data:
                    self.form[name] = buffer.decode("utf-8", errors="replace")
        if not more_data:
            self._part = None


class UploadIngestor:
    """Validates and stores the single file part of a multipart/form-data request."""

    def __init__(self, config: UploadConfig) -> None:
        self.config = config
        self._prepared = False

    @property
    def field_name(self) -> str:
        return self.config.field_name

    def prepare(self) -> Path:
        """Create the destination directory if needed. Raises FilesystemFailure."""
        try:
            ensure_directory(self.config.destination_dir)
        except OSError as exc:
            logger.error(
                "Upload directory unavailable",
                icon=LogIcon.STORAGE,
                field=self.field_name,
                error=type(exc).__name__,
            )
            raise FilesystemFailure("Upload storage is unavailable") from exc
        self._prepared = True
        return self.config.destination_dir

    async def ingest(
        self,
        stream: AsyncIterable[bytes],
        content_type: str | None,
    ) -> tuple[UploadedFile, FormFields]:
        """Consume the whole body and return the stored file plus scalar form fields.

        Raises an UploadError subclass on rejection; no file is left behind in that case.
        """
        boundary = parse_boundary(content_type)
        if not self._prepared:
            await asyncio.to_thread(self.prepare)

        session = _IngestSession(self.config, boundary)
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                async with aclosing(_guarded(stream)) as chunks:
                    async for chunk in chunks:
                        await session.feed(chunk)
                await session.finish()
            # Outside the timeout: the rename thread cannot be interrupted.
            return await session.commit()
        except TimeoutError as exc:
            timeout = UploadTimeout("Upload timed out")
            timeout.stage = session.state
            session.abort()
            raise timeout from exc
        except UploadError as err:
            err.stage = session.state
            session.abort()
            raise
        except BaseException:
            session.abort()
            raise

    async def handle_upload(self, request: UploadRequest, call_next: CallNext) -> Response:
        """Middleware step: store the file and await `call_next`, or answer with an error. Never both."""
        try:
            uploaded, form = await self.ingest(request.stream, request.content_type)
        except UploadError as err:
            log = logger.error if err.status_code >= 500 else logger.warning
            log(
                "Upload rejected",
                icon=LogIcon.FORBIDDEN,
                field=self.field_name,
                reason=err.message,
                error_type=type(err).__name__,
                stage=err.stage,
            )
            return upload_error_response(err)

        request.file = uploaded
        request.form = form
        logger.info(
            "Upload accepted",
            icon=LogIcon.UPLOAD,
            field=self.field_name,
            stored_name=uploaded.stored_name,
            media_type=uploaded.media_type,
            size=uploaded.size,
        )
        return await call_next()
