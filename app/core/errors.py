"""Upload error taxonomy and its JSON error response."""

import orjson
from robyn import Response, status_codes


class UploadError(Exception):
    """Base class for every upload rejection; terminal for the request."""

    status_code: int = status_codes.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # Ingest state the upload was in when rejected, set by the ingestor.
        self.stage: str | None = None


class UnsupportedMediaType(UploadError):
    """Declared media type or file extension is not on the allow-list."""


class PayloadTooLarge(UploadError):
    """File or request body exceeds the configured limit."""


class MalformedMultipart(UploadError):
    """Body cannot be read as multipart/form-data carrying the expected file."""


class StreamFailure(UploadError):
    """Request body stream failed before completion."""


class UploadTimeout(StreamFailure):
    """Request body did not complete within the configured timeout."""


class FilesystemFailure(UploadError):
    """Destination directory cannot be created or written."""

    status_code = status_codes.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(message: str, status_code: int = status_codes.HTTP_400_BAD_REQUEST, **extra) -> Response:
    """Build the `{"success": false, "error": ...}` JSON response."""
    return Response(
        status_code=status_code,
        headers={"content-type": "application/json"},
        description=orjson.dumps({"success": False, "error": message, **extra}).decode(),
    )


def upload_error_response(error: UploadError) -> Response:
    return error_response(error.message, error.status_code)
