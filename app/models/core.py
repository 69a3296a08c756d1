"""Core models for request/response handling."""

from enum import StrEnum


class BodyType(StrEnum):
    """How a handler parameter is filled from the request."""

    PYDANTIC = "pydantic"
    JSONABLE = "jsonable"
    FORM = "form"
    FILE = "file"


class IngestState(StrEnum):
    """Lifecycle of one upload; ACCEPTED and REJECTED are terminal."""

    AWAITING_BODY = "awaiting_body"
    BUFFERING = "buffering"
    PARSING = "parsing"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FormFields(dict[str, str]):
    """Scalar multipart fields that arrived alongside an uploaded file."""
