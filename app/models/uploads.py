"""Upload configuration, file descriptor and request context models."""

from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

MIB = 1024 * 1024


class UploadConfig(BaseModel):
    """Per call-site ingestion settings handed to an UploadIngestor."""

    model_config = ConfigDict(frozen=True)

    destination_dir: Path
    field_name: str = "assignment-file"
    max_bytes: int = Field(default=20 * MIB, gt=0)
    allowed_type_prefix: str = "application/"
    allowed_types: frozenset[str] = frozenset()
    allowed_extensions: frozenset[str] = frozenset()
    rejection_message: str = "File type not supported"
    timeout_seconds: float | None = Field(default=120.0, gt=0)
    max_form_bytes: int = Field(default=1 * MIB, ge=0)
    max_parts: int = Field(default=100, gt=0)
    chunk_size: int = Field(default=64 * 1024, gt=0)

    @field_validator("allowed_types", "allowed_extensions", mode="after")
    @classmethod
    def _lowercase(cls, values: frozenset[str]) -> frozenset[str]:
        return frozenset(value.lower() for value in values)

    @property
    def max_body_bytes(self) -> int:
        """Upper bound for the whole multipart body: file plus headers and scalar fields."""
        return self.max_bytes + self.max_form_bytes

    def accepts_media_type(self, media_type: str) -> bool:
        if self.allowed_types:
            return media_type in self.allowed_types
        return media_type.startswith(self.allowed_type_prefix)

    def accepts_extension(self, extension: str) -> bool:
        if not self.allowed_extensions:
            return True
        return extension.lower() in self.allowed_extensions


class UploadedFile(BaseModel):
    """Descriptor of one accepted and stored file part."""

    field_name: str
    original_name: str
    stored_name: str
    path: Path
    media_type: str
    size: int

    def public(self) -> dict[str, Any]:
        """Descriptor without the server-side path, safe to return to clients."""
        return self.model_dump(mode="json", exclude={"path"})


class HeaderLookup(Protocol):
    def get(self, key: str, default: str | None = None) -> str | None: ...


@dataclass
class UploadRequest:
    """Request view consumed by the ingestor; `file` and `form` are filled on acceptance."""

    headers: HeaderLookup
    stream: AsyncIterable[bytes]
    path_params: dict[str, str] = field(default_factory=dict)
    file: UploadedFile | None = None
    form: dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")
