"""Disk storage for uploaded file parts (hidden temp file + atomic rename)."""

import os
import secrets
import time
from pathlib import Path, PurePosixPath
from typing import BinaryIO

PARTIAL_SUFFIX = ".part"
RANDOM_SUFFIX_BOUND = 1_000_000_000


def safe_extension(original_name: str) -> str:
    """Extension of the client filename's basename, or "" when it is not a plain ASCII word."""
    basename = PurePosixPath((original_name or "").replace("\\", "/")).name
    suffix = PurePosixPath(basename).suffix
    extension = suffix[1:]
    if not (extension.isascii() and extension.isalnum()):
        return ""
    return suffix


def generate_stored_name(
    field_name: str,
    original_name: str,
    *,
    timestamp_ms: int | None = None,
    random_suffix: int | None = None,
) -> str:
    """Build `<field>-<unix-ms>-<random>.<ext>`; unique in practice without locking."""
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    if random_suffix is None:
        random_suffix = secrets.randbelow(RANDOM_SUFFIX_BOUND)
    return f"{field_name}-{timestamp_ms}-{random_suffix}{safe_extension(original_name)}"


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    if not os.access(path, os.W_OK):
        raise PermissionError(f"{path} is not writable")
    return path


def remove_partial_files(directory: Path, older_than: float = 0.0) -> int:
    """Delete `.part` files untouched for `older_than` seconds. Returns how many were removed."""
    if not directory.is_dir():
        return 0
    cutoff = time.time() - older_than
    removed = 0
    for candidate in directory.glob(f".*{PARTIAL_SUFFIX}"):
        try:
            if candidate.stat().st_mtime > cutoff:
                continue
        except FileNotFoundError:
            continue
        candidate.unlink(missing_ok=True)
        removed += 1
    return removed


class PartWriter:
    """Streams one file part into `.<stored-name>.part` and promotes it on commit."""

    __slots__ = ("final_path", "temp_path", "size", "_handle")

    def __init__(self, destination: Path, stored_name: str) -> None:
        self.final_path = destination / stored_name
        self.temp_path = destination / f".{stored_name}{PARTIAL_SUFFIX}"
        self.size = 0
        self._handle: BinaryIO | None = None

    def open(self) -> "PartWriter":
        self._handle = self.temp_path.open("xb")
        return self

    def write(self, data: bytes) -> None:
        if self._handle is None:
            raise RuntimeError("PartWriter is not open")
        self._handle.write(data)
        self.size += len(data)

    def commit(self) -> Path:
        if self._handle is None:
            raise RuntimeError("PartWriter is not open")
        handle, self._handle = self._handle, None
        try:
            handle.flush()
            os.fsync(handle.fileno())
        finally:
            handle.close()
        os.replace(self.temp_path, self.final_path)
        return self.final_path

    def abort(self) -> None:
        """Close and delete the temp file; never touches a committed file."""
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()
        self.temp_path.unlink(missing_ok=True)
