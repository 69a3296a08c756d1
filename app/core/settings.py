"""Unified settings for school-upload-api."""

import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict."""
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(base_dir: Path) -> str:
    """Get version from git tags or fallback to package metadata."""
    try:
        import git

        repo = git.Repo(base_dir, search_parent_directories=True)
        latest_tag = max(repo.tags, key=lambda t: t.commit.committed_datetime, default=None)
        if latest_tag:
            return str(latest_tag)
    except Exception:
        pass
    try:
        import importlib.metadata

        return importlib.metadata.version("school-upload-api")
    except Exception:
        return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for the upload service."""

    DEBUG: bool = True
    ENVIRONMENT: Literal["DEV", "PROD"] = "DEV"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "school-upload-api")
    API_DESCRIPTION: ClassVar[str] = PROJECT.get("project", {}).get("description", "School upload API")
    API_VERSION: ClassVar[str] = get_version(BASE_DIR)

    # Server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # Uploads
    UPLOAD_ROOT: Path = BASE_DIR / "uploads"
    ASSIGNMENT_MAX_BYTES: int = 20 * MIB
    RESOURCE_MAX_BYTES: int = 10 * MIB
    HOMEWORK_MAX_BYTES: int = 5 * MIB
    UPLOAD_TIMEOUT_SECONDS: float | None = 120.0
    UPLOAD_CHUNK_SIZE: int = 64 * 1024
    UPLOAD_MAX_FORM_BYTES: int = 1 * MIB

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()  # type: ignore
