"""Upload profiles for every route that accepts a file."""

from enum import StrEnum

from app.core.settings import Settings
from app.core.settings import settings as st
from app.middlewares.upload import UploadIngestor
from app.models.uploads import UploadConfig

WORD_DOCUMENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
HOMEWORK_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"})

RESOURCE_REJECTION = "Only PDF, DOC, and DOCX files are allowed"
HOMEWORK_REJECTION = "Only PDF, Word documents, and images are allowed"


class UploadProfile(StrEnum):
    ASSIGNMENTS = "assignments"
    SUBMISSIONS = "submissions"
    RESOURCES = "resources"
    HOMEWORK_FILES = "homework_files"
    HOMEWORKS = "homeworks"


def build_upload_configs(settings: Settings) -> dict[UploadProfile, UploadConfig]:
    """Assignments and submissions take any application/* document; resources and homework are stricter."""
    root = settings.UPLOAD_ROOT
    shared = {
        "timeout_seconds": settings.UPLOAD_TIMEOUT_SECONDS,
        "chunk_size": settings.UPLOAD_CHUNK_SIZE,
        "max_form_bytes": settings.UPLOAD_MAX_FORM_BYTES,
    }
    homework = {
        "destination_dir": root / "homeworks",
        "max_bytes": settings.HOMEWORK_MAX_BYTES,
        "allowed_type_prefix": "",
        "allowed_extensions": HOMEWORK_EXTENSIONS,
        "rejection_message": HOMEWORK_REJECTION,
        **shared,
    }
    return {
        UploadProfile.ASSIGNMENTS: UploadConfig(
            destination_dir=root / "assignments",
            field_name="assignment-file",
            max_bytes=settings.ASSIGNMENT_MAX_BYTES,
            allowed_type_prefix="application/",
            **shared,
        ),
        UploadProfile.SUBMISSIONS: UploadConfig(
            destination_dir=root / "assignments",
            field_name="submission-file",
            max_bytes=settings.ASSIGNMENT_MAX_BYTES,
            allowed_type_prefix="application/",
            **shared,
        ),
        UploadProfile.RESOURCES: UploadConfig(
            destination_dir=root / "resources",
            field_name="resource",
            max_bytes=settings.RESOURCE_MAX_BYTES,
            allowed_types=WORD_DOCUMENT_TYPES,
            rejection_message=RESOURCE_REJECTION,
            **shared,
        ),
        UploadProfile.HOMEWORK_FILES: UploadConfig(field_name="homework-file", **homework),
        UploadProfile.HOMEWORKS: UploadConfig(field_name="submissionFile", **homework),
    }


def build_ingestors(settings: Settings) -> dict[UploadProfile, UploadIngestor]:
    return {profile: UploadIngestor(config) for profile, config in build_upload_configs(settings).items()}


ingestors = build_ingestors(st)
