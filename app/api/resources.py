"""Class resources shared by teachers (PDF and Word documents)."""

from pydantic import BaseModel, ConfigDict, Field

from app.core.logger import LogIcon, logger
from app.core.router import Router
from app.core.uploads import UploadProfile, ingestors
from app.models.uploads import UploadedFile

router = Router(__file__, prefix="/resources")


class ResourceForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    class_assigned: str = Field(default="General", alias="classAssigned")


@router.post("/upload", upload=ingestors[UploadProfile.RESOURCES])
async def upload_resource(form: ResourceForm, upload: UploadedFile) -> dict:
    class_assigned = form.class_assigned or "General"
    logger.info("Resource uploaded", icon=LogIcon.FILE, class_assigned=class_assigned)
    return {
        "success": True,
        "message": "Resource uploaded successfully",
        "resource": {
            "name": upload.original_name,
            "path": upload.stored_name,
            "classAssigned": class_assigned,
        },
    }
