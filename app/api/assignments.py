"""Assignment handouts (teachers) and assignment submissions (students)."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from robyn import Request

from app.core.logger import LogIcon, logger
from app.core.router import Router
from app.core.uploads import UploadProfile, ingestors
from app.models.uploads import UploadedFile

router = Router(__file__, prefix="/assignments")


class AssignmentForm(BaseModel):
    """Scalar fields sent with `assignment-file`; names follow the portal's form."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = ""
    due_date: date = Field(alias="dueDate")
    class_assigned: str = Field(alias="classAssigned", min_length=1)


@router.post("/", upload=ingestors[UploadProfile.ASSIGNMENTS])
async def create_assignment(form: AssignmentForm, upload: UploadedFile) -> dict:
    logger.info("Assignment created", icon=LogIcon.FILE, class_assigned=form.class_assigned)
    return {
        "success": True,
        "message": "Assignment created successfully!",
        "assignment": {
            **form.model_dump(mode="json", by_alias=True),
            "file": upload.stored_name,
        },
        "file": upload.public(),
    }


@router.post("/:id/submit", upload=ingestors[UploadProfile.SUBMISSIONS])
async def submit_assignment(request: Request, upload: UploadedFile) -> dict:
    assignment_id = request.path_params["id"]
    logger.info("Assignment submitted", icon=LogIcon.FILE, assignment_id=assignment_id)
    return {
        "success": True,
        "message": "Assignment submitted successfully!",
        "assignment_id": assignment_id,
        "submission_file": upload.stored_name,
        "file": upload.public(),
    }
