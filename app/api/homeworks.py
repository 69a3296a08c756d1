"""Homework handouts (teachers) and submissions; documents and photos of handwritten work."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from robyn import Request

from app.core.logger import LogIcon, logger
from app.core.router import Router
from app.core.uploads import UploadProfile, ingestors
from app.models.core import FormFields
from app.models.uploads import UploadedFile

router = Router(__file__, prefix="/homeworks")

PUBLIC_PREFIX = "/uploads/homeworks"


class HomeworkForm(BaseModel):
    """Scalar fields sent with `homework-file`."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = ""
    due_date: date = Field(alias="dueDate")
    class_assigned: str = Field(alias="classAssigned", min_length=1)


@router.post("/", upload=ingestors[UploadProfile.HOMEWORK_FILES])
async def create_homework(form: HomeworkForm, upload: UploadedFile) -> dict:
    logger.info("Homework created", icon=LogIcon.FILE, class_assigned=form.class_assigned)
    return {
        "success": True,
        "message": "Homework created successfully!",
        "homework": {
            **form.model_dump(mode="json", by_alias=True),
            "file": f"{PUBLIC_PREFIX}/{upload.stored_name}",
        },
    }


@router.post("/:id/submit", upload=ingestors[UploadProfile.HOMEWORKS])
async def submit_homework(request: Request, upload: UploadedFile, form: FormFields) -> dict:
    homework_id = request.path_params["id"]
    logger.info("Homework submitted", icon=LogIcon.FILE, homework_id=homework_id)
    return {
        "success": True,
        "message": "Homework submitted successfully",
        "homework_id": homework_id,
        "file": f"{PUBLIC_PREFIX}/{upload.stored_name}",
        "comment": form.get("comment", ""),
    }
