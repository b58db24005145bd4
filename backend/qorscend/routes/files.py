from typing import Optional

from fastapi import APIRouter, File, UploadFile

from .. import storage
from ..errors import ValidationError

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/upload")
async def upload_file(file: Optional[UploadFile] = File(None)):
    """Write the raw bytes to storage; registration happens in a second call."""

    if file is None or not file.filename:
        raise ValidationError("file is required")
    data = await file.read()
    filename, _, size = storage.save_upload(
        data,
        file.filename,
        content_type=file.content_type or "application/octet-stream",
    )
    return {"success": True, "filename": filename, "originalName": file.filename, "size": size}
