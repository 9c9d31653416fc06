from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from filerelay.api.deps import get_storage
from filerelay.core.errors import InvalidInput
from filerelay.schemas import UploadResult
from filerelay.services.storage import StorageService

router = APIRouter(prefix="/aws", tags=["files"])


def _content_disposition(key: str) -> str:
    try:
        key.encode("latin-1")
    except UnicodeEncodeError:
        return f"attachment; filename*=UTF-8''{quote(key)}"
    return f'attachment; filename="{key}"'


@router.post("", response_model=UploadResult, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile | str | None = File(default=None),
    storage: StorageService = Depends(get_storage),
) -> UploadResult:
    # Form parsing yields starlette UploadFile instances, plain strings for text fields
    if not isinstance(file, StarletteUploadFile) or not file.filename:
        raise InvalidInput("Uploaded file is empty")

    data = await file.read()
    if not data:
        raise InvalidInput("File size is 0. Cannot upload an empty file.")

    return await storage.upload(file.filename, data, file.content_type)


@router.get("/download/{key:path}")
async def download_file(
    key: str,
    storage: StorageService = Depends(get_storage),
) -> StreamingResponse:
    obj = await storage.download(key)
    headers = {"Content-Disposition": _content_disposition(key)}
    if obj.content_length is not None:
        headers["Content-Length"] = str(obj.content_length)
    return StreamingResponse(obj.chunks, media_type=obj.content_type, headers=headers)
