from pydantic import BaseModel

UPLOAD_SUCCESS_MESSAGE = "File uploaded successfully."


class UploadResult(BaseModel):
    message: str = UPLOAD_SUCCESS_MESSAGE
    key: str


class HealthStatus(BaseModel):
    status: str = "ok"
