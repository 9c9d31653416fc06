from filerelay.schemas.storage import UPLOAD_SUCCESS_MESSAGE, HealthStatus, UploadResult

__all__ = [
    "UPLOAD_SUCCESS_MESSAGE",
    "HealthStatus",
    "UploadResult",
]
