from dataclasses import dataclass

from library_sync.models import UploadFile


PDF_MIME_TYPE = "application/pdf"
MAX_UPLOAD_BYTES = 10_485_760


@dataclass(frozen=True)
class UploadDecision:
    allowed: bool
    reason: str
    message: str = ""


def evaluate_upload(upload: UploadFile, max_bytes: int = MAX_UPLOAD_BYTES) -> UploadDecision:
    if upload.mime_type != PDF_MIME_TYPE:
        return UploadDecision(
            allowed=False,
            reason="unsupported_type",
            message="Only PDF files can be uploaded.",
        )

    if upload.size_bytes < 0:
        return UploadDecision(allowed=False, reason="invalid_size", message="File size is invalid.")

    if upload.size_bytes > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        return UploadDecision(
            allowed=False,
            reason="too_large",
            message=f"File exceeds the {limit_mb:g} MB upload limit.",
        )

    return UploadDecision(allowed=True, reason="allowed")
