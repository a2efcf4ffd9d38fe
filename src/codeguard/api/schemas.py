from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..constants import JobStatus, ScanType


class ScanCreateRequest(BaseModel):
    repository_id: int = Field(ge=1)
    scan_type: ScanType = ScanType.FULL
    upload_storage_key: Optional[str] = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def _require_key_for_upload(self) -> "ScanCreateRequest":
        if self.scan_type is ScanType.UPLOAD and not self.upload_storage_key:
            raise ValueError("upload_storage_key is required for upload scans")
        return self


class ScanJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    repository_id: int
    scan_type: ScanType
    status: JobStatus
    progress: int
    created_at: datetime


class ScanStatusResponse(BaseModel):
    status: JobStatus
    progress: int
    error_message: Optional[str] = None


class ProcessNextResponse(BaseModel):
    processed: bool
    job_id: Optional[int] = None
    status: Optional[JobStatus] = None
    error_message: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
