"""Attachment schemas for ModelRisk API."""

from pydantic import Field, computed_field

from modelrisk.utils.files import format_file_size

from .common import BaseSchema, TimestampMixin


class AttachmentResponse(BaseSchema, TimestampMixin):
    """Schema for attachment metadata."""

    id: str
    use_case_id: str
    filename: str
    type: str
    artifact_id: str | None = None
    storage_path: str
    url: str | None = None
    file_size: int
    mime_type: str | None = None

    @computed_field
    @property
    def file_size_display(self) -> str:
        return format_file_size(self.file_size)


class AttachmentListResponse(BaseSchema):
    """Schema for a use case's attachments."""

    attachments: list[AttachmentResponse] = Field(default_factory=list)
    count: int = 0
