# secureshare/api/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PasswordRequest(CamelModel):
    password: str = Field(..., description="Password del slot.")


class CreateSlotRequest(PasswordRequest):
    pass


class AccessSlotRequest(PasswordRequest):
    pass


class DeleteSlotRequest(PasswordRequest):
    pass


class CreateSlotResponse(CamelModel):
    slot_id: str
    expires_at: datetime


class PublicSlotSchema(CamelModel):
    id: str
    created_at: datetime
    expires_at: datetime


class FileSchema(CamelModel):
    """Metadatos de un archivo. El nombre interno del blob no se expone."""
    id: str
    slot_id: str
    original_name: str
    size: int
    mime_type: Optional[str] = None
    uploaded_at: datetime


class TextContentSchema(CamelModel):
    slot_id: str
    content: str


class AccessSlotResponse(CamelModel):
    slot: PublicSlotSchema
    files: List[FileSchema] = Field(default_factory=list)
    text_content: Optional[TextContentSchema] = None
    download_token: Optional[str] = Field(
        None, description="Token firmado de corta vida para GET /api/download."
    )
    download_token_expires_at: Optional[datetime] = None


class UploadResponse(CamelModel):
    success: bool = True
    files_added: int
    text_saved: bool


class SuccessResponse(CamelModel):
    success: bool = True


class ErrorResponse(CamelModel):
    error: str
    remaining_attempts: Optional[int] = None
    deleted: Optional[bool] = None
