# secureshare/api/routes.py
from typing import BinaryIO, Iterator, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Header, Query, Request, UploadFile
from fastapi.responses import StreamingResponse

from secureshare.api.schemas import (
    AccessSlotRequest,
    AccessSlotResponse,
    CreateSlotRequest,
    CreateSlotResponse,
    DeleteSlotRequest,
    FileSchema,
    PublicSlotSchema,
    SuccessResponse,
    TextContentSchema,
    UploadResponse,
)
from secureshare.domain.errors import InvalidCredential
from secureshare.domain.slot import IncomingFile
from secureshare.logger import get_logger
from secureshare.services.slot_service import SlotService

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["slots"])

CHUNK_SIZE = 64 * 1024


def iter_blob(stream: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


def get_slot_service(request: Request) -> SlotService:
    """El servicio se crea una vez en create_app() y se comparte entre requests."""
    return request.app.state.slot_service


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.post("/slot", response_model=CreateSlotResponse)
def create_slot(
    body: CreateSlotRequest,
    service: SlotService = Depends(get_slot_service),
) -> CreateSlotResponse:
    created = service.create_slot(body.password)
    return CreateSlotResponse(slot_id=created.slot_id, expires_at=created.expires_at)


@router.post("/upload/{slot_id}", response_model=UploadResponse)
def upload(
    slot_id: str,
    password: str = Form(...),
    text: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    service: SlotService = Depends(get_slot_service),
) -> UploadResponse:
    incoming = [
        IncomingFile(original_name=f.filename or "file", stream=f.file, mime_type=f.content_type)
        for f in files or []
    ]
    result = service.upload(slot_id, password, files=incoming, text=text)
    return UploadResponse(files_added=result.files_added, text_saved=result.text_saved)


@router.post("/slot/{slot_id}", response_model=AccessSlotResponse)
def access_slot(
    slot_id: str,
    body: AccessSlotRequest,
    service: SlotService = Depends(get_slot_service),
) -> AccessSlotResponse:
    contents = service.access(slot_id, body.password)
    return AccessSlotResponse(
        slot=PublicSlotSchema.model_validate(contents.slot, from_attributes=True),
        files=[FileSchema.model_validate(f, from_attributes=True) for f in contents.files],
        text_content=(
            TextContentSchema.model_validate(contents.text_content, from_attributes=True)
            if contents.text_content
            else None
        ),
        download_token=contents.download_token,
        download_token_expires_at=contents.download_token_expires_at,
    )


@router.get("/download/{slot_id}/{file_id}")
def download(
    slot_id: str,
    file_id: str,
    token: Optional[str] = Query(None, description="Token emitido por POST /api/slot/{slot_id}."),
    x_slot_password: Optional[str] = Header(None),
    service: SlotService = Depends(get_slot_service),
) -> StreamingResponse:
    """
    Descarga un archivo. Acepta el token de descarga o el password en el
    header X-Slot-Password; el password nunca viaja en la URL.
    """
    if token is None and x_slot_password is None:
        raise InvalidCredential(message="Download token or password required")

    result = service.download(slot_id, file_id, password=x_slot_password, token=token)
    return StreamingResponse(
        iter_blob(result.stream),
        media_type=result.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": content_disposition(result.original_name),
            "Content-Length": str(result.size),
        },
    )


@router.delete("/slot/{slot_id}", response_model=SuccessResponse)
def delete_slot(
    slot_id: str,
    body: DeleteSlotRequest,
    service: SlotService = Depends(get_slot_service),
) -> SuccessResponse:
    service.delete(slot_id, body.password)
    return SuccessResponse()
