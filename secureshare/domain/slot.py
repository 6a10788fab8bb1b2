# secureshare/domain/slot.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, List, Optional


@dataclass(frozen=True)
class Slot:
    id: str
    password_hash: str
    created_at: datetime
    expires_at: datetime
    failed_attempts: int = 0

    def to_public(self) -> "PublicSlot":
        return PublicSlot(id=self.id, created_at=self.created_at, expires_at=self.expires_at)


@dataclass(frozen=True)
class PublicSlot:
    """Vista del slot sin hash ni contador de intentos."""
    id: str
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class FileRecord:
    id: str
    slot_id: str
    filename: str
    original_name: str
    size: int
    uploaded_at: datetime
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class TextRecord:
    slot_id: str
    content: str


@dataclass(frozen=True)
class IncomingFile:
    """Archivo recibido en un upload, antes de escribirse en el blob store."""
    original_name: str
    stream: object
    mime_type: Optional[str] = None


@dataclass
class SlotContents:
    slot: PublicSlot
    files: List[FileRecord] = field(default_factory=list)
    text_content: Optional[TextRecord] = None
    download_token: Optional[str] = None
    download_token_expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class CreatedSlot:
    slot_id: str
    expires_at: datetime


@dataclass(frozen=True)
class UploadResult:
    files_added: int
    text_saved: bool


@dataclass(frozen=True)
class Download:
    """Blob ya abierto: el handle sigue siendo legible aunque el slot se borre después."""
    stream: BinaryIO
    original_name: str
    size: int
    mime_type: Optional[str] = None
