# secureshare/services/slot_service.py
from __future__ import annotations

import time
from datetime import timedelta
from typing import Iterable, Optional
from uuid import uuid4

from secureshare.config.settings import Settings
from secureshare.domain.errors import (
    Expired,
    FileNotFound,
    InvalidCredential,
    SlotNotFound,
    StorageFault,
    ValidationError,
)
from secureshare.domain.slot import (
    CreatedSlot,
    Download,
    FileRecord,
    IncomingFile,
    Slot,
    SlotContents,
    TextRecord,
    UploadResult,
)
from secureshare.logger import get_logger
from secureshare.services.credentials import CredentialVerifier
from secureshare.services.download_tokens import DownloadTokens
from secureshare.services.expiration import Clock, ExpirationPolicy, utcnow
from secureshare.services.identifiers import IdentifierGenerator, is_slot_id
from secureshare.services.locks import KeyedLock
from secureshare.services.lockout import LockoutTracker
from secureshare.storage.base import SlotStorage
from secureshare.storage.blob_store import BlobStore
from secureshare.storage.sqlite_store import SqliteSlotStorage

logger = get_logger(__name__)

MAX_ID_ATTEMPTS = 100
MIN_ORPHAN_GRACE = timedelta(minutes=1)


class SlotService:
    """
    Coordina creación, acceso, upload, descarga y borrado de slots.

    Cada operación sobre un slot existente corre bajo el lock de ese slot:
    leer slot -> chequeo de expiración -> verificar password -> (contar fallo |
    operar) es una sola unidad, así dos passwords incorrectos concurrentes no
    leen el mismo contador.
    """

    def __init__(
        self,
        storage: SlotStorage,
        verifier: CredentialVerifier,
        expiration: Optional[ExpirationPolicy] = None,
        lockout: Optional[LockoutTracker] = None,
        identifiers: Optional[IdentifierGenerator] = None,
        tokens: Optional[DownloadTokens] = None,
        min_password_length: int = 4,
        max_files_per_upload: int = 50,
    ) -> None:
        self.storage = storage
        self.blob_store = storage.blob_store
        self.verifier = verifier
        self.expiration = expiration or ExpirationPolicy()
        self.lockout = lockout or LockoutTracker(storage)
        self.identifiers = identifiers or IdentifierGenerator()
        self.tokens = tokens
        self.min_password_length = min_password_length
        self.max_files_per_upload = max_files_per_upload
        self._locks = KeyedLock()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utcnow) -> "SlotService":
        blob_store = BlobStore(settings.uploads_dir)
        storage = SqliteSlotStorage(settings.database_path, blob_store)
        return cls(
            storage=storage,
            verifier=CredentialVerifier(
                time_cost=settings.argon2_time_cost,
                memory_cost=settings.argon2_memory_cost,
                parallelism=settings.argon2_parallelism,
            ),
            expiration=ExpirationPolicy(ttl=timedelta(hours=settings.slot_ttl_hours), clock=clock),
            lockout=LockoutTracker(storage, max_failed_attempts=settings.max_failed_attempts),
            tokens=DownloadTokens(settings.secret_key, ttl_seconds=settings.download_token_ttl_seconds),
            min_password_length=settings.min_password_length,
            max_files_per_upload=settings.max_files_per_upload,
        )

    # ------------------------------------------------------------------
    # Operaciones públicas
    # ------------------------------------------------------------------

    def create_slot(self, password: str) -> CreatedSlot:
        if not password or len(password) < self.min_password_length:
            raise ValidationError(f"Password must be at least {self.min_password_length} characters")

        password_hash = self.verifier.hash(password)
        created_at = self.expiration.now()
        expires_at = self.expiration.expiry_for(created_at)

        for _ in range(MAX_ID_ATTEMPTS):
            slot = Slot(
                id=self.identifiers.generate(),
                password_hash=password_hash,
                created_at=created_at,
                expires_at=expires_at,
            )
            if self.storage.insert_slot(slot):
                logger.info("Created slot %s expires_at=%s", slot.id, expires_at.isoformat())
                return CreatedSlot(slot_id=slot.id, expires_at=expires_at)
            logger.debug("Slot id collision, retrying")

        raise StorageFault("Could not allocate a free slot id")

    def verify_slot_password(self, slot_id: str, password: str) -> bool:
        """Verificación pura, sin efectos sobre el contador."""
        slot = self.storage.get_slot(slot_id) if is_slot_id(slot_id) else None
        if slot is None:
            return False
        return self.verifier.verify(slot.password_hash, password)

    def upload(
        self,
        slot_id: str,
        password: str,
        files: Iterable[IncomingFile] = (),
        text: Optional[str] = None,
    ) -> UploadResult:
        files = list(files)
        if len(files) > self.max_files_per_upload:
            raise ValidationError(f"At most {self.max_files_per_upload} files per upload")

        with self._locks.hold(slot_id):
            self._authorize(slot_id, password)

            added = 0
            for incoming in files:
                self._store_file(slot_id, incoming)
                added += 1

            text_saved = False
            if text is not None and text.strip():
                self.storage.upsert_text(TextRecord(slot_id=slot_id, content=text))
                text_saved = True

        logger.info("Upload to slot %s: files=%d text=%s", slot_id, added, text_saved)
        return UploadResult(files_added=added, text_saved=text_saved)

    def access(self, slot_id: str, password: str) -> SlotContents:
        with self._locks.hold(slot_id):
            slot = self._authorize(slot_id, password)
            files = self.storage.list_files(slot_id)
            text = self.storage.get_text(slot_id)

        contents = SlotContents(slot=slot.to_public(), files=files, text_content=text)
        if self.tokens:
            contents.download_token, contents.download_token_expires_at = self.tokens.issue(slot_id)
        return contents

    def download(
        self,
        slot_id: str,
        file_id: str,
        password: Optional[str] = None,
        token: Optional[str] = None,
    ) -> Download:
        """
        Autentica con token de descarga o con password.

        Un token inválido se rechaza sin contar como intento fallido.
        """
        with self._locks.hold(slot_id):
            if token is not None:
                self._load_live_slot(slot_id)
                if not (self.tokens and self.tokens.is_valid(token, slot_id)):
                    raise InvalidCredential(message="Invalid or expired download token")
            else:
                self._authorize(slot_id, password)

            record = self.storage.get_file(file_id)
            if record is None or record.slot_id != slot_id:
                raise FileNotFound(file_id)
            # se abre bajo el lock: un borrado posterior no invalida el handle
            try:
                stream = self.blob_store.open(record.filename)
            except FileNotFoundError:
                logger.error("Blob %s missing for file %s in slot %s", record.filename, file_id, slot_id)
                raise FileNotFound(file_id)

            return Download(
                stream=stream,
                original_name=record.original_name,
                size=record.size,
                mime_type=record.mime_type,
            )

    def delete(self, slot_id: str, password: str) -> None:
        """Borrado explícito. Si el slot ya no existe, no hay nada que hacer."""
        with self._locks.hold(slot_id):
            try:
                self._authorize(slot_id, password)
            except SlotNotFound:
                logger.debug("Delete requested for missing slot %s", slot_id)
                return
            self.storage.delete_slot(slot_id)
        logger.info("Slot %s deleted by request", slot_id)

    def delete_slot(self, slot_id: str) -> bool:
        """Borrado en cascada sin credenciales, serializado con el resto de operaciones del slot."""
        with self._locks.hold(slot_id):
            return self.storage.delete_slot(slot_id)

    def sweep_expired(self) -> int:
        """
        Borra todos los slots vencidos. Tolera que un chequeo lazy concurrente
        haya borrado alguno antes.

        Returns:
            Cantidad de slots borrados por esta pasada.
        """
        cutoff = self.expiration.sweep_cutoff()
        deleted = 0
        for candidate in self.storage.list_expired_slots(cutoff):
            with self._locks.hold(candidate.id):
                current = self.storage.get_slot(candidate.id)
                if current is None or current.expires_at > cutoff:
                    continue
                if self.storage.delete_slot(candidate.id):
                    deleted += 1
        return deleted

    def sweep_orphan_blobs(self, grace: timedelta = timedelta(hours=1)) -> int:
        """Borra blobs sin FileRecord más viejos que grace (restos de un crash entre escritura y registro)."""
        if grace < MIN_ORPHAN_GRACE:
            # un upload en curso tiene su blob escrito pero aún sin registrar
            raise ValidationError(f"Orphan grace must be at least {MIN_ORPHAN_GRACE}")
        referenced = self.storage.referenced_blob_names()
        threshold = time.time() - grace.total_seconds()
        removed = 0
        for name, mtime in self.blob_store.iter_blobs():
            if name in referenced or mtime > threshold:
                continue
            if self.blob_store.remove(name):
                removed += 1
        if removed:
            logger.info("Removed %d orphaned blobs", removed)
        return removed

    def close(self) -> None:
        self.storage.close()

    # ------------------------------------------------------------------
    # Internos (llamar con el lock del slot tomado)
    # ------------------------------------------------------------------

    def _load_live_slot(self, slot_id: str) -> Slot:
        if not is_slot_id(slot_id):
            raise SlotNotFound(slot_id)
        slot = self.storage.get_slot(slot_id)
        if slot is None:
            raise SlotNotFound(slot_id)
        if self.expiration.is_expired(slot):
            self.storage.delete_slot(slot_id)
            logger.info("Slot %s expired on access, deleted", slot_id)
            raise Expired(slot_id)
        return slot

    def _authorize(self, slot_id: str, password: Optional[str]) -> Slot:
        slot = self._load_live_slot(slot_id)
        if not self.verifier.verify(slot.password_hash, password):
            self.lockout.record_failure(slot_id)
        return slot

    def _store_file(self, slot_id: str, incoming: IncomingFile) -> FileRecord:
        # el blob se escribe antes de registrar metadatos: un crash deja un huérfano, nunca un record sin bytes
        filename, size = self.blob_store.write(incoming.stream)
        record = FileRecord(
            id=uuid4().hex,
            slot_id=slot_id,
            filename=filename,
            original_name=incoming.original_name or "file",
            size=size,
            mime_type=incoming.mime_type,
            uploaded_at=self.expiration.now(),
        )
        try:
            self.storage.add_file(record)
        except Exception:
            self.blob_store.remove(filename)
            raise
        return record
