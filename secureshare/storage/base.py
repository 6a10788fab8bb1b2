# secureshare/storage/base.py
"""
Contrato de almacenamiento consumido por los handlers.

Toda mutación de filas o blobs pasa por aquí. El borrado en cascada vive en la
clase base para que cualquier backend de metadatos herede el mismo protocolo:
enumerar archivos, borrar blobs (best-effort) y luego borrar hijos y padre en
una sola transacción.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Set

from secureshare.domain.errors import StorageFault
from secureshare.domain.slot import FileRecord, Slot, TextRecord
from secureshare.logger import get_logger
from secureshare.storage.blob_store import BlobStore

logger = get_logger(__name__)


class SlotStorage(ABC):

    def __init__(self, blob_store: BlobStore) -> None:
        self.blob_store = blob_store

    # --- slots ---

    @abstractmethod
    def insert_slot(self, slot: Slot) -> bool:
        """Inserta el slot. Retorna False si el id ya está en uso por un slot vivo."""

    @abstractmethod
    def get_slot(self, slot_id: str) -> Optional[Slot]:
        ...

    @abstractmethod
    def increment_failed_attempts(self, slot_id: str) -> int:
        """
        Incremento atómico del contador.

        Returns:
            El nuevo valor, o 0 si el slot ya no existe.
        """

    @abstractmethod
    def list_expired_slots(self, now: datetime) -> List[Slot]:
        """Slots con expires_at <= now."""

    # --- files / text ---

    @abstractmethod
    def add_file(self, record: FileRecord) -> None:
        """Registra metadatos de un blob ya escrito. SlotNotFound si el slot desapareció."""

    @abstractmethod
    def list_files(self, slot_id: str) -> List[FileRecord]:
        ...

    @abstractmethod
    def get_file(self, file_id: str) -> Optional[FileRecord]:
        ...

    @abstractmethod
    def upsert_text(self, record: TextRecord) -> None:
        ...

    @abstractmethod
    def get_text(self, slot_id: str) -> Optional[TextRecord]:
        ...

    @abstractmethod
    def referenced_blob_names(self) -> Set[str]:
        ...

    # --- deletion ---

    @abstractmethod
    def _delete_slot_rows(self, slot_id: str) -> bool:
        """Borra file records, text record y slot en una transacción. True si existía el slot."""

    def delete_slot(self, slot_id: str) -> bool:
        """
        Borrado en cascada idempotente.

        Un blob ausente no es un error: indica un borrado previo parcial o
        concurrente. Un fallo al borrar un blob se registra y no impide borrar
        los metadatos; el blob huérfano lo recoge el sweep.

        Returns:
            True si este llamado eliminó el slot, False si ya no existía.
        """
        files = self.list_files(slot_id)
        for record in files:
            try:
                self.blob_store.remove(record.filename)
            except StorageFault as e:
                logger.warning("Could not remove blob %s of slot %s: %s", record.filename, slot_id, e)

        deleted = self._delete_slot_rows(slot_id)
        if deleted:
            logger.info("Deleted slot %s (%d files)", slot_id, len(files))
        else:
            logger.debug("Slot %s already gone", slot_id)
        return deleted

    def close(self) -> None:
        pass
