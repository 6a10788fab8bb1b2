# secureshare/services/lockout.py
from enum import Enum

from secureshare.domain.errors import InvalidCredential, LockedOut, SlotNotFound
from secureshare.domain.slot import Slot
from secureshare.logger import get_logger
from secureshare.storage.base import SlotStorage

logger = get_logger(__name__)


class LockoutState(str, Enum):
    ACTIVE = "active"
    LOCKED = "locked"


class LockoutTracker:
    """
    Contador acumulativo de passwords incorrectos por slot.

    Un acierto no resetea el contador; solo el borrado del slot lo limpia. Al
    llegar a max_failed_attempts el slot se borra en cascada.
    """

    def __init__(self, storage: SlotStorage, max_failed_attempts: int = 3) -> None:
        self.storage = storage
        self.max_failed_attempts = max_failed_attempts

    def state(self, slot: Slot) -> LockoutState:
        if slot.failed_attempts >= self.max_failed_attempts:
            return LockoutState.LOCKED
        return LockoutState.ACTIVE

    def remaining_attempts(self, slot: Slot) -> int:
        return max(0, self.max_failed_attempts - slot.failed_attempts)

    def record_failure(self, slot_id: str) -> None:
        """
        Cuenta un fallo y siempre termina en excepción.

        Raises:
            InvalidCredential: con los intentos restantes.
            LockedOut: si se alcanzó el umbral; el slot ya fue borrado.
            SlotNotFound: si el slot desapareció entre tanto.
        """
        failed = self.storage.increment_failed_attempts(slot_id)
        if failed == 0:
            raise SlotNotFound(slot_id)

        remaining = self.max_failed_attempts - failed
        logger.info("Failed password for slot %s (%d/%d)", slot_id, failed, self.max_failed_attempts)
        if remaining <= 0:
            self.storage.delete_slot(slot_id)
            logger.warning("Slot %s locked out and deleted", slot_id)
            raise LockedOut(slot_id)
        raise InvalidCredential(remaining_attempts=remaining)
