# secureshare/services/expiration.py
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from secureshare.domain.slot import Slot

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExpirationPolicy:
    """TTL fijo desde la creación; expires_at no cambia después."""

    def __init__(self, ttl: timedelta = timedelta(hours=24), clock: Clock = utcnow) -> None:
        self.ttl = ttl
        self._clock = clock

    def now(self) -> datetime:
        # milisegundos: es la resolución con la que se persisten los timestamps
        now = self._clock()
        return now.replace(microsecond=now.microsecond - now.microsecond % 1000)

    def expiry_for(self, created_at: datetime) -> datetime:
        return created_at + self.ttl

    def is_expired(self, slot: Slot, now: Optional[datetime] = None) -> bool:
        """Chequeo lazy en cada acceso: vencido estrictamente después de expires_at."""
        return (now or self.now()) > slot.expires_at

    def sweep_cutoff(self) -> datetime:
        """El sweep borra todo slot con expires_at <= este instante."""
        return self.now()
