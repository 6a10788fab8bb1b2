# secureshare/services/credentials.py
from passlib.context import CryptContext

from secureshare.logger import get_logger

logger = get_logger(__name__)


class CredentialVerifier:
    """
    Hash y verificación de passwords con Argon2 (memory-hard, con salt).

    verify() nunca lanza por un hash corrupto o de otro algoritmo: un fallo de
    verificación es un dato, no una falla.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4) -> None:
        self._context = CryptContext(
            schemes=["argon2"],
            argon2__time_cost=time_cost,
            argon2__memory_cost=memory_cost,
            argon2__parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password_hash: str, candidate: str) -> bool:
        if not password_hash or candidate is None:
            return False
        try:
            return self._context.verify(candidate, password_hash)
        except (ValueError, TypeError) as e:
            logger.warning("Stored password hash could not be verified: %s", type(e).__name__)
            return False
