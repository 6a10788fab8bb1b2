# secureshare/services/identifiers.py
import random
import re
import secrets
import string
from typing import Optional

SLOT_ID_LENGTHS = (6, 7, 8)
SLOT_ID_RE = re.compile(r"^\d{6,8}$")


def is_slot_id(value: str) -> bool:
    return bool(value) and SLOT_ID_RE.match(value) is not None


class IdentifierGenerator:
    """
    Genera ids de slot: 6, 7 u 8 dígitos decimales (se permite cero inicial).

    La unicidad no es responsabilidad del generador; quien lo usa reintenta
    mientras el storage rechace el id por colisión.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or secrets.SystemRandom()

    def generate(self) -> str:
        length = self._rng.choice(SLOT_ID_LENGTHS)
        return "".join(self._rng.choice(string.digits) for _ in range(length))
