# secureshare/domain/errors.py
"""
Taxonomía de errores del núcleo de slots.

Los handlers HTTP traducen cada clase a un código de estado; el núcleo nunca
construye respuestas HTTP.
"""
from typing import Optional


class SlotShareError(Exception):
    """Base de todos los errores de dominio."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SlotShareError):
    """Input malformado; se rechaza antes de tocar el storage."""


class NotFound(SlotShareError):
    pass


class SlotNotFound(NotFound):
    def __init__(self, slot_id: str) -> None:
        super().__init__("Slot not found")
        self.slot_id = slot_id


class FileNotFound(NotFound):
    def __init__(self, file_id: str) -> None:
        super().__init__("File not found")
        self.file_id = file_id


class Expired(SlotShareError):
    """El slot superó su TTL; ya fue borrado al detectarlo."""

    def __init__(self, slot_id: str) -> None:
        super().__init__("Slot has expired")
        self.slot_id = slot_id


class InvalidCredential(SlotShareError):
    """
    Password o token incorrecto.

    remaining_attempts es None cuando el fallo no cuenta para el lockout
    (por ejemplo un token de descarga inválido).
    """

    def __init__(self, remaining_attempts: Optional[int] = None, message: str = "Invalid password") -> None:
        super().__init__(message)
        self.remaining_attempts = remaining_attempts


class LockedOut(SlotShareError):
    """Se alcanzó el umbral de intentos fallidos; el slot fue borrado."""

    def __init__(self, slot_id: str) -> None:
        super().__init__("Too many failed attempts. Slot deleted.")
        self.slot_id = slot_id


class StorageFault(SlotShareError):
    """El medio de almacenamiento no está disponible o está corrupto."""
