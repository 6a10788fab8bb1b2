# secureshare/storage/blob_store.py
from __future__ import annotations

import os
import re
import secrets
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Iterator, Tuple

from secureshare.domain.errors import StorageFault
from secureshare.logger import get_logger

logger = get_logger(__name__)

BLOB_NAME_RE = re.compile(r"^\d+-[0-9a-f]{32}$")
TMP_PREFIX = ".tmp-"


class BlobStore:
    """
    Bytes de los archivos subidos, guardados bajo nombres aleatorios.

    El nombre nunca deriva del nombre original que manda el usuario.
    """

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def new_name() -> str:
        return f"{int(time.time() * 1000)}-{secrets.token_hex(16)}"

    def path_for(self, name: str) -> Path:
        if not BLOB_NAME_RE.match(name):
            raise StorageFault(f"Invalid blob name: {name!r}")
        return self.root / name

    def write(self, stream: BinaryIO) -> Tuple[str, int]:
        """
        Copia el stream a un blob nuevo.

        Escribe a un nombre temporal y renombra al terminar, así un blob visible
        siempre está completo.

        Returns:
            (nombre del blob, tamaño en bytes)
        """
        name = self.new_name()
        final_path = self.path_for(name)
        tmp_path = self.root / f"{TMP_PREFIX}{name}"
        try:
            with open(tmp_path, "wb") as out:
                shutil.copyfileobj(stream, out)
            size = tmp_path.stat().st_size
            os.replace(tmp_path, final_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageFault(f"Failed to write blob: {e}") from e
        return name, size

    def open(self, name: str) -> BinaryIO:
        """
        Abre el blob para lectura.

        Raises:
            FileNotFoundError: si el blob no existe.
            StorageFault: ante cualquier otro error de E/S.
        """
        path = self.path_for(name)
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise
        except OSError as e:
            raise StorageFault(f"Failed to open blob {name}: {e}") from e

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def remove(self, name: str) -> bool:
        """Retorna False si el blob ya no estaba."""
        try:
            self.path_for(name).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageFault(f"Failed to remove blob {name}: {e}") from e

    def iter_blobs(self) -> Iterator[Tuple[str, float]]:
        """(nombre, mtime) de cada blob completo."""
        try:
            entries = list(os.scandir(self.root))
        except OSError as e:
            raise StorageFault(f"Failed to list blob area: {e}") from e
        for entry in entries:
            if entry.is_file() and BLOB_NAME_RE.match(entry.name):
                try:
                    yield entry.name, entry.stat().st_mtime
                except FileNotFoundError:
                    continue
