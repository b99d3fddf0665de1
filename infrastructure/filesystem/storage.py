# infrastructure/filesystem/storage.py
from __future__ import annotations
import logging
import re
from pathlib import Path

from domain.errors import PersistError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class AttachmentStorage:
    def __init__(self, base: Path) -> None:
        self.base = Path(base).resolve()

    def ensure_dir(self) -> Path:
        try:
            self.base.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistError(f"No se pudo crear el directorio {self.base}: {exc}") from exc
        return self.base

    @staticmethod
    def safe_filename(name: str) -> str:
        """Quita rutas (/ y \\) y caracteres de control; rechaza nombres vacíos, '.' y '..'."""
        cleaned = _CONTROL_CHARS.sub("", name or "")
        cleaned = re.split(r"[/\\]", cleaned)[-1].strip()
        if cleaned in ("", ".", ".."):
            raise PersistError(f"Nombre de fichero no válido: {name!r}", filename=name)
        if cleaned != name:
            logger.warning("Nombre de adjunto saneado: %r -> %r", name, cleaned)
        return cleaned

    def save_bytes(self, name: str, data: bytes) -> Path:
        fp = self.base / self.safe_filename(name)
        try:
            fp.write_bytes(data)
        except OSError as exc:
            raise PersistError(f"No se pudo escribir {fp}: {exc}", filename=name) from exc
        return fp
