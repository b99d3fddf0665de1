# utils/log_capture.py

from __future__ import annotations
import io
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class MailRunLogCapture:
    """
    Copia en memoria el log (root) de una ejecución y, si se indica `log_dir`,
    lo deja en <log_dir>/log_<UTC>.txt al salir del bloque, haya ido bien o no.
        with MailRunLogCapture(log_dir=Path("./logs")) as cap:
            ...
        cap.path  # fichero escrito, o None
    """
    def __init__(self, log_dir: Path | None = None, level: int = logging.INFO) -> None:
        self.log_dir = log_dir
        self.level = level
        self.path: Path | None = None
        self._buffer = io.StringIO()
        self._handler = logging.StreamHandler(self._buffer)
        self._handler.setLevel(level)
        self._handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self._prev_level = logging.NOTSET

    def __enter__(self) -> "MailRunLogCapture":
        root = logging.getLogger()
        self._prev_level = root.level
        if not self._prev_level or self._prev_level > self.level:
            root.setLevel(self.level)
        root.addHandler(self._handler)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        root = logging.getLogger()
        root.removeHandler(self._handler)
        root.setLevel(self._prev_level)
        self._handler.close()
        if self.log_dir is not None:
            try:
                self.path = self._write(self.log_dir)
                logger.info("Log de la ejecución guardado en %s", self.path)
            except OSError:
                logger.exception("No se pudo guardar el log de la ejecución en %s", self.log_dir)

    def text(self) -> str:
        return self._buffer.getvalue()

    def _write(self, log_dir: Path) -> Path:
        log_dir.mkdir(parents=True, exist_ok=True)
        fp = log_dir / f"log_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S%fZ')}.txt"
        fp.write_text(self.text(), encoding="utf-8")
        return fp
