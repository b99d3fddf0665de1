# config/settings.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os
from dotenv import load_dotenv

from domain.errors import ConfigError

load_dotenv()

@dataclass(frozen=True)
class Settings:
    # IMAP
    IMAP_HOST: str = os.getenv("IMAP_HOST", "")
    IMAP_PORT: int = int(os.getenv("IMAP_PORT", 993))
    IMAP_USERNAME: str = os.getenv("IMAP_USERNAME", "")
    IMAP_PASSWORD: str = os.getenv("IMAP_PASSWORD", "")
    IMAP_SSL: bool = os.getenv("IMAP_SSL", "true").lower() == "true"
    IMAP_FOLDER_INBOX: str = os.getenv("IMAP_FOLDER_INBOX", "INBOX")
    IMAP_TIMEOUT: int = int(os.getenv("IMAP_TIMEOUT", 60))

    # Filtros de búsqueda (remitente y asunto exactos, sólo no leídos)
    MAIL_FROM_FILTER: str = os.getenv("MAIL_FROM_FILTER", "")
    MAIL_SUBJECT_FILTER: str = os.getenv("MAIL_SUBJECT_FILTER", "")

    # Adjuntos: sin directorio por defecto, hay que configurarlo
    ATTACH_DIR: str = os.getenv("ATTACH_DIR", "")
    ATTACH_DEFAULT_NAME: str = os.getenv("ATTACH_DEFAULT_NAME", "adjunto")

    # Ejecución
    MAX_MAILS_PER_RUN: int = int(os.getenv("MAX_MAILS_PER_RUN", 0))
    FETCH_BATCH: int = int(os.getenv("FETCH_BATCH", 10))
    POLL_INTERVAL: int = int(os.getenv("POLL_INTERVAL", 0))  # 0 = una sola pasada
    LOG_DIR: str = os.getenv("LOG_DIR", "")

    REQUIRED = (
        "IMAP_HOST",
        "IMAP_USERNAME",
        "IMAP_PASSWORD",
        "MAIL_FROM_FILTER",
        "MAIL_SUBJECT_FILTER",
        "ATTACH_DIR",
    )

    # ───────── helpers ─────────
    def validate(self) -> "Settings":
        missing = [name for name in self.REQUIRED if not str(getattr(self, name) or "").strip()]
        if missing:
            raise ConfigError(f"Faltan variables de configuración: {', '.join(missing)}")
        return self

    def attach_dir_path(self) -> Path:
        return Path(self.ATTACH_DIR).resolve()

    def log_dir_path(self) -> Path | None:
        return Path(self.LOG_DIR).resolve() if self.LOG_DIR.strip() else None

    def mail_limit(self) -> int | None:
        return self.MAX_MAILS_PER_RUN if self.MAX_MAILS_PER_RUN > 0 else None
