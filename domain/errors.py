# domain/errors.py
from __future__ import annotations


class MailAttachmentsError(Exception):
    """Base de todos los errores de la aplicación."""


class ConfigError(MailAttachmentsError):
    pass


class MailboxConnectionError(MailAttachmentsError):
    """Fallo de red o de autenticación con el servidor de correo. Fatal."""


class NoMatchError(MailAttachmentsError):
    """Ningún correo no leído coincide con remitente/asunto."""

    def __init__(self, sender: str = "", subject: str = "") -> None:
        self.sender = sender
        self.subject = subject
        super().__init__(f"No hay correos no leídos de '{sender}' con asunto '{subject}'")


class ParseError(MailAttachmentsError):
    """El mensaje no empieza con un bloque de cabeceras válido."""


class PersistError(MailAttachmentsError):
    def __init__(self, message: str, filename: str | None = None) -> None:
        self.filename = filename
        super().__init__(message)
