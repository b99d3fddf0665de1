# domain/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path

from pyzmail.parse import decode_mail_header


def decode_header_text(value: str) -> str:
    """Decodifica encoded-words RFC 2047; el texto sin ellos se devuelve tal cual."""
    if "=?" not in value:
        return value
    return decode_mail_header(value)


@dataclass(frozen=True)
class RawMessage:
    msg_id: int
    data: bytes


class HeaderMap:
    """
    Cabeceras de una entidad MIME: nombre (sin distinguir mayúsculas) -> lista de valores.
    Conserva el orden de aparición.
    """
    def __init__(self, items: list[tuple[str, str]] | None = None) -> None:
        self._items: list[tuple[str, str]] = list(items or [])

    def get(self, name: str, default: str | None = None) -> str | None:
        key = name.lower()
        for k, v in self._items:
            if k.lower() == key:
                return v
        return default

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"


@dataclass(frozen=True)
class ContentType:
    maintype: str = "text"
    subtype: str = "plain"
    params: dict[str, str] = field(default_factory=dict)

    @property
    def mime_type(self) -> str:
        return f"{self.maintype}/{self.subtype}"

    @property
    def is_multipart(self) -> bool:
        return self.maintype == "multipart"


@dataclass(frozen=True)
class ContentDisposition:
    token: str | None = None  # attachment | inline | otro | None (sin cabecera)
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class MimeEntity:
    """
    Nodo MIME ya parseado. Un nodo hoja tiene `body` (bytes ya decodificados del
    Content-Transfer-Encoding) y ningún hijo; un contenedor multipart tiene hijos
    en el orden del mensaje original y `body=None`.
    """
    headers: HeaderMap
    content_type: ContentType
    disposition: ContentDisposition
    body: bytes | None = None
    children: list[MimeEntity] = field(default_factory=list)
    defects: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.children and self.body is not None:
            raise ValueError("Una entidad MIME no puede tener cuerpo e hijos a la vez")
        if not self.children and self.body is None:
            self.body = b""

    @property
    def is_multipart(self) -> bool:
        return bool(self.children)

    def header_text(self, name: str) -> str:
        """Valor de la cabecera con los encoded-words RFC 2047 ya decodificados."""
        raw = self.headers.get(name)
        if raw is None:
            return ""
        return decode_header_text(raw).strip()


@dataclass(frozen=True)
class AttachmentCandidate:
    filename: str
    content: bytes
    disposition: str
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class ExtractionWarning:
    message: str
    msg_id: int | None = None
    part: str | None = None

    def __str__(self) -> str:
        where = []
        if self.msg_id is not None:
            where.append(f"msg={self.msg_id}")
        if self.part:
            where.append(f"parte={self.part}")
        prefix = f"[{' '.join(where)}] " if where else ""
        return f"{prefix}{self.message}"


@dataclass
class ExtractionResult:
    paths: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    messages_processed: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def extend(self, other: ExtractionResult) -> None:
        self.paths.extend(other.paths)
        self.errors.extend(other.errors)
        self.messages_processed += other.messages_processed


@dataclass(frozen=True)
class SearchCriteria:
    sender: str = ""
    subject: str = ""
    unseen: bool = True


@dataclass(frozen=True)
class MailboxInfo:
    name: str
    flags: tuple[str, ...] = ()
    delimiter: str = "/"
