# application/services/attachment_extractor.py
from __future__ import annotations
import logging
import mimetypes

from domain.models import AttachmentCandidate, ExtractionWarning, MimeEntity, decode_header_text

logger = logging.getLogger(__name__)

ATTACHMENT_DISPOSITIONS = ("attachment", "inline")
BODY_TYPES = ("text/plain", "text/html")


def resolve_filename(entity: MimeEntity) -> str:
    """
    Nombre declarado por la parte: `filename` de Content-Disposition y, si falta,
    `name` de Content-Type. Devuelve "" si no hay ninguno.
    """
    raw = entity.disposition.params.get("filename") or entity.content_type.params.get("name") or ""
    if not raw:
        return ""
    return decode_header_text(raw).strip()


class _Walker:
    def __init__(self, default_name: str, msg_id: int | None) -> None:
        self.default_name = default_name
        self.msg_id = msg_id
        self.unnamed = 0
        self.candidates: list[AttachmentCandidate] = []
        self.warnings: list[ExtractionWarning] = []

    def warn(self, message: str, part: str | None = None) -> None:
        w = ExtractionWarning(message=message, msg_id=self.msg_id, part=part)
        logger.warning("%s", w)
        self.warnings.append(w)

    def placeholder(self, entity: MimeEntity) -> str:
        # nombre por defecto con secuencia, para no pisar adjuntos distintos sin nombre
        self.unnamed += 1
        stem = self.default_name
        if self.msg_id is not None:
            stem = f"{stem}_{self.msg_id}"
        ext = mimetypes.guess_extension(entity.content_type.mime_type) or ""
        return f"{stem}_{self.unnamed}{ext}"

    def visit(self, entity: MimeEntity) -> None:
        if entity.is_multipart:
            for child in entity.children:
                self.visit(child)
            return
        try:
            self.leaf(entity)
        except Exception as exc:
            self.warn(f"Parte omitida por error al procesarla: {exc}", part=entity.content_type.mime_type)

    def leaf(self, entity: MimeEntity) -> None:
        token = entity.disposition.token
        mime = entity.content_type.mime_type
        if token is None:
            logger.debug("Parte %s sin Content-Disposition: cuerpo del mensaje", mime)
            return
        if token not in ATTACHMENT_DISPOSITIONS:
            self.warn(f"Content-Disposition ambiguo '{token}'; parte omitida", part=mime)
            return

        filename = resolve_filename(entity)
        if not filename:
            if token == "inline" and mime in BODY_TYPES:
                logger.debug("Parte %s inline sin nombre: cuerpo del mensaje", mime)
                return
            filename = self.placeholder(entity)

        for defect in entity.defects:
            self.warn(f"Defecto MIME en el adjunto: {defect}", part=filename)

        self.candidates.append(AttachmentCandidate(
            filename=filename,
            content=entity.body or b"",
            disposition=token,
            content_type=mime,
        ))
        logger.info("Adjunto encontrado: %s (%d bytes)", filename, len(entity.body or b""))


def extract_attachments(
    root: MimeEntity,
    *,
    default_name: str = "adjunto",
    msg_id: int | None = None,
) -> tuple[list[AttachmentCandidate], list[ExtractionWarning]]:
    """
    Recorre el árbol MIME en profundidad y en orden y devuelve (adjuntos, avisos).

    - Solo cuentan las hojas con Content-Disposition attachment/inline.
    - Un multipart anidado aporta sus descendientes, nunca a sí mismo.
    - Un mensaje sin estructura multipart cuyo cuerpo es text/plain o text/html no tiene adjuntos.
    Los problemas de una parte se registran como aviso y no interrumpen el resto.
    """
    walker = _Walker(default_name=default_name or "adjunto", msg_id=msg_id)

    if not root.is_multipart and root.content_type.mime_type in BODY_TYPES:
        logger.info("Mensaje no multipart, sin adjuntos")
        return [], []

    walker.visit(root)
    return walker.candidates, walker.warnings
