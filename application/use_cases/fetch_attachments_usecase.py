# application/use_cases/fetch_attachments_usecase.py
from __future__ import annotations
import logging

from application.services.attachment_extractor import extract_attachments
from application.services.attachment_persister import persist_attachments
from application.services.message_locator import MessageLocator
from domain.errors import ParseError
from domain.models import ExtractionResult, RawMessage
from domain.ports import MailboxClient
from infrastructure.filesystem.storage import AttachmentStorage
from infrastructure.mime.parser import parse_message

logger = logging.getLogger(__name__)


class FetchAttachmentsUseCase:
    def __init__(
        self,
        *,
        storage: AttachmentStorage,
        sender: str,
        subject: str,
        mailbox: str = "INBOX",
        default_name: str = "adjunto",
        limit: int | None = None,
    ) -> None:
        self.storage = storage
        self.sender = sender
        self.subject = subject
        self.mailbox = mailbox
        self.default_name = default_name
        self.limit = limit

    def run(self, client: MailboxClient) -> ExtractionResult:
        """
        Busca los correos no leídos del remitente/asunto configurados y guarda sus adjuntos.
        NoMatchError y los errores de conexión se propagan; el resto se anota en el resultado.
        """
        logger.info("Buzones:")
        for mb in client.list_mailboxes():
            logger.info("* %s", mb.name)

        flags = client.select_mailbox(self.mailbox)
        logger.info("Flags de %s: %s", self.mailbox, ", ".join(flags))

        ids = MessageLocator(client).find_unread(self.sender, self.subject, limit=self.limit)

        result = ExtractionResult()
        for raw in client.fetch_raw(ids):
            result.extend(self.process_message(raw))

        if result.paths:
            logger.info("Ficheros guardados: %s", ", ".join(str(p) for p in result.paths))
        logger.info(
            "Hecho: %d correos, %d ficheros, %d incidencias",
            result.messages_processed, len(result.paths), len(result.errors),
        )
        return result

    def process_message(self, raw: RawMessage) -> ExtractionResult:
        result = ExtractionResult(messages_processed=1)
        try:
            entity = parse_message(raw.data)
        except ParseError as exc:
            logger.warning("Mensaje %s no parseable: %s", raw.msg_id, exc)
            result.errors.append(f"[msg={raw.msg_id}] {exc}")
            return result

        logger.info(
            "=== Procesando correo %s de %s — asunto: %s ===",
            raw.msg_id, entity.header_text("From") or "-", entity.header_text("Subject") or "-",
        )
        candidates, warnings = extract_attachments(entity, default_name=self.default_name, msg_id=raw.msg_id)
        result.errors.extend(str(w) for w in warnings)
        if not candidates:
            logger.info("Correo %s sin adjuntos", raw.msg_id)
            return result

        result.extend(persist_attachments(self.storage, candidates))
        return result
