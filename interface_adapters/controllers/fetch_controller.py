# interface_adapters/controllers/fetch_controller.py
from __future__ import annotations
import logging
from typing import Callable

from config.settings import Settings
from infrastructure.filesystem.storage import AttachmentStorage
from application.use_cases.fetch_attachments_usecase import FetchAttachmentsUseCase
from domain.models import ExtractionResult
from domain.ports import MailboxClient
from utils.log_capture import MailRunLogCapture

from infrastructure.email.imap_client import IMAPInbox

logger = logging.getLogger(__name__)

class FetchController:
    def __init__(self, settings: Settings, client_factory: Callable[[], MailboxClient] | None = None) -> None:
        self.settings = settings
        self.storage = AttachmentStorage(base=settings.attach_dir_path())
        self.uc = FetchAttachmentsUseCase(
            storage=self.storage,
            sender=settings.MAIL_FROM_FILTER,
            subject=settings.MAIL_SUBJECT_FILTER,
            mailbox=settings.IMAP_FOLDER_INBOX,
            default_name=settings.ATTACH_DEFAULT_NAME,
            limit=settings.mail_limit(),
        )
        self.client_factory = client_factory or self._imap_inbox

    def _imap_inbox(self) -> MailboxClient:
        st = self.settings
        return IMAPInbox(
            st.IMAP_HOST,
            st.IMAP_PORT,
            st.IMAP_USERNAME,
            st.IMAP_PASSWORD,
            st.IMAP_SSL,
            timeout=st.IMAP_TIMEOUT,
            fetch_batch=st.FETCH_BATCH,
        )

    # ───────────────────────── ejecución ─────────────────────────
    def run_once(self) -> ExtractionResult:
        """
        Una pasada completa: conectar, buscar, descargar y guardar adjuntos.
        Los errores de conexión y NoMatchError se propagan al llamador.
        """
        with MailRunLogCapture(log_dir=self.settings.log_dir_path()):
            with self.client_factory() as client:
                result = self.uc.run(client)
            for err in result.errors:
                logger.warning("Incidencia: %s", err)
        return result
