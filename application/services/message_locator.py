# application/services/message_locator.py
from __future__ import annotations
import logging

from domain.errors import NoMatchError
from domain.models import SearchCriteria
from domain.ports import MailboxClient

logger = logging.getLogger(__name__)


class MessageLocator:
    def __init__(self, client: MailboxClient) -> None:
        self.client = client

    def find_unread(self, sender: str, subject: str, limit: int | None = None) -> list[int]:
        """Ids de los correos no leídos de `sender` con `subject`. Sin resultados -> NoMatchError."""
        criteria = SearchCriteria(sender=sender, subject=subject, unseen=True)
        ids = sorted(self.client.search(criteria))  # procesar en orden
        if not ids:
            logger.info("Sin correos no leídos de %s con asunto '%s'", sender, subject)
            raise NoMatchError(sender, subject)
        if limit:
            ids = ids[:limit]
        logger.info("Encontrados %d correos no leídos", len(ids))
        return ids
