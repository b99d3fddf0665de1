# infrastructure/email/imap_client.py
from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterable, Iterator

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError

from domain.errors import MailboxConnectionError
from domain.models import MailboxInfo, RawMessage, SearchCriteria
from domain.ports import MailboxClient

logger = logging.getLogger(__name__)


def _text(value) -> str:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)


def build_search_criteria(criteria: SearchCriteria) -> list[str]:
    """SearchCriteria -> criterios IMAP SEARCH (HEADER exacto sobre From y Subject)."""
    out: list[str] = []
    if criteria.unseen:
        out.append("UNSEEN")
    if criteria.sender:
        out += ["HEADER", "From", criteria.sender]
    if criteria.subject:
        out += ["HEADER", "Subject", criteria.subject]
    return out or ["ALL"]


class IMAPInbox(MailboxClient):
    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        ssl: bool = True,
        timeout: float | None = None,
        fetch_batch: int = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.ssl = ssl
        self.timeout = timeout
        self.fetch_batch = max(1, fetch_batch)
        self.client: IMAPClient | None = None

    # ───────── conexión ─────────
    def connect(self) -> "IMAPInbox":
        logger.info("Conectando a %s:%s…", self.host, self.port)
        try:
            self.client = IMAPClient(self.host, port=self.port, ssl=self.ssl, timeout=self.timeout)
        except (IMAPClientError, OSError) as exc:
            raise MailboxConnectionError(f"No se pudo conectar a {self.host}:{self.port}: {exc}") from exc
        logger.info("Conectado")
        try:
            self.client.login(self.user, self.password)
        except LoginError as exc:
            self._shutdown()
            raise MailboxConnectionError(f"Login rechazado para {self.user}: {exc}") from exc
        except (IMAPClientError, OSError) as exc:
            self._shutdown()
            raise MailboxConnectionError(f"Error durante el login en {self.host}: {exc}") from exc
        logger.info("Sesión iniciada como %s", self.user)
        return self

    def __enter__(self) -> "IMAPInbox":
        return self.connect()

    def _shutdown(self) -> None:
        try:
            if self.client:
                self.client.shutdown()
        except Exception:
            logger.exception("Error cerrando el socket IMAP")
        self.client = None

    def logout(self) -> None:
        try:
            if self.client:
                self.client.logout()
        except Exception:
            logger.exception("Error cerrando IMAP")
        finally:
            self.client = None

    def _require(self) -> IMAPClient:
        if self.client is None:
            raise MailboxConnectionError("Cliente IMAP no conectado")
        return self.client

    @contextmanager
    def _session(self, action: str):
        """Cualquier fallo de red o de protocolo a mitad de sesión es un error de conexión."""
        try:
            yield self._require()
        except (IMAPClientError, OSError) as exc:
            raise MailboxConnectionError(f"Fallo IMAP en {action} ({self.host}): {exc}") from exc

    # ───────── buzones ─────────
    def list_mailboxes(self) -> list[MailboxInfo]:
        with self._session("LIST") as client:
            folders = client.list_folders()
        return [
            MailboxInfo(name=_text(name), flags=tuple(_text(f) for f in flags), delimiter=_text(delim or b"/"))
            for flags, delim, name in folders
        ]

    def select_mailbox(self, name: str) -> tuple[str, ...]:
        with self._session(f"SELECT {name}") as client:
            info = client.select_folder(name, readonly=False)
        return tuple(_text(f) for f in info.get(b"FLAGS", ()))

    # ───────── búsqueda / descarga ─────────
    def search(self, criteria: SearchCriteria) -> list[int]:
        query = build_search_criteria(criteria)
        charset = None if all(q.isascii() for q in query) else "UTF-8"
        with self._session("SEARCH") as client:
            return list(client.search(query, charset=charset))

    def fetch_raw(self, ids: Iterable[int]) -> Iterator[RawMessage]:
        """
        Descarga RFC822 por lotes de `fetch_batch` ids y entrega los mensajes de uno en
        uno, en orden. Descargar RFC822 marca el correo como leído (\\Seen).
        """
        ids = sorted(ids)
        for start in range(0, len(ids), self.fetch_batch):
            batch = ids[start:start + self.fetch_batch]
            with self._session("FETCH") as client:
                resp = client.fetch(batch, ["RFC822"])
            for msg_id in batch:
                data = resp.get(msg_id, {}).get(b"RFC822")
                if data is None:
                    logger.warning("El servidor no devolvió el cuerpo del mensaje %s", msg_id)
                    continue
                yield RawMessage(msg_id=msg_id, data=bytes(data))
