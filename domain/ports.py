# domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Iterable, Iterator

from domain.models import MailboxInfo, RawMessage, SearchCriteria


class MailboxClient(ABC):
    """
    Capacidad mínima que el pipeline necesita de un buzón.
    La implementación real es IMAPInbox; los tests usan un doble con respuestas guionizadas.
    """

    @abstractmethod
    def list_mailboxes(self) -> list[MailboxInfo]: ...

    @abstractmethod
    def select_mailbox(self, name: str) -> tuple[str, ...]:
        """Selecciona el buzón y devuelve sus flags."""

    @abstractmethod
    def search(self, criteria: SearchCriteria) -> list[int]: ...

    @abstractmethod
    def fetch_raw(self, ids: Iterable[int]) -> Iterator[RawMessage]:
        """Devuelve los mensajes completos (RFC822) uno a uno, en orden de id."""

    @abstractmethod
    def logout(self) -> None: ...

    def __enter__(self) -> "MailboxClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.logout()
