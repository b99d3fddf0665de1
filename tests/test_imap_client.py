import socket

import pytest
from imapclient.exceptions import IMAPClientError, LoginError

import infrastructure.email.imap_client as imap_module
import main
from config.settings import Settings
from domain.errors import MailboxConnectionError
from domain.models import SearchCriteria
from infrastructure.email.imap_client import IMAPInbox, build_search_criteria
from interface_adapters.controllers.fetch_controller import FetchController


class FakeIMAPClient:
    instances = []

    def __init__(self, host, port=None, ssl=True, timeout=None, fail_login=False):
        self.host = host
        self.port = port
        self.ssl = ssl
        self.timeout = timeout
        self.fail_login = fail_login
        self.fetched = []
        self.searched = []
        self.logged_out = False
        self.store = {
            1: b"Subject: uno\n\nhola",
            2: b"Subject: dos\n\nhola",
            3: b"Subject: tres\n\nhola",
        }
        FakeIMAPClient.instances.append(self)

    def login(self, user, password):
        if self.fail_login:
            raise LoginError("AUTHENTICATIONFAILED")

    def logout(self):
        self.logged_out = True

    def shutdown(self):
        pass

    def list_folders(self):
        return [((b"\\HasNoChildren",), b"/", "INBOX"), ((b"\\HasNoChildren",), b"/", "Reports")]

    def select_folder(self, name, readonly=False):
        return {b"FLAGS": (b"\\Seen", b"\\Flagged"), b"EXISTS": 3}

    def search(self, criteria, charset=None):
        self.searched.append((criteria, charset))
        return [3, 1]

    def fetch(self, ids, items):
        self.fetched.append(list(ids))
        return {i: {b"RFC822": self.store[i], b"SEQ": i} for i in ids if i in self.store}


@pytest.fixture
def fake_imap(monkeypatch):
    FakeIMAPClient.instances = []
    monkeypatch.setattr(imap_module, "IMAPClient", FakeIMAPClient)
    return FakeIMAPClient


def _inbox(**kw):
    return IMAPInbox("imap.example.com", 993, "user", "secret", **kw)


def test_search_criteria_uses_unseen_and_exact_headers():
    criteria = SearchCriteria(sender="reports@bank.example", subject="Export")
    assert build_search_criteria(criteria) == [
        "UNSEEN", "HEADER", "From", "reports@bank.example", "HEADER", "Subject", "Export",
    ]
    assert build_search_criteria(SearchCriteria(unseen=False)) == ["ALL"]


def test_context_manager_logs_in_and_out(fake_imap):
    with _inbox(timeout=30) as inbox:
        assert inbox.client is not None
    client = fake_imap.instances[0]
    assert client.timeout == 30
    assert client.logged_out
    assert inbox.client is None


def test_login_failure_becomes_connection_error(fake_imap, monkeypatch):
    monkeypatch.setattr(
        imap_module, "IMAPClient",
        lambda host, **kw: FakeIMAPClient(host, fail_login=True, **kw),
    )
    with pytest.raises(MailboxConnectionError):
        _inbox().connect()


def test_unreachable_server_becomes_connection_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(imap_module, "IMAPClient", refuse)
    with pytest.raises(MailboxConnectionError):
        _inbox().connect()


def test_list_select_and_search(fake_imap):
    with _inbox() as inbox:
        assert [m.name for m in inbox.list_mailboxes()] == ["INBOX", "Reports"]
        assert inbox.select_mailbox("INBOX") == ("\\Seen", "\\Flagged")
        assert inbox.search(SearchCriteria(sender="a@b.c", subject="Informe")) == [3, 1]
        assert inbox.search(SearchCriteria(sender="a@b.c", subject="Отчёт")) == [3, 1]
    searched = fake_imap.instances[0].searched
    assert searched[0][1] is None
    assert searched[1][1] == "UTF-8"


def test_fetch_raw_streams_in_batches_and_id_order(fake_imap):
    with _inbox(fetch_batch=2) as inbox:
        msgs = list(inbox.fetch_raw([3, 1, 2, 99]))
    assert [m.msg_id for m in msgs] == [1, 2, 3]
    assert msgs[0].data.startswith(b"Subject: uno")
    assert fake_imap.instances[0].fetched == [[1, 2], [3, 99]]


def test_operations_require_a_connection():
    with pytest.raises(MailboxConnectionError):
        _inbox().list_mailboxes()


def test_timeout_during_fetch_becomes_connection_error(fake_imap, monkeypatch):
    def stalled(self, ids, items):
        raise socket.timeout("timed out")

    monkeypatch.setattr(FakeIMAPClient, "fetch", stalled)
    with _inbox() as inbox:
        with pytest.raises(MailboxConnectionError) as exc_info:
            list(inbox.fetch_raw([1, 2]))
    assert isinstance(exc_info.value.__cause__, socket.timeout)


@pytest.mark.parametrize("method, call", [
    ("list_folders", lambda inbox: inbox.list_mailboxes()),
    ("select_folder", lambda inbox: inbox.select_mailbox("INBOX")),
    ("search", lambda inbox: inbox.search(SearchCriteria(sender="a@b.c"))),
])
def test_mid_session_failures_become_connection_errors(fake_imap, monkeypatch, method, call):
    def broken(self, *args, **kwargs):
        raise ConnectionResetError("reset by peer")

    monkeypatch.setattr(FakeIMAPClient, method, broken)
    with _inbox() as inbox:
        with pytest.raises(MailboxConnectionError):
            call(inbox)


def test_server_error_reply_becomes_connection_error(fake_imap, monkeypatch):
    def rejected(self, name, readonly=False):
        raise IMAPClientError("select failed: NO [NONEXISTENT]")

    monkeypatch.setattr(FakeIMAPClient, "select_folder", rejected)
    with _inbox() as inbox:
        with pytest.raises(MailboxConnectionError):
            inbox.select_mailbox("Nope")


def test_timeout_mid_run_exits_with_connection_code(fake_imap, monkeypatch, tmp_path):
    def stalled(self, ids, items):
        raise socket.timeout("timed out")

    monkeypatch.setattr(FakeIMAPClient, "fetch", stalled)
    settings = Settings(
        IMAP_HOST="imap.example.com",
        IMAP_USERNAME="ops",
        IMAP_PASSWORD="secret",
        MAIL_FROM_FILTER="reports@bank.example",
        MAIL_SUBJECT_FILTER="Transactions export",
        ATTACH_DIR=str(tmp_path / "data"),
        LOG_DIR="",
    )

    assert main.run(FetchController(settings)) == main.EXIT_CONNECTION
    assert fake_imap.instances[0].logged_out
