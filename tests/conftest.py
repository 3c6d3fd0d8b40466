import io
import sys
import threading
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from logmail.options import SMTPConnectionInfo


class RecordingSender:
    """ Substitui o transporte SMTP registrando cada envio """
    def __init__(self, error: Exception | None = None, gate: threading.Event | None = None):
        self.calls = []
        self.error = error
        self.gate = gate
        self.started = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, ctx, from_addr, to_addrs, subject, body):
        self.started.set()
        if self.gate is not None:
            self.gate.wait(5)
        with self._lock:
            self.calls.append({"ctx": ctx, "from": from_addr, "to": list(to_addrs), "subject": subject, "body": body})
        if self.error is not None:
            raise self.error

    @property
    def subjects(self):
        with self._lock:
            return [c["subject"] for c in self.calls]


class DummySMTP:
    """ Fake do ``aiosmtplib.SMTP`` que guarda as mensagens enviadas """
    instances = []

    def __init__(self, *a, **k):
        self.kwargs = k
        self.sent = []
        self.logged_in = None
        self.quit_called = False
        self.closed = False
        self.connect_error = None
        self.send_delay = 0.0
        self.quit_delay = 0.0
        DummySMTP.instances.append(self)

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error

    async def login(self, u, p):
        self.logged_in = (u, p)

    async def send_message(self, msg):
        if self.send_delay:
            import asyncio
            await asyncio.sleep(self.send_delay)
        self.sent.append(msg)

    async def quit(self):
        self.quit_called = True
        if self.quit_delay:
            import asyncio
            await asyncio.sleep(self.quit_delay)

    def close(self):
        self.closed = True


@pytest.fixture()
def stream():
    return io.StringIO()


@pytest.fixture()
def sender():
    return RecordingSender()


@pytest.fixture()
def dummy_smtp(monkeypatch):
    DummySMTP.instances = []
    monkeypatch.setattr("logmail.mailer.aiosmtplib.SMTP", DummySMTP)
    return DummySMTP


@pytest.fixture()
def connection_info():
    return SMTPConnectionInfo(host="smtp.example.com", port=587, username="bot", password="secret")


@pytest.fixture()
def make_sender():
    """ Fábrica para senders com erro ou bloqueio configurados """
    return RecordingSender
