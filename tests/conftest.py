"""Shared fixtures: an in-memory account store and a recording mailer,
injected into the app through create_app()."""
import copy
import threading
from smtplib import SMTPException

import pytest
from fastapi.testclient import TestClient

from config import Settings
from errors import DuplicateEmail
from main import create_app
from schemas import Account


class InMemoryAccountStore:
    """Dict-backed store with the same contract as MongoAccountStore."""

    def __init__(self):
        self._docs = {}
        self._lock = threading.Lock()
        self.indexes_ensured = False

    def ensure_indexes(self):
        self.indexes_ensured = True

    def ping(self):
        return True

    def _load(self, doc):
        return Account.from_document(copy.deepcopy(doc)) if doc else None

    def find_by_id(self, account_id):
        return self._load(self._docs.get(account_id))

    def find_by_email(self, email):
        return self._load(next((d for d in self._docs.values() if d["email"] == email), None))

    def find_by_active_reset_token(self, token, now):
        for doc in self._docs.values():
            if doc.get("reset_token") == token and doc["reset_token_expiry"] > now:
                return self._load(doc)
        return None

    def create(self, account):
        with self._lock:
            if any(d["email"] == account.email for d in self._docs.values()):
                raise DuplicateEmail()
            self._docs[account.id] = account.to_document()
        return account

    def set_reset_token(self, account_id, token, expiry, now):
        with self._lock:
            doc = self._docs.get(account_id)
            if doc is None:
                return False
            doc.update(reset_token=token, reset_token_expiry=expiry, updated_at=now)
        return True

    def consume_reset_token(self, token, now, password_hash):
        with self._lock:
            for doc in self._docs.values():
                if doc.get("reset_token") == token and doc["reset_token_expiry"] > now:
                    doc.update(password_hash=password_hash, updated_at=now)
                    del doc["reset_token"]
                    del doc["reset_token_expiry"]
                    return self._load(doc)
        return None

    def raw(self, email):
        return next((copy.deepcopy(d) for d in self._docs.values() if d["email"] == email), None)

    def __len__(self):
        return len(self._docs)


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, to, subject, body):
        self.sent.append({"to": to, "subject": subject, "body": body})


class FailingMailer:
    def send(self, to, subject, body):
        raise SMTPException("mail server unavailable")


@pytest.fixture
def settings():
    return Settings(
        jwt_secret="test-secret",
        bcrypt_rounds=4,
        reset_url="https://quiz-campus.test/reset-password.html",
        log_level="DEBUG",
    )


@pytest.fixture
def store():
    return InMemoryAccountStore()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def app(settings, store, mailer):
    return create_app(settings, store=store, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def signup_body(email="a@x.com", password="p1", confirm=None, fullname="A", school="S"):
    return {
        "fullname": fullname,
        "email": email,
        "password": password,
        "confirmPassword": password if confirm is None else confirm,
        "school": school,
    }


def token_from_mail(message):
    return message["body"].split("token=", 1)[1].split()[0]
