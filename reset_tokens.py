"""
Password reset tokens

An account has at most one live reset token. Requesting a reset overwrites
any earlier token and touches only the token fields; consuming a token
replaces the password hash and clears the token in one conditional write
that matches on the token itself. Expired tokens are never swept, they
just stop matching.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import Settings
from errors import InvalidOrExpiredToken, NotFound
from mailer import RESET_SUBJECT, reset_link, reset_mail_body
from schemas import Account, normalize_email
from security import PasswordHasher

logger = logging.getLogger(__name__)

# 32 random bytes, 64 hex characters.
TOKEN_BYTES = 32


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_reset_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def request_reset(store, mailer, settings: Settings, email: str,
                  now: Optional[datetime] = None) -> Account:
    """Issue a fresh token for the account and mail the reset link.

    The token is saved before the mail goes out. If sending fails the error
    propagates and the saved token stays usable.
    """
    now = now or _now()
    account = store.find_by_email(normalize_email(email))
    if account is None:
        raise NotFound()

    token = generate_reset_token()
    expiry = now + timedelta(seconds=settings.reset_token_ttl)
    if not store.set_reset_token(account.id, token, expiry, now):
        raise NotFound()
    account.set_reset_token(token, expiry)
    account.updated_at = now
    logger.info("Reset token issued for account %s", account.id)

    body = reset_mail_body(account.fullname, reset_link(settings.reset_url, token),
                           settings.reset_token_ttl // 60)
    mailer.send(account.email, RESET_SUBJECT, body)
    return account


def consume_reset(store, hasher: PasswordHasher, token: str, new_password: str,
                  now: Optional[datetime] = None) -> Account:
    now = now or _now()
    # Unknown and expired tokens are rejected without hashing.
    if store.find_by_active_reset_token(token, now) is None:
        raise InvalidOrExpiredToken()

    # The write itself re-checks the token, so only one consumer can win.
    account = store.consume_reset_token(token, now, hasher.hash(new_password))
    if account is None:
        raise InvalidOrExpiredToken()
    logger.info("Password reset for account %s", account.id)
    return account
