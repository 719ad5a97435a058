"""
MongoDB account store

The store is the only code that talks to the database. It is built once by
connect() and passed to the app; there is no module-level connection.
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from config import Settings
from errors import DuplicateEmail
from schemas import Account

logger = logging.getLogger(__name__)

COLLECTION = "account"


def new_account_id() -> str:
    return str(ObjectId())


class MongoAccountStore:
    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self) -> None:
        self.collection.create_index([("email", ASCENDING)], unique=True)
        self.collection.create_index([("reset_token", ASCENDING)], sparse=True)

    def ping(self) -> bool:
        self.collection.database.command("ping")
        return True

    def find_by_id(self, account_id: str) -> Optional[Account]:
        doc = self.collection.find_one({"_id": account_id})
        return Account.from_document(doc) if doc else None

    def find_by_email(self, email: str) -> Optional[Account]:
        doc = self.collection.find_one({"email": email})
        return Account.from_document(doc) if doc else None

    def find_by_active_reset_token(self, token: str, now: datetime) -> Optional[Account]:
        doc = self.collection.find_one({"reset_token": token, "reset_token_expiry": {"$gt": now}})
        return Account.from_document(doc) if doc else None

    def create(self, account: Account) -> Account:
        try:
            self.collection.insert_one(account.to_document())
        except DuplicateKeyError as exc:
            raise DuplicateEmail() from exc
        return account

    def set_reset_token(self, account_id: str, token: str, expiry: datetime, now: datetime) -> bool:
        # Only the token fields change; a concurrent password reset is left intact.
        result = self.collection.update_one(
            {"_id": account_id},
            {"$set": {"reset_token": token, "reset_token_expiry": expiry, "updated_at": now}},
        )
        return result.matched_count == 1

    def consume_reset_token(self, token: str, now: datetime, password_hash: str) -> Optional[Account]:
        """Replace the password and clear the token in one conditional write.

        Returns None when the token is unknown, expired or already consumed.
        """
        doc = self.collection.find_one_and_update(
            {"reset_token": token, "reset_token_expiry": {"$gt": now}},
            {"$set": {"password_hash": password_hash, "updated_at": now},
             "$unset": {"reset_token": "", "reset_token_expiry": ""}},
            return_document=ReturnDocument.AFTER,
        )
        return Account.from_document(doc) if doc else None


def connect(settings: Settings) -> MongoAccountStore:
    client = MongoClient(
        settings.database_url,
        tz_aware=True,
        serverSelectionTimeoutMS=settings.database_timeout_ms,
    )
    logger.info("Using database %s", settings.database_name)
    return MongoAccountStore(client[settings.database_name][COLLECTION])
