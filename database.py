"""
MongoDB connection lifecycle.

One MongoDatabase is created at startup, connected once, handed to request
handlers through the get_db dependency, and closed at shutdown.
"""
from typing import Optional

from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from fields import PRODUCT_FIELDS, USER_FIELDS
from logger import get_logger

logger = get_logger("database")

USERS = "users"
PRODUCTS = "products"


def ensure_indexes(db: Database) -> None:
    # Mobile is the login key; the unique index is what stops two concurrent
    # signups with the same number from both landing.
    db[USERS].create_index([(USER_FIELDS["mobile"], ASCENDING)], unique=True, name="uniq_mobile")
    db[PRODUCTS].create_index([(PRODUCT_FIELDS["createdBy"], ASCENDING)], name="by_owner")
    db[PRODUCTS].create_index([(PRODUCT_FIELDS["category"], ASCENDING)], name="by_category")


class MongoDatabase:
    def __init__(self, url: str, name: str):
        self.url = url
        self.name = name
        self.client: Optional[MongoClient] = None
        self.db: Optional[Database] = None

    def connect(self) -> Database:
        if self.db is not None:
            return self.db
        self.client = MongoClient(self.url)
        self.db = self.client[self.name]
        ensure_indexes(self.db)
        logger.info(f"Connected to database '{self.name}'")
        return self.db

    def ping(self) -> bool:
        if self.client is None:
            return False
        self.client.admin.command("ping")
        return True

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            logger.info("Database connection closed")
        self.client = None
        self.db = None


def get_db(request: Request) -> Database:
    """Dependency that provides the connected database handle."""
    return request.app.state.mongo.db
