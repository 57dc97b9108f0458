# adapters/external/database/mongo_client.py

from __future__ import annotations

from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """
    Return a singleton MongoClient configured from MONGO_URI.

    The client is created lazily and cached at module level so that every
    repository shares the same connection pool.
    """
    global _client
    if _client is None:
        settings = get_settings()
        uri = getattr(settings, "MONGO_URI", None)
        if not uri:
            raise RuntimeError(
                "MONGO_URI is not configured. Please set it so the vault "
                "deployment service can connect to MongoDB."
            )
        _client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    return _client


def get_mongo_db() -> Database:
    """
    Return the Database named by MONGO_DB, cached at module level.
    """
    global _db
    if _db is None:
        settings = get_settings()
        db_name = getattr(settings, "MONGO_DB", None)
        if not db_name:
            raise RuntimeError(
                "MONGO_DB is not configured. Please set it so the vault "
                "deployment service can select a MongoDB database."
            )
        _db = get_mongo_client()[db_name]
    return _db


def ping_mongo() -> bool:
    """
    True when the server answers `ping`; used by the health endpoints.
    """
    get_mongo_client().admin.command("ping")
    return True


def close_mongo() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
