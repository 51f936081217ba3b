from __future__ import annotations

import threading
from typing import Any, Dict, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from qr_portal.config import Config
from qr_portal.schema import AUDIT_LOGS, QRCODES, USERS, get_index_specs
from qr_portal.util import log


DEFAULT_DB_NAME = "qr-code-app"


def _debug(msg: str) -> None:
    log.debug("db", msg)


class DatabaseConfigError(RuntimeError):
    """MONGODB_URI is missing; raised on first use, not at import."""


# One client per URI for the life of the process (pymongo pools internally).
_clients: Dict[str, MongoClient] = {}
_clients_lock = threading.Lock()


def get_client(cfg: Config) -> MongoClient:
    uri = (cfg.MONGODB_URI or "").strip()
    if not uri:
        raise DatabaseConfigError("MONGODB_URI is not defined in environment variables")

    with _clients_lock:
        client = _clients.get(uri)
        if client is None:
            client = MongoClient(
                uri,
                maxPoolSize=int(cfg.MONGODB_MAX_POOL_SIZE),
                serverSelectionTimeoutMS=int(cfg.MONGODB_SERVER_SELECTION_TIMEOUT_MS),
                socketTimeoutMS=int(cfg.MONGODB_SOCKET_TIMEOUT_MS),
            )
            _clients[uri] = client
            _debug(f"MongoClient created for {uri}")
        return client


def close_clients() -> None:
    with _clients_lock:
        for client in _clients.values():
            client.close()
        _clients.clear()


def get_database(cfg: Config, client: Optional[Any] = None) -> Database:
    """Resolve the application database.

    `client` overrides the cached MongoClient (tests pass a mongomock client).
    Database name: MONGODB_DB, else the one in the URI, else DEFAULT_DB_NAME.
    """
    if client is None:
        client = get_client(cfg)
    name = (cfg.MONGODB_DB or "").strip()
    if name:
        return client[name]
    return client.get_default_database(DEFAULT_DB_NAME)


def users(db: Database) -> Collection:
    return db[USERS]


def qrcodes(db: Database) -> Collection:
    return db[QRCODES]


def audit_logs(db: Database) -> Collection:
    return db[AUDIT_LOGS]


def init_db(db: Database) -> None:
    """Create all indexes."""
    _debug(f"Initializing indexes on {db.name}")
    for collection, specs in get_index_specs().items():
        for keys, options in specs:
            db[collection].create_index(keys, **options)
