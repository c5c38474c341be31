"""MongoDB helpers.

Centralizes creation of Mongo clients, access to the reports collection and
the unique compound index that backs insert-if-absent report submission.
"""

from __future__ import annotations

import logging
from typing import Any

import certifi
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from optometry_reports.config import Settings

log = logging.getLogger(__name__)

REPORT_KEY_FIELDS = ("district", "institution", "month", "year")


def get_client(uri: str, tls: bool = False) -> MongoClient[dict[str, Any]]:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect with TLS using the certifi CA bundle (Atlas clusters).

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 10000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 10000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient."""
    return client[db_name]


def get_reports_collection(settings: Settings) -> Collection[dict[str, Any]]:
    """Return the reports collection described by `settings`."""
    client = get_client(settings.mongo_uri, tls=settings.mongo_tls)
    return get_db(client, settings.mongo_db)[settings.reports_collection]


def ensure_report_indexes(collection: Collection[dict[str, Any]]) -> str:
    """Create the unique (district, institution, month, year) index if missing.

    Returns:
        The index name.
    """
    name = collection.create_index(
        [(f, ASCENDING) for f in REPORT_KEY_FIELDS],
        unique=True,
        name="report_period_unique",
    )
    log.info("Ensured index %s on %s", name, collection.name)
    return name
