# Overview: Key-value snapshot store; one JSON document per collection.

"""
Store invariants (authoritative)

- Keys are "<STORAGE_KEY_PREFIX><collection>"; the prefix comes from app config.
- A missing key yields the caller's default factory result (nothing is written).
- A value that fails to decode is logged and also yields the default.
- Writes are full replacements (last write wins); callers own the commit.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable

from flask import current_app

from ..extensions import db
from ..models import KeyValueEntry


logger = logging.getLogger(__name__)


def storage_key(name: str) -> str:
    return f"{current_app.config.get('STORAGE_KEY_PREFIX', 'motocare_')}{name}"


def load_value(name: str, default_factory: Callable[[], Any]) -> Any:
    key = storage_key(name)
    entry = db.session.get(KeyValueEntry, key)
    if entry is None:
        return default_factory()
    try:
        return json.loads(entry.value)
    except (TypeError, ValueError):
        logger.error("Error reading stored key %s; falling back to default", key)
        return default_factory()


def has_value(name: str) -> bool:
    return db.session.get(KeyValueEntry, storage_key(name)) is not None


def save_value(name: str, value: Any) -> KeyValueEntry:
    key = storage_key(name)
    payload = json.dumps(value, ensure_ascii=False)
    entry = db.session.get(KeyValueEntry, key)
    if entry is None:
        entry = KeyValueEntry(key=key, value=payload)
        db.session.add(entry)
    else:
        entry.value = payload
    db.session.flush()
    return entry


def list_entries() -> list[KeyValueEntry]:
    """Entries under this app's prefix, ordered by key."""
    prefix = current_app.config.get("STORAGE_KEY_PREFIX", "motocare_")
    return (
        db.session.query(KeyValueEntry)
        .filter(KeyValueEntry.key.like(f"{prefix}%"))
        .order_by(KeyValueEntry.key)
        .all()
    )


def clear_all() -> int:
    entries = list_entries()
    for entry in entries:
        db.session.delete(entry)
    db.session.flush()
    return len(entries)
