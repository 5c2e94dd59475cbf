# Overview: Loads the AppState snapshot from the store and writes back changed collections.

from __future__ import annotations

import logging
from typing import Callable

from flask import current_app

from ..domain.state import COLLECTIONS, AppState, changed_collections
from ..extensions import db
from ..seed import demo_defaults, empty_defaults
from . import store_service


logger = logging.getLogger(__name__)


def default_factories() -> dict[str, Callable]:
    if current_app.config.get("SEED_DEMO_DATA", True):
        return demo_defaults(current_app.config.get("BCRYPT_ROUNDS", 12))
    return empty_defaults()


def load_state() -> AppState:
    """
    Build the snapshot from stored collections.

    Missing keys use their default factory; a stored value that no longer
    decodes into entities is logged and replaced by the default as well.
    """
    factories = default_factories()
    values = {}
    for collection in COLLECTIONS:
        factory = factories[collection.key]
        raw = store_service.load_value(collection.key, factory)
        try:
            values[collection.attr] = collection.load(raw)
        except (KeyError, TypeError, ValueError, AttributeError):
            logger.error("Stored collection %s is malformed; using default", collection.key)
            values[collection.attr] = collection.load(factory())

    state = AppState(**values)
    branch_ids = state.store_settings.branch_ids()
    if branch_ids and state.current_branch_id not in branch_ids:
        # Selected branch was removed from settings
        values["current_branch_id"] = branch_ids[0]
        state = AppState(**values)
    return state


def save_state(before: AppState, after: AppState) -> list[str]:
    """Write every collection that differs between the two snapshots. Caller commits."""
    written = []
    for collection in changed_collections(before, after):
        store_service.save_value(collection.key, collection.dump(getattr(after, collection.attr)))
        written.append(collection.key)
    return written


def save_all(state: AppState) -> list[str]:
    for collection in COLLECTIONS:
        store_service.save_value(collection.key, collection.dump(getattr(state, collection.attr)))
    return [c.key for c in COLLECTIONS]


def run_command(command: Callable, *args, **kwargs):
    """
    Load, apply a pure command, persist, commit.

    The command receives the current AppState first and returns either a new
    AppState or an object carrying one in `.state` (LedgerResult). Any
    exception rolls the session back and propagates unchanged.
    """
    before = load_state()
    try:
        result = command(before, *args, **kwargs)
        after = result if isinstance(result, AppState) else result.state
        written = save_state(before, after)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    if written:
        logger.debug("Persisted collections: %s", ", ".join(written))
    return result


def initialize(reset: bool = False) -> list[str]:
    """Persist defaults for every collection not stored yet (all of them after reset)."""
    if reset:
        store_service.clear_all()
    factories = default_factories()
    created = []
    for collection in COLLECTIONS:
        if store_service.has_value(collection.key):
            continue
        store_service.save_value(collection.key, factories[collection.key]())
        created.append(collection.key)
    db.session.commit()
    return created
