# backend/motocare/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/motocare.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///motocare.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Every collection is stored under "<prefix><collectionName>"
    STORAGE_KEY_PREFIX = os.environ.get("MOTOCARE_KEY_PREFIX", "motocare_")

    # Missing collections are filled with the demo workshop data
    SEED_DEMO_DATA = _env_flag("MOTOCARE_SEED_DEMO_DATA", True)

    # Off: finishing a work order leaves stock untouched
    WORK_ORDER_CONSUMES_STOCK = _env_flag("MOTOCARE_WORK_ORDER_CONSUMES_STOCK", False)

    # Cost factor for stored password hashes
    BCRYPT_ROUNDS = int(os.environ.get("MOTOCARE_BCRYPT_ROUNDS", "12"))
