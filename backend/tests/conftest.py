"""
Pytest fixtures for MotoCare backend tests.

Provides the Flask app on an in-memory database, a test client, a per-test
clean store, and small in-memory shop snapshots for the pure services.
"""

import itertools

import pytest

from motocare import create_app
from motocare.domain.entities import Branch, Part, StoreSettings
from motocare.domain.state import AppState
from motocare.extensions import db


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SEED_DEMO_DATA': True,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def ids():
    """Deterministic id factory: prefix-1, prefix-2, ..."""
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}-{next(counter)}"


def make_part(part_id="P1", name="Lốp xe", sku="LX-0001", stock=None, price=100_000,
              selling_price=150_000, category="Lốp", **kwargs) -> Part:
    return Part(
        id=part_id,
        name=name,
        sku=sku,
        stock=dict(stock or {}),
        price=price,
        selling_price=selling_price,
        category=category,
        **kwargs,
    )


def make_state(*parts, **kwargs) -> AppState:
    """Two-branch shop (main, q2) holding the given parts."""
    settings = StoreSettings(
        name="MotoCare Test",
        branches=(Branch("main", "Chi nhánh Chính"), Branch("q2", "Chi nhánh Quận 2")),
    )
    return AppState(parts=tuple(parts), store_settings=settings, **kwargs)


@pytest.fixture
def empty_shop():
    """Shop with three parts and no stock anywhere."""
    return make_state(
        make_part("P1", "Lốp xe", "LX-0001", price=100_000, selling_price=100_000),
        make_part("P2", "Nhớt máy", "NM-0001", price=200_000, selling_price=300_000, category="Dầu nhớt"),
        make_part("P3", "Bugi", "BG-0001", price=20_000, selling_price=50_000, category=None),
    )
