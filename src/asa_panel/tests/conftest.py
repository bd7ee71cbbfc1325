"""Pytest configuration and fixtures for service layer tests."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from asa_panel.models import Base
from asa_panel.services.database import create_database_engine


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Provides the database to the test
    4. Drops all tables after the test completes
    """
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Point the global session factory at the test database
    import asa_panel.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(scope="function")
def file_db(tmp_path):
    """Provide a file-backed SQLite database where each session gets its own connection.

    Used by tests that run services from several threads.
    """
    engine = create_database_engine(f"sqlite:///{tmp_path / 'asa_test.db'}")
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    import asa_panel.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: session_factory

    yield session_factory

    engine.dispose()
    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(scope="function")
def pantry(test_db):
    """Rice 10 kg and Beans 4 kg.

    Returns a simple object with the item IDs (not ORM objects, which are
    detached once the creating session closes).
    """
    from asa_panel.services import inventory_service

    rice = inventory_service.create_stock_item(
        {"name": "Arroz", "quantity": 10, "unit": "kg", "category": "food", "min_threshold": 5}
    )
    beans = inventory_service.create_stock_item(
        {"name": "Feijão", "quantity": 4, "unit": "kg", "category": "food", "min_threshold": 5}
    )

    class PantryData:
        def __init__(self, rice_id, beans_id):
            self.rice_id = rice_id
            self.beans_id = beans_id

    return PantryData(rice.id, beans.id)


@pytest.fixture(scope="function")
def basic_basket(pantry):
    """Stored recipe: 2 kg rice and 1 kg beans per basket."""
    from asa_panel.services import basket_config_service

    config = basket_config_service.BasketConfiguration(name="Cesta Básica")
    config.add_line(pantry.rice_id, Decimal("2"))
    config.add_line(pantry.beans_id, Decimal("1"))
    basket_config_service.save_basket_configuration(config)
    return config

