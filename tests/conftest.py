"""
Pytest configuration and shared fixtures for factoryline tests.
"""
import os
import tempfile
from types import SimpleNamespace

import pytest

from factoryline import create_app
from factoryline.extensions import db
from tests.helpers import add_lot, add_recipe_line, make_bottle, make_material, make_product, make_user


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'SECRET_KEY': 'test-secret-key',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


@pytest.fixture
def plant(app):
    """
    One product P1 (0.3 kg of matA per liter), matA held in two lots
    (5 @ 10 on day 1, 5 @ 12 on day 2) and 150 bottles of 250ml at 0.5.
    Returns plain ids and tokens so tests can open their own contexts.
    """
    with app.app_context():
        operator = make_user('operator@example.com')
        admin = make_user('admin@example.com', is_admin=True)
        product = make_product('P1')
        material = make_material('matA')
        add_recipe_line(product, material, '0.3')
        add_lot(material, 5, 10, day=1)
        add_lot(material, 5, 12, day=2)
        bottle = make_bottle('250ml', 250, '0.5', stock=150)

        return SimpleNamespace(
            product_id=product.id,
            material_id=material.id,
            bottle_id=bottle.id,
            operator_id=operator.id,
            admin_id=admin.id,
            operator_token=operator.api_token,
            admin_token=admin.api_token,
        )
