import os
import tempfile

import pytest

# Log files go to a throwaway directory; must be set before beanbase is imported.
_LOG_DIR = tempfile.mkdtemp(prefix="beanbase_test_logs_")
os.environ.setdefault('LOGGING_BASE_DIR', _LOG_DIR)
os.environ.setdefault('LOG_FILE', os.path.join(_LOG_DIR, 'beanbase.log'))
os.environ.setdefault('LOGGING_CONSOLE_ENABLED', 'false')

from beanbase import create_app
from beanbase.extensions import db
from beanbase.facade import BeanBase

from tests.fakes import InMemoryBeanStore


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app('testing', LOGGING_BASE_DIR=_LOG_DIR)

    with app.app_context():
        # Create all tables
        db.create_all()
        yield app
        # Drop all tables
        db.drop_all()


@pytest.fixture(scope='function')
def clean_db(app):
    """Empty every table after the test."""
    yield
    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.remove()


@pytest.fixture(scope='function')
def bb(app, clean_db):
    """BeanBase bound to the SQLAlchemy store of the test application."""
    return app.extensions['beanbase']


@pytest.fixture(scope='function')
def runner(app, clean_db):
    """Create test CLI runner."""
    db.session.remove()
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def fake_store():
    return InMemoryBeanStore()


@pytest.fixture(scope='function')
def fake_bb(fake_store):
    """BeanBase over an in-memory store, no database involved."""
    return BeanBase(fake_store)
