import pytest
import sqlitesource as db
from sqlitesource.exceptions import ConfigurationError
from sqlitesource.options import SqliteOptions, iterdict_data_loader


def test_init_defaults():
    """Test default initialization"""
    options = SqliteOptions(database='gallery.db')

    assert options.drivername == 'sqlite'
    assert options.mode == 'rwc'
    assert options.timeout == 0
    assert options.alias is True
    assert options.client is None
    assert options.dialect is None
    assert options.data_loader == iterdict_data_loader


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        SqliteOptions(drivername='invalid', database='gallery.db')

    with pytest.raises(ConfigurationError):
        SqliteOptions(database='gallery.db', mode='append')

    with pytest.raises(ConfigurationError, match='token'):
        SqliteOptions(drivername='d1', database='https://example.invalid/query')


def test_registered_drivers():
    assert set(db.get_available_drivers()) >= {'sqlite', 'd1'}


def test_database_may_be_absent():
    """Missing database is reported by connect, not by the options"""
    options = SqliteOptions()
    assert options.database is None
