import decimal

import pytest
from sqlitesource.dialect import SqliteDialect, affinity
from sqlitesource.schema import Field
from sqlitesource.types import LogicalType, TypeConverter


def test_quote_doubles_embedded_quotes():
    assert SqliteDialect().quote('gallery') == '"gallery"'
    assert SqliteDialect().quote('my"table') == '"my""table"'


class TestValue:

    def test_explicit_type(self):
        assert SqliteDialect().value(5, {'type': 'integer'}) == '5'
        assert SqliteDialect().value('5', {'type': LogicalType.INTEGER}) == '5'

    def test_inferred_type(self):
        dialect = SqliteDialect()
        assert dialect.value(True) == '1'
        assert dialect.value(None) == 'NULL'
        assert dialect.value("it's") == "'it''s'"

    def test_callable_type_resolved_by_name(self):
        types = {'active': 'boolean', 'name': 'string'}
        dialect = SqliteDialect()
        assert dialect.value(1, {'name': 'active', 'type': types.get}) == '1'
        assert dialect.value(1, {'name': 'name', 'type': types.get}) == "'1'"

    def test_resolved_field_supplies_precision(self):
        money = Field('money', 'decimal', length=10, precision=2)
        dialect = SqliteDialect()
        assert dialect.value(decimal.Decimal('10.5'), {'name': 'money', 'type': lambda n: money}) == '10.50'
        assert dialect.value(10.5, {'type': money}) == '10.50'

    def test_precision_in_states(self):
        assert SqliteDialect().value(10.5, {'type': 'decimal', 'precision': 3}) == '10.500'

    def test_uses_injected_converter(self, mocker):
        converter = TypeConverter()
        spy = mocker.spy(converter, 'to_datasource')
        SqliteDialect(converter).value(3, {'type': 'integer'})
        spy.assert_called_once()


class TestMapped:

    @pytest.mark.parametrize(('native', 'expected'), [
        ('integer', LogicalType.INTEGER),
        ('varchar', LogicalType.STRING),
        ('boolean', LogicalType.BOOLEAN),
        ('decimal', LogicalType.DECIMAL),
        ('timestamp', LogicalType.DATETIME),
        ('date', LogicalType.DATE),
        ('real', LogicalType.FLOAT),
    ])
    def test_explicit_map(self, native, expected):
        assert SqliteDialect().mapped(Field('x', use=native)) is expected

    def test_mapping_and_string_inputs(self):
        dialect = SqliteDialect()
        assert dialect.mapped({'use': 'VARCHAR(128)'}) is LogicalType.STRING
        assert dialect.mapped('Double Precision') is LogicalType.FLOAT

    def test_affinity_fallback(self):
        assert SqliteDialect().mapped(Field('x', use='unsigned big int')) is LogicalType.INTEGER
        assert SqliteDialect().mapped(Field('x', use='money')) is LogicalType.DECIMAL

    def test_custom_types(self):
        dialect = SqliteDialect(types={'json': 'string'})
        assert dialect.mapped('json') is LogicalType.STRING


@pytest.mark.parametrize(('native', 'expected'), [
    ('BIGINT', LogicalType.INTEGER),
    ('NVARCHAR', LogicalType.STRING),
    ('CLOB', LogicalType.STRING),
    ('BLOB', LogicalType.DEFAULT),
    ('', LogicalType.DEFAULT),
    ('FLOAT', LogicalType.FLOAT),
    ('NUMERIC', LogicalType.DECIMAL),
])
def test_affinity(native, expected):
    assert affinity(native) is expected
