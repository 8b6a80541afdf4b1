import pytest
from sqlitesource.exceptions import TypeConversionError
from sqlitesource.schema import Field, Schema, normalize_default
from sqlitesource.schema import parse_native_type
from sqlitesource.types import LogicalType


@pytest.mark.parametrize(('native', 'expected'), [
    ('INTEGER', ('INTEGER', None, None)),
    ('VARCHAR(128)', ('VARCHAR', 128, None)),
    ('DECIMAL(10,2)', ('DECIMAL', 10, 2)),
    ('decimal( 10 , 2 )', ('decimal', 10, 2)),
    ('UNSIGNED BIG INT', ('UNSIGNED BIG INT', None, None)),
    ('VARYING  CHARACTER(255)', ('VARYING CHARACTER', 255, None)),
    ('', ('', None, None)),
    ('   ', ('', None, None)),
])
def test_parse_native_type(native, expected):
    assert parse_native_type(native) == expected


@pytest.mark.parametrize('native', ['VARCHAR(', 'VARCHAR(abc', 'DECIMAL(a,b)', '(10)'])
def test_parse_native_type_rejects_garbage(native):
    with pytest.raises(TypeConversionError):
        parse_native_type(native)


class TestNormalizeDefault:

    def test_string_loses_quotes(self):
        assert normalize_default(LogicalType.STRING, "'Johnny Boy'") == 'Johnny Boy'
        assert normalize_default(LogicalType.STRING, "'it''s'") == "it's"
        assert normalize_default(LogicalType.STRING, None) is None

    def test_boolean(self):
        assert normalize_default(LogicalType.BOOLEAN, 'TRUE') is True
        assert normalize_default(LogicalType.BOOLEAN, '1') is True
        assert normalize_default(LogicalType.BOOLEAN, 'FALSE') is False
        assert normalize_default(LogicalType.BOOLEAN, '0') is False
        assert normalize_default(LogicalType.BOOLEAN, None) is None

    def test_current_timestamp(self):
        assert normalize_default(LogicalType.DATETIME, 'CURRENT_TIMESTAMP') is None
        assert normalize_default(LogicalType.DATETIME, "'2020-01-01'") == "'2020-01-01'"

    def test_other_types_unchanged(self):
        assert normalize_default(LogicalType.INTEGER, '5') == '5'


class TestField:

    def test_to_dict_omits_absent_entries(self):
        field = Field('id', LogicalType.INTEGER, use='integer', null=False)
        assert field.to_dict() == {
            'type': 'integer',
            'use': 'integer',
            'null': False,
            'default': None,
            'array': False,
        }

    def test_from_dict_serial_not_null(self):
        field = Field.from_dict('id', {'type': 'serial'})
        assert field.type is LogicalType.SERIAL
        assert field.null is False

    def test_from_dict_keeps_extra(self):
        field = Field.from_dict('created', {'type': 'datetime', 'use': 'timestamp',
                                            'default': {':plain': 'CURRENT_TIMESTAMP'},
                                            'comment': 'creation time'})
        assert field.use == 'timestamp'
        assert field.null is True
        assert field.extra == {'comment': 'creation time'}
        assert field.to_dict()['default'] == {':plain': 'CURRENT_TIMESTAMP'}

    def test_type_resolved_from_name(self):
        assert Field('x', 'Decimal').type is LogicalType.DECIMAL


class TestSchema:

    def test_from_mapping(self):
        schema = Schema(source='gallery', fields={
            'id': {'type': 'serial'},
            'name': {'type': 'string', 'length': 128},
        })
        assert schema.names() == ['id', 'name']
        assert schema.has('name')
        assert 'missing' not in schema
        assert len(schema) == 2
        assert schema.field('name').length == 128

    def test_from_list_of_mappings(self):
        schema = Schema(fields=[{'id': {'type': 'serial'}}, {'name': {'type': 'string'}}])
        assert [f.name for f in schema] == ['id', 'name']

    def test_unknown_field(self):
        schema = Schema(source='gallery')
        with pytest.raises(KeyError):
            schema.field('missing')

    def test_meta_copied(self):
        meta = {'key': 'id'}
        schema = Schema(meta=meta)
        meta['key'] = 'other'
        assert schema.meta == {'key': 'id'}
