"""Unit tests for collection configuration and field remapping."""
import copy
import pickle

import pytest
from bson import ObjectId
from mongo_adapter.entity import MongoEntity
from mongo_adapter.exceptions import QueryError
from mongo_adapter.query import UNSET
from mongo_adapter.schema import DEFAULT_INPUT, DEFAULT_OUTPUT, DEFAULT_REMAPS
from mongo_adapter.schema import CollectionConfig, make_collection_config
from mongo_adapter.schema import remap_input, remap_output, to_object_id

OID = ObjectId('64b7f0c2a1b2c3d4e5f60718')


class TestCollectionConfig:
    """Test merging caller remaps and converters with the identity defaults."""

    def test_defaults(self):
        config = CollectionConfig(table='users')
        assert dict(config.remaps) == {'id': '_id'}
        assert config.input['id'] is to_object_id
        assert config.output['_id'] is str

    def test_defaults_are_shared_read_only_mappings(self):
        """Test the defaults are the module mappings, not per-instance copies"""
        first, second = CollectionConfig(table='a'), CollectionConfig(table='b')
        assert first.remaps is second.remaps is DEFAULT_REMAPS
        assert first.input is DEFAULT_INPUT
        assert first.output is DEFAULT_OUTPUT
        with pytest.raises(TypeError):
            first.remaps['name'] = 'n'

    def test_merge(self):
        config = make_collection_config(
            'users',
            remaps={'email': 'mail'},
            filters={'input': {'email': str.lower}, 'output': {'mail': str.upper}},
        )
        assert dict(config.remaps) == {'email': 'mail', 'id': '_id'}
        assert config.input['email'] is str.lower
        assert config.input['id'] is to_object_id
        assert config.output['mail'] is str.upper
        assert config.output['_id'] is str

    def test_identity_remap_is_mandatory(self):
        """Test callers cannot remap the identity field elsewhere"""
        config = make_collection_config('users', remaps={'id': 'uuid'})
        assert config.remaps['id'] == '_id'

    def test_caller_converter_overrides_default(self):
        config = make_collection_config('users', filters={'output': {'_id': repr}})
        assert config.output['_id'] is repr

    def test_config_is_read_only(self):
        config = make_collection_config('users', remaps={'email': 'mail'})
        with pytest.raises(TypeError):
            config.remaps['name'] = 'n'

    def test_reverse_remaps(self):
        config = make_collection_config('users', remaps={'email': 'mail'})
        assert config.reverse_remaps == {'_id': 'id', 'mail': 'email'}


class TestToObjectId:

    def test_from_string(self):
        assert to_object_id(str(OID)) == OID

    def test_object_id_unchanged(self):
        assert to_object_id(OID) is OID

    @pytest.mark.parametrize('value', ['not-an-id', 12, ['x']], ids=['string', 'int', 'list'])
    def test_invalid(self, value):
        with pytest.raises(QueryError, match='Invalid identity'):
            to_object_id(value)


class TestRemapInput:
    """Test framework -> store conversion."""

    def test_identity(self):
        config = CollectionConfig(table='users')
        assert remap_input(config, {'id': str(OID), 'name': 'Alice'}) == {'_id': OID, 'name': 'Alice'}

    def test_operator_aware(self):
        """Test converters apply to each operand, including $in lists"""
        config = CollectionConfig(table='users')
        other = ObjectId()
        remapped = remap_input(config, {'id': {'$in': [str(OID), str(other)]}})
        assert remapped == {'_id': {'$in': [OID, other]}}

        remapped = remap_input(config, {'id': {'$diff': str(OID)}})
        assert remapped == {'_id': {'$diff': OID}}

    def test_literal_operands_not_converted(self):
        config = CollectionConfig(table='users')
        assert remap_input(config, {'id': {'$exists': True}}) == {'_id': {'$exists': True}}

    def test_unset_and_none_pass_through(self):
        config = CollectionConfig(table='users')
        assert remap_input(config, {'id': UNSET}) == {'_id': UNSET}
        assert remap_input(config, {'id': None}) == {'_id': None}

    def test_logical_operators(self):
        config = make_collection_config('users', remaps={'email': 'mail'})
        remapped = remap_input(config, {'$or': [{'email': 'a@b.c'}, {'id': str(OID)}]})
        assert remapped == {'$or': [{'mail': 'a@b.c'}, {'_id': OID}]}

    def test_custom_remap_and_converter(self):
        config = make_collection_config('users', remaps={'email': 'mail'},
                                        filters={'input': {'email': str.lower}})
        assert remap_input(config, {'email': 'A@B.C'}) == {'mail': 'a@b.c'}

    @pytest.mark.parametrize('mapping', [None, {}], ids=['none', 'empty'])
    def test_empty(self, mapping):
        assert remap_input(CollectionConfig(table='users'), mapping) == {}


class TestRemapOutput:
    """Test store -> framework conversion."""

    def test_identity(self):
        config = CollectionConfig(table='users')
        entity = remap_output(config, {'_id': OID, 'name': 'Alice'})
        assert isinstance(entity, MongoEntity)
        assert entity == {'id': str(OID), 'name': 'Alice'}
        assert entity.name == 'Alice'

    def test_custom(self):
        config = make_collection_config('users', remaps={'email': 'mail'},
                                        filters={'output': {'mail': str.upper}})
        entity = remap_output(config, {'_id': OID, 'mail': 'a@b.c'})
        assert entity == {'id': str(OID), 'email': 'A@B.C'}

    def test_none_not_converted(self):
        config = make_collection_config('users', filters={'output': {'age': int}})
        assert remap_output(config, {'age': None}) == {'age': None}

    def test_data_source(self):
        config = CollectionConfig(table='users')
        entity = remap_output(config, {'_id': OID}, data_source='mongo')
        assert entity.data_source == 'mongo'
        assert entity == {'id': str(OID)}
        assert remap_output(config, {'_id': OID}).data_source is None


def test_entity_id_hash():
    entity = MongoEntity({'id': 'abc', 'idHash': {'mongo': 'abc'}})
    assert entity.id_hash == {'mongo': 'abc'}
    assert entity.identity_for('mongo') == 'abc'
    assert entity.identity_for('other') is None
    assert MongoEntity({'id': 'abc'}).id_hash == {}


@pytest.mark.parametrize('duplicate', [copy.copy, copy.deepcopy, lambda e: pickle.loads(pickle.dumps(e))],
                         ids=['copy', 'deepcopy', 'pickle'])
def test_entity_copies_keep_data_source(duplicate):
    entity = MongoEntity({'id': 'abc', 'name': 'Alice'}, data_source='mongo')
    copied = duplicate(entity)
    assert isinstance(copied, MongoEntity)
    assert copied == entity
    assert copied.data_source == 'mongo'
    assert '_data_source' not in copied


if __name__ == '__main__':
    __import__('pytest').main([__file__])
