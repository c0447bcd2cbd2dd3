"""Tests for descriptors.py - typed query descriptors."""

import dataclasses

import pytest

from querydispatch import InvalidDescriptorError, QueryType
from querydispatch.query import (
    DESCRIPTOR_TYPES,
    CountDescriptor,
    FindAndUpdateDescriptor,
    FindDescriptor,
    GeoNearDescriptor,
    GroupDescriptor,
    InsertDescriptor,
    MapReduceDescriptor,
    coerce_query_type,
    descriptor_from_mapping,
)


def test_every_query_type_has_a_descriptor():
    assert set(DESCRIPTOR_TYPES) == set(QueryType)
    for query_type, cls in DESCRIPTOR_TYPES.items():
        assert cls.type is query_type


def test_find_to_dict_omits_unset_options():
    assert FindDescriptor({"a": 1}, limit=10, eager_cursor=True).to_dict() == {
        "type": QueryType.FIND,
        "query": {"a": 1},
        "limit": 10,
        "eager_cursor": True,
    }


def test_find_and_update_requires_query_and_new_obj():
    with pytest.raises(TypeError):
        FindAndUpdateDescriptor({"_id": 1})

    descriptor = FindAndUpdateDescriptor({"_id": 1}, {"$set": {"x": 2}}, new=True)
    assert descriptor.to_dict() == {
        "type": QueryType.FIND_AND_UPDATE,
        "query": {"_id": 1},
        "new_obj": {"$set": {"x": 2}},
        "new": True,
    }


def test_descriptors_are_frozen():
    descriptor = InsertDescriptor({"name": "x"})
    with pytest.raises(dataclasses.FrozenInstanceError):
        descriptor.new_obj = {}


def test_group_folds_command_fields_into_sub_document():
    descriptor = GroupDescriptor(["a"], {"n": 0}, "function(o, p) { p.n++; }", query={"b": 1})
    assert descriptor.to_dict() == {
        "type": QueryType.GROUP,
        "query": {"b": 1},
        "group": {
            "keys": ["a"],
            "initial": {"n": 0},
            "reduce": "function(o, p) { p.n++; }",
            "options": {},
        },
    }


def test_map_reduce_defaults_to_inline_output():
    data = MapReduceDescriptor("emit(this.a, 1)", "return Array.sum(v)", limit=5).to_dict()
    assert data["map_reduce"]["out"] == {"inline": 1}
    assert data["limit"] == 5
    assert data["query"] == {}


def test_geo_near_sub_document():
    data = GeoNearDescriptor([1.0, 2.0], options={"spherical": True}, limit=3).to_dict()
    assert data["geo_near"] == {"near": [1.0, 2.0], "options": {"spherical": True}}
    assert data["limit"] == 3


def test_from_mapping_parses_nested_fields():
    mapping = {
        "type": 7,
        "query": {},
        "group": {"keys": {"a": 1}, "initial": {}, "reduce": "r", "options": {"finalize": "f"}},
        "read_preference": "secondary",
    }
    descriptor = descriptor_from_mapping(mapping)

    assert isinstance(descriptor, GroupDescriptor)
    assert descriptor.keys == {"a": 1}
    assert descriptor.options == {"finalize": "f"}
    assert descriptor.read_preference == "secondary"
    assert descriptor.to_dict() == dict(mapping, type=QueryType.GROUP)


def test_from_mapping_ignores_unknown_keys():
    descriptor = descriptor_from_mapping({"type": 11, "query": {"a": 1}, "limit": 5})
    assert descriptor == CountDescriptor({"a": 1})


def test_from_mapping_reports_missing_required_fields():
    with pytest.raises(KeyError, match="new_obj"):
        descriptor_from_mapping({"type": QueryType.INSERT})


def test_from_mapping_rejects_unknown_type():
    with pytest.raises(InvalidDescriptorError):
        descriptor_from_mapping({"type": 42})


@pytest.mark.parametrize("value", [1, QueryType.FIND])
def test_coerce_query_type(value):
    assert coerce_query_type(value) is QueryType.FIND


@pytest.mark.parametrize("value", [False, True, 1.0, 1.5, "1", None, [1], 0, 12])
def test_coerce_query_type_rejects(value):
    with pytest.raises(InvalidDescriptorError):
        coerce_query_type(value)
