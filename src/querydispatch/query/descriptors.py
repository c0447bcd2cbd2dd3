"""
Typed query descriptors.

The query builder hands ``Query`` a plain mapping. These dataclasses are the
typed form of that mapping: one variant per query kind, each carrying its
required fields positionally and its optional fields defaulting to None.

    FindDescriptor({"status": "active"}, limit=10).to_dict()
    -> {"type": QueryType.FIND, "query": {"status": "active"}, "limit": 10}

Nested command parameters (group, map_reduce, geo_near) are flattened into
dataclass fields and folded back into their sub-document by ``to_dict()``:

    GroupDescriptor(keys, initial, reduce, options={...}).to_dict()
    -> {"type": QueryType.GROUP, "query": {}, "group": {"keys": ..., "initial": ...,
        "reduce": ..., "options": {...}}}
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Type

from querydispatch.constants import QueryType
from querydispatch.exceptions import InvalidDescriptorError
from querydispatch.protocols import Document


class BaseDescriptor:
    """Shared conversion between dataclass variants and descriptor mappings."""

    type: ClassVar[QueryType]
    # Sub-document name -> {dataclass field: key inside the sub-document}
    nested: ClassVar[Dict[str, Dict[str, str]]] = {}

    def to_dict(self) -> Dict[str, Any]:
        nested_fields = {
            name: sub_key
            for sub_doc in self.nested.values()
            for name, sub_key in sub_doc.items()
        }
        result: Dict[str, Any] = {"type": self.type}
        for sub_doc_name, sub_doc in self.nested.items():
            result[sub_doc_name] = {
                sub_key: getattr(self, name)
                for name, sub_key in sub_doc.items()
                if getattr(self, name) is not None
            }
        for f in fields(self):
            if f.name in nested_fields:
                continue
            value = getattr(self, f.name)
            if value is not None:
                result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BaseDescriptor":
        """Build the variant from a descriptor mapping; unknown keys are ignored."""
        values: Dict[str, Any] = {}
        for sub_doc_name, sub_doc in cls.nested.items():
            source = data[sub_doc_name] if sub_doc_name in data else {}
            for name, sub_key in sub_doc.items():
                if sub_key in source:
                    values[name] = source[sub_key]
        for f in fields(cls):
            if f.name in data and f.name not in values:
                values[f.name] = data[f.name]

        missing = [
            f.name
            for f in fields(cls)
            if f.name not in values and f.default is MISSING and f.default_factory is MISSING
        ]
        if missing:
            raise KeyError(f"{cls.__name__} requires {', '.join(missing)}")
        return cls(**values)


@dataclass(frozen=True)
class FindDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.FIND

    query: Document = field(default_factory=dict)
    select: Optional[Document] = None
    sort: Optional[Any] = None
    limit: Optional[int] = None
    skip: Optional[int] = None
    hint: Optional[Any] = None
    immortal: Optional[bool] = None
    slave_okay: Optional[bool] = None
    snapshot: Optional[bool] = None
    eager_cursor: Optional[bool] = None
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class FindAndUpdateDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.FIND_AND_UPDATE

    query: Document
    new_obj: Document
    new: Optional[bool] = None
    select: Optional[Document] = None
    sort: Optional[Any] = None
    upsert: Optional[bool] = None


@dataclass(frozen=True)
class FindAndRemoveDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.FIND_AND_REMOVE

    query: Document
    select: Optional[Document] = None
    sort: Optional[Any] = None


@dataclass(frozen=True)
class InsertDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.INSERT

    new_obj: Document


@dataclass(frozen=True)
class UpdateDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.UPDATE

    query: Document
    new_obj: Document
    multiple: Optional[bool] = None
    upsert: Optional[bool] = None


@dataclass(frozen=True)
class RemoveDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.REMOVE

    query: Document


@dataclass(frozen=True)
class GroupDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.GROUP
    nested: ClassVar[Dict[str, Dict[str, str]]] = {
        "group": {"keys": "keys", "initial": "initial", "reduce": "reduce", "options": "options"}
    }

    keys: Any
    initial: Document
    reduce: str
    query: Document = field(default_factory=dict)
    options: Document = field(default_factory=dict)
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class MapReduceDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.MAP_REDUCE
    nested: ClassVar[Dict[str, Dict[str, str]]] = {
        "map_reduce": {"map": "map", "reduce": "reduce", "out": "out", "options": "options"}
    }

    map: str
    reduce: str
    out: Any = field(default_factory=lambda: {"inline": 1})
    query: Document = field(default_factory=dict)
    options: Document = field(default_factory=dict)
    limit: Optional[int] = None
    skip: Optional[int] = None
    sort: Optional[Any] = None
    hint: Optional[Any] = None
    immortal: Optional[bool] = None
    slave_okay: Optional[bool] = None
    snapshot: Optional[bool] = None
    eager_cursor: Optional[bool] = None
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class DistinctDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.DISTINCT

    distinct: str
    query: Document = field(default_factory=dict)
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class GeoNearDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.GEO_NEAR
    nested: ClassVar[Dict[str, Dict[str, str]]] = {
        "geo_near": {"near": "near", "options": "options"}
    }

    near: Any
    query: Document = field(default_factory=dict)
    options: Document = field(default_factory=dict)
    limit: Optional[int] = None
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


@dataclass(frozen=True)
class CountDescriptor(BaseDescriptor):
    type: ClassVar[QueryType] = QueryType.COUNT

    query: Document = field(default_factory=dict)
    read_preference: Optional[str] = None
    read_preference_tags: Optional[List[Dict[str, Any]]] = None


DESCRIPTOR_TYPES: Dict[QueryType, Type[BaseDescriptor]] = {
    cls.type: cls
    for cls in (
        FindDescriptor,
        FindAndUpdateDescriptor,
        FindAndRemoveDescriptor,
        InsertDescriptor,
        UpdateDescriptor,
        RemoveDescriptor,
        GroupDescriptor,
        MapReduceDescriptor,
        DistinctDescriptor,
        GeoNearDescriptor,
        CountDescriptor,
    )
}


def coerce_query_type(value: Any) -> QueryType:
    """Return ``value`` as a QueryType, or raise InvalidDescriptorError."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDescriptorError(value)
    try:
        return QueryType(value)
    except ValueError:
        raise InvalidDescriptorError(value) from None


def descriptor_from_mapping(data: Mapping[str, Any]) -> BaseDescriptor:
    """
    Parse a descriptor mapping into its typed variant.

    Raises:
        InvalidDescriptorError: ``type`` is missing or unknown
        KeyError: a field required by the variant is missing
    """
    query_type = coerce_query_type(data.get("type"))
    return DESCRIPTOR_TYPES[query_type].from_dict(data)
