"""
Schema Model
============

The vocabulary of shape descriptors that inference produces and the clone
compiler consumes. A schema is an ordinary Python object:

    None                        the None leaf
    int, str, datetime, ...     leaf types (see LEAF_KINDS)
    dict, set, frozenset        naive keyed collections / sets
    ClonerMap(s), ClonerSet(s)  collections whose values are cloned per ``s``
    ClonerArrayLike(s)          indexable non-sequences, cloned to a list
    ClonerCustomFn(fn)          opaque values copied by ``fn``
    [s] / (s,)                  list / tuple whose every element matches ``s``
    {'field': s, ...}           record holding exactly the declared fields
    ClonerObject(cls, {...})    instance of ``cls`` holding exactly the declared attributes

Example:
    >>> schema = {'x': float, 'y': {'z': str, 'gg': [{'ff': int}]}}
    >>> classify(schema)
    <SchemaKind.RECORD: 14>

Container schemas (records, lists, wrappers) are compared by identity, never
by value: the same record object reached twice is one node, which is what
lets inference express shared and cyclic structures.
"""

import array
import datetime
import decimal
import fractions
import types
from collections.abc import Callable as CallableABC
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Dict, FrozenSet, Iterator, Optional, Set

import numpy as np

from schemaclone.errors import UnsupportedSchemaError


class SchemaKind(Enum):
    """Closed set of schema node kinds, in dispatch order."""
    NULL = auto()
    PRIMITIVE = auto()
    CALLABLE = auto()
    SYMBOL = auto()
    BIG_NUMBER = auto()
    TEMPORAL = auto()
    BUFFER = auto()
    NAIVE_MAP = auto()
    NAIVE_SET = auto()
    MAP = auto()
    SET = auto()
    ARRAY_LIKE = auto()
    SEQUENCE = auto()
    RECORD = auto()
    OBJECT = auto()
    CUSTOM = auto()


# Leaf schemas are type objects. New leaf kinds are added here and nowhere else.
LEAF_KINDS: Dict[type, SchemaKind] = {
    bool: SchemaKind.PRIMITIVE,
    int: SchemaKind.PRIMITIVE,
    float: SchemaKind.PRIMITIVE,
    complex: SchemaKind.PRIMITIVE,
    str: SchemaKind.PRIMITIVE,
    bytes: SchemaKind.PRIMITIVE,
    CallableABC: SchemaKind.CALLABLE,
    types.FunctionType: SchemaKind.CALLABLE,
    types.BuiltinFunctionType: SchemaKind.CALLABLE,
    types.MethodType: SchemaKind.CALLABLE,
    type: SchemaKind.CALLABLE,
    Enum: SchemaKind.SYMBOL,
    decimal.Decimal: SchemaKind.BIG_NUMBER,
    fractions.Fraction: SchemaKind.BIG_NUMBER,
    datetime.datetime: SchemaKind.TEMPORAL,
    datetime.date: SchemaKind.TEMPORAL,
    datetime.time: SchemaKind.TEMPORAL,
    datetime.timedelta: SchemaKind.TEMPORAL,
    bytearray: SchemaKind.BUFFER,
    memoryview: SchemaKind.BUFFER,
    array.array: SchemaKind.BUFFER,
    np.ndarray: SchemaKind.BUFFER,
    dict: SchemaKind.NAIVE_MAP,
    set: SchemaKind.NAIVE_SET,
    frozenset: SchemaKind.NAIVE_SET,
}

# Kinds with nested schemas; only these can be shared or take part in cycles.
CONTAINER_KINDS: FrozenSet[SchemaKind] = frozenset({
    SchemaKind.MAP,
    SchemaKind.SET,
    SchemaKind.ARRAY_LIKE,
    SchemaKind.SEQUENCE,
    SchemaKind.RECORD,
    SchemaKind.OBJECT,
})

# Kinds whose copies are tracked in the per-call memo when cycles are detected.
MEMO_KINDS: FrozenSet[SchemaKind] = CONTAINER_KINDS | {
    SchemaKind.NAIVE_MAP,
    SchemaKind.NAIVE_SET,
    SchemaKind.BUFFER,
}


@dataclass(eq=False)
class ClonerMap:
    """Keyed collection whose values are cloned per ``schema``; keys are kept."""
    schema: Any


@dataclass(eq=False)
class ClonerSet:
    """Set whose elements are cloned per ``schema``."""
    schema: Any


@dataclass(eq=False)
class ClonerArrayLike:
    """
    Indexable, sized, iterable value that is not a list or tuple.

    Used for argument-list-like values (deques, ranges, sequence subclasses).
    The copy is always a plain list.
    """
    schema: Any


@dataclass(eq=False)
class ClonerObject:
    """
    Class instance copied attribute by attribute.

    The copy is created with ``cls.__new__(cls)`` (``__init__`` is not run) and
    receives exactly the attributes named in ``fields``, written straight into
    its ``__dict__``.
    """
    cls: type
    fields: Dict[str, Any]

    def __post_init__(self):
        if not isinstance(self.cls, type):
            raise TypeError(f"ClonerObject expects a class, got {type(self.cls).__name__}")


@dataclass(eq=False)
class ClonerCustomFn:
    """Opaque leaf copied by calling ``fn(value)``; the result is not inspected."""
    fn: Callable[[Any], Any]

    def __post_init__(self):
        if not callable(self.fn):
            raise TypeError(f"ClonerCustomFn expects a callable, got {type(self.fn).__name__}")


_WRAPPER_KINDS: Dict[type, SchemaKind] = {
    ClonerMap: SchemaKind.MAP,
    ClonerSet: SchemaKind.SET,
    ClonerArrayLike: SchemaKind.ARRAY_LIKE,
    ClonerObject: SchemaKind.OBJECT,
    ClonerCustomFn: SchemaKind.CUSTOM,
}


def classify(schema: Any) -> SchemaKind:
    """Map a schema object onto its SchemaKind."""
    if schema is None:
        return SchemaKind.NULL
    if isinstance(schema, type):
        kind = LEAF_KINDS.get(schema)
        if kind is not None:
            return kind
        if issubclass(schema, Enum):
            return SchemaKind.SYMBOL
        raise UnsupportedSchemaError(
            schema, f"type {schema.__qualname__} has no copy policy"
        )
    kind = _WRAPPER_KINDS.get(type(schema))
    if kind is not None:
        return kind
    if isinstance(schema, (list, tuple)):
        return SchemaKind.SEQUENCE
    if isinstance(schema, dict):
        return SchemaKind.RECORD
    raise UnsupportedSchemaError(schema)


def iter_children(schema: Any) -> Iterator[Any]:
    """Yield the nested schemas of a node (none for leaves)."""
    kind = classify(schema)
    if kind in (SchemaKind.MAP, SchemaKind.SET, SchemaKind.ARRAY_LIKE):
        yield schema.schema
    elif kind is SchemaKind.SEQUENCE:
        yield from schema
    elif kind is SchemaKind.RECORD:
        yield from schema.values()
    elif kind is SchemaKind.OBJECT:
        yield from schema.fields.values()


def describe(schema: Any, _path: Optional[Set[int]] = None) -> str:
    """Render a schema as text, printing ``...`` where a node refers back to itself."""
    kind = classify(schema)
    if kind is SchemaKind.NULL:
        return 'None'
    if kind is SchemaKind.CUSTOM:
        name = getattr(schema.fn, '__qualname__', None) or repr(schema.fn)
        return f'ClonerCustomFn({name})'
    if isinstance(schema, type):
        return _type_name(schema)

    path = _path if _path is not None else set()
    if id(schema) in path:
        return '...'
    path.add(id(schema))
    try:
        if kind is SchemaKind.RECORD:
            fields = ', '.join(
                f'{name!r}: {describe(child, path)}' for name, child in schema.items()
            )
            return '{' + fields + '}'
        if kind is SchemaKind.OBJECT:
            fields = ', '.join(
                f'{name!r}: {describe(child, path)}' for name, child in schema.fields.items()
            )
            return f'ClonerObject({_type_name(schema.cls)}, {{{fields}}})'
        if kind is SchemaKind.SEQUENCE:
            items = ', '.join(describe(child, path) for child in schema)
            if isinstance(schema, tuple):
                return f'({items},)' if len(schema) == 1 else f'({items})'
            return f'[{items}]'
        return f'{type(schema).__name__}({describe(schema.schema, path)})'
    finally:
        path.discard(id(schema))


def _type_name(t: type) -> str:
    if t.__module__ == 'builtins':
        return t.__qualname__
    return f'{t.__module__}.{t.__qualname__}'
