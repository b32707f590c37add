"""
Schema Inference Engine
=======================

Derives a clone schema from one example value.

The engine performs a single recursive descent over the value, dispatching on
its runtime type in a fixed order:

    None -> Enum members -> primitives -> big numbers -> date/time values
    -> binary buffers -> records -> other mappings -> sets -> lists/tuples
    -> other indexable values -> callables -> class instances

Policies worth knowing about:
  - Mappings that are not records, and sets, map to their naive schema
    (``dict``, ``set``, ``frozenset``); their contents are not inspected.
  - Sequences are described by their *first* element only. A warning is
    logged when later elements exist, since their shapes are assumed equal.
  - Records only keep owned fields unless ``include_inherited_fields`` is set
    (for a ``ChainMap``, owned fields are the keys of ``maps[0]``; for a class
    instance, the keys of ``vars(value)``, while class-level data attributes
    count as inherited).
  - Shared and self-referential values are deduplicated through an identity
    memo filled *before* recursing, so a cycle in the value becomes a cycle
    in the schema instead of an infinite descent.
"""

import array
import datetime
import decimal
import fractions
import logging
import types
from collections import ChainMap
from collections.abc import Callable as CallableABC
from collections.abc import Mapping
from collections.abc import Set as AbstractSet
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple

import numpy as np

from schemaclone.errors import UnsupportedTypeError
from schemaclone.schema.model import ClonerArrayLike, ClonerObject

logger = logging.getLogger(__name__)


# Checked in order: bool before int, datetime before date.
PRIMITIVE_TYPES: Tuple[type, ...] = (bool, int, float, complex, str, bytes)
BIG_NUMBER_TYPES: Tuple[type, ...] = (decimal.Decimal, fractions.Fraction)
TEMPORAL_TYPES: Tuple[type, ...] = (
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)
BUFFER_TYPES: Tuple[type, ...] = (np.ndarray, bytearray, memoryview, array.array)


@dataclass
class InferenceOptions:
    """Options for schema inference."""
    include_inherited_fields: bool = False


class SchemaInferrer:
    """
    Walks an example value and builds the schema describing its shape.

    Usage:
        >>> inferrer = SchemaInferrer()
        >>> inferrer.infer({'a': 1, 'b': [{'c': 'x'}]})
        {'a': <class 'int'>, 'b': [{'c': <class 'str'>}]}
    """

    def __init__(self, include_inherited_fields: bool = False, options: InferenceOptions = None):
        self.options = options or InferenceOptions(
            include_inherited_fields=include_inherited_fields,
        )
        self.stats = {
            'values_visited': 0,
            'shared_references': 0,
            'warnings': 0,
        }

    def infer(self, value: Any) -> Any:
        """Infer the schema of ``value``."""
        # id(value) -> (value, schema); holding the value keeps its id valid
        memo: Dict[int, Tuple[Any, Any]] = {}
        return self._infer(value, memo)

    def _infer(self, value: Any, memo: Dict[int, Tuple[Any, Any]]) -> Any:
        entry = memo.get(id(value))
        if entry is not None:
            self.stats['shared_references'] += 1
            return entry[1]
        self.stats['values_visited'] += 1

        if value is None:
            return None
        if isinstance(value, Enum):
            return Enum
        for leaf_types in (PRIMITIVE_TYPES, BIG_NUMBER_TYPES, TEMPORAL_TYPES, BUFFER_TYPES):
            for t in leaf_types:
                if isinstance(value, t):
                    return t

        if isinstance(value, Mapping):
            if self._is_record(value):
                return self._infer_record(value, memo)
            return dict
        if isinstance(value, AbstractSet):
            return frozenset if isinstance(value, frozenset) else set

        if isinstance(value, type):
            # classes are leaves even when their metaclass makes them iterable
            return CallableABC
        if type(value) is list:
            return self._infer_list(value, memo)
        if type(value) is tuple:
            return self._infer_tuple(value, memo)
        if self._is_array_like(value):
            return self._infer_array_like(value, memo)

        if callable(value):
            return CallableABC
        if hasattr(value, '__dict__') and not isinstance(value, types.ModuleType):
            return self._infer_object(value, memo)

        raise UnsupportedTypeError(value)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @staticmethod
    def _is_record(value: Mapping) -> bool:
        if type(value) is not dict and not isinstance(value, ChainMap):
            return False
        return all(isinstance(key, str) for key in value)

    def _infer_record(self, value: Mapping, memo: Dict[int, Tuple[Any, Any]]) -> Dict[str, Any]:
        schema: Dict[str, Any] = {}
        memo[id(value)] = (value, schema)

        if isinstance(value, ChainMap) and not self.options.include_inherited_fields:
            owned = value.maps[0]
            inherited = [key for key in value if key not in owned]
            if inherited:
                self._warn(
                    f"Skipping inherited fields {inherited!r}; "
                    f"pass include_inherited_fields=True to copy them"
                )
            fields = list(owned)
        else:
            fields = list(value)

        for name in fields:
            schema[name] = self._infer(value[name], memo)
        return schema

    def _infer_object(self, value: Any, memo: Dict[int, Tuple[Any, Any]]) -> ClonerObject:
        cls = type(value)
        schema = ClonerObject(cls, {})
        memo[id(value)] = (value, schema)

        fields = list(vars(value))
        inherited = self._class_fields(cls, fields)
        if self.options.include_inherited_fields:
            fields.extend(inherited)
        elif inherited:
            logger.debug(f"Skipping class attributes {inherited!r} of {cls.__qualname__}")

        for name in fields:
            schema.fields[name] = self._infer(getattr(value, name), memo)
        return schema

    @staticmethod
    def _class_fields(cls: type, owned: List[str]) -> List[str]:
        """Public class-level data attributes not shadowed by the instance."""
        names: List[str] = []
        for klass in cls.__mro__:
            if klass is object:
                continue
            for name, attr in vars(klass).items():
                if name.startswith('_') or name in owned or name in names:
                    continue
                # methods, properties and other descriptors are behavior, not data
                if hasattr(type(attr), '__get__'):
                    continue
                names.append(name)
        return names

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def _infer_list(self, value: list, memo: Dict[int, Tuple[Any, Any]]) -> list:
        schema: list = []
        memo[id(value)] = (value, schema)
        if value:
            self._check_homogeneous(value)
            schema.append(self._infer(value[0], memo))
        return schema

    def _infer_tuple(self, value: tuple, memo: Dict[int, Tuple[Any, Any]]) -> tuple:
        # A tuple cannot contain itself, so it is registered once built.
        if value:
            self._check_homogeneous(value)
            schema: tuple = (self._infer(value[0], memo),)
        else:
            schema = ()
        memo[id(value)] = (value, schema)
        return schema

    @staticmethod
    def _is_array_like(value: Any) -> bool:
        cls = type(value)
        return all(hasattr(cls, attr) for attr in ('__getitem__', '__len__', '__iter__'))

    def _infer_array_like(self, value: Any, memo: Dict[int, Tuple[Any, Any]]) -> Any:
        self._warn(
            f"Partial support for {type(value).__qualname__}: "
            f"it is indexed like a sequence and cloned to a list"
        )
        if len(value) == 0:
            return []
        schema = ClonerArrayLike(None)
        memo[id(value)] = (value, schema)
        self._check_homogeneous(value)
        schema.schema = self._infer(value[0], memo)
        return schema

    def _check_homogeneous(self, value: Any):
        if len(value) > 1:
            self._warn(
                f"{type(value).__qualname__} of {len(value)} elements: elements "
                f"beyond the first are assumed to share its shape"
            )

    def _warn(self, message: str):
        self.stats['warnings'] += 1
        logger.warning(message)


def infer_schema(value: Any, include_inherited_fields: bool = False) -> Any:
    """
    Infer a clone schema from an example value.

    Usage:
        >>> infer_schema({'when': datetime.date(2024, 1, 1), 'tags': ['a']})
        {'when': <class 'datetime.date'>, 'tags': [<class 'str'>]}
    """
    inferrer = SchemaInferrer(include_inherited_fields=include_inherited_fields)
    return inferrer.infer(value)
