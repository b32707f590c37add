"""
Tests for the clone code generator.

Validates:
  - the exact source emitted for leaves, records and sequences
  - shared schema nodes are synthesized once, as helpers
  - cycle-safe helpers register their copy before filling it
  - invalid schemas, options and parameter names are rejected
"""

import datetime
import decimal

import numpy as np
import pytest

from schemaclone.compiler.clone_codegen import (
    CloneCodeGenerator,
    CloneOptions,
    count_references,
    synthesize_source,
)
from schemaclone.errors import MisconfiguredOptionError, UnsupportedSchemaError
from schemaclone.schema.model import (
    ClonerArrayLike,
    ClonerCustomFn,
    ClonerMap,
    ClonerObject,
    ClonerSet,
)


def upper(value):
    return value.upper()


class Point:
    pass


# ---------- Reference Counting ----------

class TestCountReferences:
    def test_leaf_root(self):
        assert count_references(int) == {}

    def test_tree(self):
        inner = {'a': int}
        schema = {'x': inner, 'y': [str]}
        counts = count_references(schema)
        assert counts[id(schema)] == 1
        assert counts[id(inner)] == 1

    def test_shared_and_cyclic(self):
        shared = {'v': int}
        schema = {'a': shared, 'b': shared}
        schema['self'] = schema
        counts = count_references(schema)
        assert counts[id(shared)] == 2
        assert counts[id(schema)] == 2


# ---------- Inline Emission ----------

class TestInlineSource:
    def test_primitive(self):
        assert synthesize_source(int) == 'def clone(src):\n    return src\n'

    def test_null(self):
        assert synthesize_source(None) == 'def clone(src):\n    return None\n'

    def test_leaf_templates(self):
        assert 'return src.replace()' in synthesize_source(datetime.datetime)
        assert 'return _Decimal(src.as_tuple())' in synthesize_source(decimal.Decimal)
        assert 'return src.copy()' in synthesize_source(np.ndarray)
        assert 'return bytearray(src)' in synthesize_source(bytearray)
        assert 'return _timedelta(src.days, src.seconds, src.microseconds)' in \
            synthesize_source(datetime.timedelta)

    def test_record_and_list(self):
        source = synthesize_source({'a': int, 'b': [str]})
        assert source == "def clone(src):\n    return {'a': src['a'], 'b': list(src['b'])}\n"

    def test_nested_records_in_list(self):
        source = synthesize_source({'gg': [{'ff': int, 'hh': float}]})
        assert "[{'ff': x0['ff'], 'hh': x0['hh']} for x0 in src['gg']]" in source

    def test_sequences(self):
        assert 'return tuple([x0 for x0 in src])' in synthesize_source((int,))
        assert 'return []' in synthesize_source([])
        assert 'return ()' in synthesize_source(())

    def test_wrappers(self):
        assert 'return _rebuild_map(src, {k0: v0 for k0, v0 in src.items()})' in \
            synthesize_source(ClonerMap(int))
        assert 'return _rebuild_set(src, [x0 for x0 in src])' in synthesize_source(ClonerSet(str))
        assert 'return [x0 for x0 in src]' in synthesize_source(ClonerArrayLike(int))

    def test_naive_collections_snapshot_values(self):
        source = synthesize_source(dict)
        assert 'return _rebuild_map(src, {k0: _loads(_dumps(v0, -1)) for k0, v0 in src.items()})' \
            in source
        assert synthesize_source(frozenset) == \
            'def clone(src):\n    return _rebuild_set(src, [_loads(_dumps(x0, -1)) for x0 in src])\n'

    def test_object(self):
        unit = CloneCodeGenerator().generate(ClonerObject(Point, {'x': int, 'y': [int]}))
        assert unit.source == (
            "def clone(src):\n"
            "    return _rebuild_object(cls_0, {'x': src.x, 'y': list(src.y)})\n"
        )
        assert unit.namespace['cls_0'] is Point

    def test_object_attribute_names_that_are_not_identifiers(self):
        source = synthesize_source(ClonerObject(Point, {'class': int, 'a-b': str}))
        assert "'class': getattr(src, 'class')" in source
        assert "'a-b': getattr(src, 'a-b')" in source

    def test_custom_input_name(self):
        source = synthesize_source({'a': int}, input_name='value')
        assert source == "def clone(value):\n    return {'a': value['a']}\n"

    def test_field_names_are_quoted(self):
        source = synthesize_source({"it's": int})
        assert '"it\'s": src["it\'s"]' in source


# ---------- Helpers ----------

class TestHelpers:
    def setup_method(self):
        self.generator = CloneCodeGenerator()

    def test_shared_node_becomes_helper(self):
        shared = {'v': int}
        unit = self.generator.generate({'a': shared, 'b': shared})
        assert unit.helper_count == 1
        assert "def _clone_record_0(src):\n    return {'v': src['v']}" in unit.source
        assert "{'a': _clone_record_0(src['a']), 'b': _clone_record_0(src['b'])}" in unit.source
        assert self.generator.stats['helpers_emitted'] == 1

    def test_tree_has_no_helpers(self):
        unit = self.generator.generate({'a': {'b': {'c': int}}})
        assert unit.helper_count == 0
        assert 'memo' not in unit.source

    def test_custom_transform_bound_once(self):
        schema = {'a': ClonerCustomFn(upper), 'b': ClonerCustomFn(upper)}
        unit = self.generator.generate(schema)
        assert "{'a': custom_0(src['a']), 'b': custom_0(src['b'])}" in unit.source
        assert unit.namespace['custom_0'] is upper
        assert 'custom_1' not in unit.namespace

    def test_distinct_transforms_get_distinct_names(self):
        schema = {'a': ClonerCustomFn(upper), 'b': ClonerCustomFn(str.lower)}
        unit = self.generator.generate(schema)
        assert unit.namespace['custom_1'] is str.lower

    def test_source_hash_is_stable(self):
        first = self.generator.generate({'a': int})
        second = CloneCodeGenerator().generate({'a': int})
        assert first.source_hash == second.source_hash
        assert len(first.source_hash) == 12


# ---------- Cycle Detection ----------

class TestCycleSafeSource:
    def setup_method(self):
        self.generator = CloneCodeGenerator(CloneOptions(detect_cycles=True))

    def test_every_container_is_a_helper(self):
        unit = self.generator.generate({'nest': {'a': int}})
        assert unit.helper_count == 2
        assert unit.source.endswith(
            'def clone(src):\n    memo = {}\n    return _clone_record_0(src, memo)\n'
        )

    def test_placeholder_registered_before_fill(self):
        unit = self.generator.generate({'a': int})
        lines = unit.source.splitlines()
        register = lines.index('    dst = memo[id(src)] = {}')
        fill = lines.index("    dst['a'] = src['a']")
        assert register < fill

    def test_self_reference_calls_own_helper(self):
        schema = {'nest': {'a': int}}
        schema['circular'] = schema
        unit = self.generator.generate(schema)
        assert "dst['circular'] = _clone_record_0(src['circular'], memo)" in unit.source

    def test_immutable_nodes_use_setdefault(self):
        unit = self.generator.generate((int,))
        assert 'dst = tuple([x0 for x0 in src])' in unit.source
        assert 'return memo.setdefault(id(src), dst)' in unit.source

    def test_leaves_stay_inline(self):
        unit = self.generator.generate({'when': datetime.date})
        assert "dst['when'] = src['when'].replace()" in unit.source

    def test_map_placeholder_keeps_input_kind(self):
        unit = self.generator.generate(ClonerMap(int))
        assert '    dst = memo[id(src)] = _new_map(src)' in unit.source.splitlines()

    def test_object_registered_before_fill(self):
        schema = ClonerObject(Point, {'x': int})
        schema.fields['parent'] = schema
        unit = self.generator.generate(schema)
        lines = unit.source.splitlines()
        register = lines.index('    dst = memo[id(src)] = cls_0.__new__(cls_0)')
        fill = lines.index("    dst.__dict__['x'] = src.x")
        assert register < fill
        assert "    dst.__dict__['parent'] = _clone_object_0(src.parent, memo)" in lines


# ---------- Validation ----------

class TestValidation:
    def test_cycle_without_detection_is_rejected(self):
        schema = {'nest': {'a': int}}
        schema['circular'] = schema
        with pytest.raises(MisconfiguredOptionError) as exc_info:
            synthesize_source(schema)
        assert exc_info.value.option == 'detect_cycles'

    def test_deep_cycle_without_detection_is_rejected(self):
        schema = {'nest': {'a': int}}
        schema['nest']['circular'] = schema
        with pytest.raises(MisconfiguredOptionError):
            synthesize_source(schema)

    def test_heterogeneous_sequence_rejected(self):
        with pytest.raises(UnsupportedSchemaError):
            synthesize_source([int, str])

    def test_non_str_field_rejected(self):
        with pytest.raises(UnsupportedSchemaError):
            synthesize_source({1: int})

    def test_unknown_schema_rejected(self):
        with pytest.raises(UnsupportedSchemaError):
            synthesize_source({'a': object})

    @pytest.mark.parametrize('name', ['memo', 'x0', 'custom_3', '_src', 'class', '1a', 'list'])
    def test_invalid_input_names(self, name):
        with pytest.raises(ValueError):
            synthesize_source({'a': int}, input_name=name)
