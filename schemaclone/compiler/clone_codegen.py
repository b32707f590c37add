"""
Clone Code Generator
====================

Synthesizes the Python source of a specialized deep-copy function from a
schema. The generated code never inspects types at runtime: every dispatch
decision is taken once, here, and baked into straight-line expressions.

Emission strategy:
  1. Leaves become direct expressions (``src``, ``src.replace()``,
     ``bytearray(src)``, ``custom_0(src)``, ...).
  2. Containers referenced once are inlined as literals and comprehensions:
     ``{'a': src['a'], 'b': [x0.copy() for x0 in src['b']]}``.
  3. Containers referenced from several places become one helper function,
     so each schema node is synthesized exactly once.
  4. With ``detect_cycles`` every mutable container becomes a helper taking
     the per-call ``memo``. A helper returns the copy already registered for
     ``id(src)`` or registers an empty placeholder *before* filling it, so
     re-entrant references resolve to the placeholder.

Example output for ``{'nest': {'a': int}}`` with cycle detection:

    def _clone_record_1(src, memo):
        dst = memo.get(id(src))
        if dst is not None:
            return dst
        dst = memo[id(src)] = {}
        dst['a'] = src['a']
        return dst

    def _clone_record_0(src, memo):
        ...
        dst['nest'] = _clone_record_1(src['nest'], memo)
        return dst

    def clone(src):
        memo = {}
        return _clone_record_0(src, memo)
"""

import array
import builtins
import datetime
import decimal
import fractions
import hashlib
import keyword
import logging
import pickle
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set, Tuple

import numpy as np

from schemaclone.errors import MisconfiguredOptionError, UnsupportedSchemaError
from schemaclone.schema.model import (
    CONTAINER_KINDS,
    MEMO_KINDS,
    ClonerObject,
    SchemaKind,
    classify,
    describe,
    iter_children,
)

logger = logging.getLogger(__name__)

ENTRY_POINT = 'clone'
INDENT = '    '


def _new_map(src):
    """Empty mapping of the same kind as ``src``."""
    if isinstance(src, defaultdict):
        return type(src)(src.default_factory)
    return type(src)()


def _rebuild_map(src, entries):
    """Return the plain dict ``entries`` as a mapping of the same kind as ``src``."""
    if type(src) is dict:
        return entries
    dst = _new_map(src)
    dst.update(entries)
    return dst


def _rebuild_set(src, items):
    return type(src)(items)


def _rebuild_object(cls, fields):
    # __init__ is skipped; fields go straight into the instance dict
    dst = cls.__new__(cls)
    dst.__dict__.update(fields)
    return dst


def _attribute(input_name: str, name: str) -> str:
    """Expression reading attribute ``name`` of ``input_name``."""
    if name.isidentifier() and not keyword.iskeyword(name):
        return f'{input_name}.{name}'
    return f'getattr({input_name}, {name!r})'


# Names every generated module can refer to.
SUPPORT_NAMESPACE: Dict[str, Any] = {
    '_Decimal': decimal.Decimal,
    '_Fraction': fractions.Fraction,
    '_timedelta': datetime.timedelta,
    '_loads': pickle.loads,
    '_dumps': pickle.dumps,
    '_new_map': _new_map,
    '_rebuild_map': _rebuild_map,
    '_rebuild_set': _rebuild_set,
    '_rebuild_object': _rebuild_object,
}

# Copy expression per non-identity leaf type; {0} is the input expression.
LEAF_TEMPLATES: Dict[type, str] = {
    decimal.Decimal: '_Decimal({0}.as_tuple())',
    fractions.Fraction: '_Fraction({0})',
    datetime.datetime: '{0}.replace()',
    datetime.date: '{0}.replace()',
    datetime.time: '{0}.replace()',
    datetime.timedelta: '_timedelta({0}.days, {0}.seconds, {0}.microseconds)',
    bytearray: 'bytearray({0})',
    memoryview: '{0}[:]',
    array.array: '{0}[:]',
    np.ndarray: '{0}.copy()',
}

# Naive collections snapshot each value through pickle.
SNAPSHOT_TEMPLATE = '_loads(_dumps({0}, -1))'

# Names the generated code defines itself; the root parameter must not shadow them.
_GENERATED_NAME = re.compile(r'^(?:[xkv]\d+|(?:custom|cls)_\d+|memo)$')


@dataclass
class CloneOptions:
    """Code generation options."""
    detect_cycles: bool = False


@dataclass
class CloneUnit:
    """Generated module source for one schema and the names it needs at runtime."""
    schema: Any
    source: str
    namespace: Dict[str, Any]
    options: CloneOptions
    entry_point: str = ENTRY_POINT
    source_hash: str = ""
    helper_count: int = 0


@dataclass
class SynthesisContext:
    """
    State threaded through one synthesis pass.

    ``resolvers`` maps ``id(node)`` to a function producing the call that
    clones an arbitrary input expression with that node's helper.
    ``bindings`` maps ``id(obj)`` of custom transforms (``custom_N``) and object
    classes (``cls_N``) to their generated name.
    """
    ref_counts: Dict[int, int] = field(default_factory=dict)
    resolvers: Dict[int, Callable[[str], str]] = field(default_factory=dict)
    in_progress: Set[int] = field(default_factory=set)
    bindings: Dict[int, str] = field(default_factory=dict)
    namespace: Dict[str, Any] = field(default_factory=lambda: dict(SUPPORT_NAMESPACE))
    helpers: List[List[str]] = field(default_factory=list)
    _counters: Dict[str, int] = field(default_factory=dict)

    def fresh_name(self, prefix: str) -> str:
        n = self._counters.get(prefix, 0)
        self._counters[prefix] = n + 1
        return f'{prefix}{n}'

    def bind(self, obj: Any, prefix: str = 'custom_') -> str:
        """Expose ``obj`` to the generated code, once per distinct object."""
        name = self.bindings.get(id(obj))
        if name is None:
            name = self.fresh_name(prefix)
            self.bindings[id(obj)] = name
            self.namespace[name] = obj
        return name


def count_references(schema: Any) -> Dict[int, int]:
    """
    Count incoming references per container node, keyed by ``id(node)``.

    The root counts as referenced once, so every node on a cycle that is
    reachable from the root ends up with at least one count above 1.
    """
    counts: Dict[int, int] = {}
    if classify(schema) not in CONTAINER_KINDS:
        return counts
    counts[id(schema)] = 1
    expanded = {id(schema)}
    stack = [schema]
    while stack:
        node = stack.pop()
        for child in iter_children(node):
            if classify(child) not in CONTAINER_KINDS:
                continue
            key = id(child)
            counts[key] = counts.get(key, 0) + 1
            if key not in expanded:
                expanded.add(key)
                stack.append(child)
    return counts


_EMPTY = object()


class CloneCodeGenerator:
    """
    Generates the source of a clone function for a schema.

    Usage:
        >>> generator = CloneCodeGenerator(detect_cycles=False)
        >>> unit = generator.generate({'a': int, 'b': [str]})
        >>> print(unit.source)
        def clone(src):
            return {'a': src['a'], 'b': list(src['b'])}
    """

    def __init__(self, options: CloneOptions = None, detect_cycles: bool = False):
        self.options = options or CloneOptions(detect_cycles=detect_cycles)
        self._emitters: Dict[SchemaKind, Callable[[Any, str, SynthesisContext], str]] = {
            SchemaKind.NULL: self._emit_null,
            SchemaKind.PRIMITIVE: self._emit_identity,
            SchemaKind.CALLABLE: self._emit_identity,
            SchemaKind.SYMBOL: self._emit_identity,
            SchemaKind.BIG_NUMBER: self._emit_leaf,
            SchemaKind.TEMPORAL: self._emit_leaf,
            SchemaKind.BUFFER: self._emit_leaf,
            SchemaKind.NAIVE_MAP: self._emit_naive_map,
            SchemaKind.NAIVE_SET: self._emit_naive_set,
            SchemaKind.MAP: self._emit_map,
            SchemaKind.SET: self._emit_set,
            SchemaKind.ARRAY_LIKE: self._emit_array_like,
            SchemaKind.SEQUENCE: self._emit_sequence,
            SchemaKind.RECORD: self._emit_record,
            SchemaKind.OBJECT: self._emit_object,
            SchemaKind.CUSTOM: self._emit_custom,
        }
        self.stats = {
            'nodes_synthesized': 0,
            'helpers_emitted': 0,
        }

    def generate(self, schema: Any, input_name: str = 'src') -> CloneUnit:
        """Generate the complete module source defining ``clone(<input_name>)``."""
        self._check_input_name(input_name)
        ctx = SynthesisContext(ref_counts=count_references(schema))
        expr = self.synthesize(schema, input_name, ctx)

        lines: List[str] = []
        for helper in ctx.helpers:
            lines.extend(helper)
            lines.append('')
        lines.append(f'def {ENTRY_POINT}({input_name}):')
        if self.options.detect_cycles:
            lines.append(f'{INDENT}memo = {{}}')
        lines.append(f'{INDENT}return {expr}')
        source = '\n'.join(lines) + '\n'

        unit = CloneUnit(
            schema=schema,
            source=source,
            namespace=ctx.namespace,
            options=self.options,
            source_hash=hashlib.md5(source.encode()).hexdigest()[:12],
            helper_count=len(ctx.helpers),
        )
        logger.debug(
            f"Generated cloner {unit.source_hash} with {unit.helper_count} helper(s) "
            f"for {describe(schema)}"
        )
        return unit

    def synthesize(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        """Return an expression evaluating to a deep copy of ``input_name``."""
        kind = classify(schema)
        detect_cycles = self.options.detect_cycles

        if kind in CONTAINER_KINDS or (detect_cycles and kind in MEMO_KINDS):
            key = id(schema)
            resolver = ctx.resolvers.get(key)
            if resolver is not None:
                if key in ctx.in_progress and not detect_cycles:
                    raise MisconfiguredOptionError(
                        'detect_cycles',
                        f"schema {describe(schema)} refers back to itself; "
                        f"compile it with detect_cycles=True",
                    )
                return resolver(input_name)
            if detect_cycles or ctx.ref_counts.get(key, 0) > 1:
                return self._emit_helper(schema, kind, input_name, ctx)

        self.stats['nodes_synthesized'] += 1
        return self._emitters[kind](schema, input_name, ctx)

    # ------------------------------------------------------------------
    # Helpers (shared and cycle-safe nodes)
    # ------------------------------------------------------------------

    def _emit_helper(self, schema: Any, kind: SchemaKind, input_name: str,
                     ctx: SynthesisContext) -> str:
        name = ctx.fresh_name(f'_clone_{kind.name.lower()}_')
        memo_arg = ', memo' if self.options.detect_cycles else ''

        def resolver(expr: str) -> str:
            return f'{name}({expr}{memo_arg})'

        # Registered before the children are expanded: re-entry calls the helper.
        key = id(schema)
        ctx.resolvers[key] = resolver
        ctx.in_progress.add(key)
        self.stats['nodes_synthesized'] += 1
        if self.options.detect_cycles:
            body = self._memo_body(schema, kind, ctx)
        else:
            body = [f'return {self._emitters[kind](schema, "src", ctx)}']
        ctx.in_progress.discard(key)

        ctx.helpers.append([f'def {name}(src{memo_arg}):'] + [INDENT + line for line in body])
        self.stats['helpers_emitted'] += 1
        return resolver(input_name)

    def _memo_body(self, schema: Any, kind: SchemaKind, ctx: SynthesisContext) -> List[str]:
        lines = [
            'dst = memo.get(id(src))',
            'if dst is not None:',
            INDENT + 'return dst',
        ]
        if kind is SchemaKind.RECORD:
            lines.append('dst = memo[id(src)] = {}')
            for name, child in self._record_fields(schema):
                value = self.synthesize(child, f'src[{name!r}]', ctx)
                lines.append(f'dst[{name!r}] = {value}')
        elif kind is SchemaKind.OBJECT:
            cls = ctx.bind(schema.cls, 'cls_')
            lines.append(f'dst = memo[id(src)] = {cls}.__new__({cls})')
            for name, child in self._record_fields(schema):
                value = self.synthesize(child, _attribute('src', name), ctx)
                lines.append(f'dst.__dict__[{name!r}] = {value}')
        elif kind is SchemaKind.ARRAY_LIKE or (
                kind is SchemaKind.SEQUENCE and isinstance(schema, list)):
            lines.append('dst = memo[id(src)] = []')
            element = self._element_schema(schema, kind)
            if element is not _EMPTY:
                var = ctx.fresh_name('x')
                value = self.synthesize(element, var, ctx)
                lines.append(f'dst.extend([{value} for {var} in src])')
        elif kind is SchemaKind.MAP:
            lines.append('dst = memo[id(src)] = _new_map(src)')
            k, v = ctx.fresh_name('k'), ctx.fresh_name('v')
            lines.append(f'for {k}, {v} in src.items():')
            lines.append(f'{INDENT}dst[{k}] = {self.synthesize(schema.schema, v, ctx)}')
        else:
            # Immutable or leaf-like copies are built first, then registered.
            lines.append(f'dst = {self._emitters[kind](schema, "src", ctx)}')
            lines.append('return memo.setdefault(id(src), dst)')
            return lines
        lines.append('return dst')
        return lines

    # ------------------------------------------------------------------
    # Inline emitters
    # ------------------------------------------------------------------

    def _emit_null(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        return 'None'

    def _emit_identity(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        return input_name

    def _emit_leaf(self, schema: type, input_name: str, ctx: SynthesisContext) -> str:
        return LEAF_TEMPLATES[schema].format(input_name)

    def _emit_custom(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        return f'{ctx.bind(schema.fn)}({input_name})'

    def _emit_naive_map(self, schema: type, input_name: str, ctx: SynthesisContext) -> str:
        k, v = ctx.fresh_name('k'), ctx.fresh_name('v')
        value = SNAPSHOT_TEMPLATE.format(v)
        return f'_rebuild_map({input_name}, {{{k}: {value} for {k}, {v} in {input_name}.items()}})'

    def _emit_naive_set(self, schema: type, input_name: str, ctx: SynthesisContext) -> str:
        var = ctx.fresh_name('x')
        value = SNAPSHOT_TEMPLATE.format(var)
        return f'_rebuild_set({input_name}, [{value} for {var} in {input_name}])'

    def _emit_map(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        k, v = ctx.fresh_name('k'), ctx.fresh_name('v')
        value = self.synthesize(schema.schema, v, ctx)
        return f'_rebuild_map({input_name}, {{{k}: {value} for {k}, {v} in {input_name}.items()}})'

    def _emit_set(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        var = ctx.fresh_name('x')
        value = self.synthesize(schema.schema, var, ctx)
        return f'_rebuild_set({input_name}, [{value} for {var} in {input_name}])'

    def _emit_array_like(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        var = ctx.fresh_name('x')
        value = self.synthesize(schema.schema, var, ctx)
        return f'[{value} for {var} in {input_name}]'

    def _emit_sequence(self, schema: Any, input_name: str, ctx: SynthesisContext) -> str:
        is_tuple = isinstance(schema, tuple)
        element = self._element_schema(schema, SchemaKind.SEQUENCE)
        if element is _EMPTY:
            return '()' if is_tuple else '[]'
        var = ctx.fresh_name('x')
        value = self.synthesize(element, var, ctx)
        if is_tuple:
            return f'tuple([{value} for {var} in {input_name}])'
        if value == var:
            return f'list({input_name})'
        return f'[{value} for {var} in {input_name}]'

    def _emit_record(self, schema: Dict[str, Any], input_name: str, ctx: SynthesisContext) -> str:
        fields = [
            f'{name!r}: {self.synthesize(child, f"{input_name}[{name!r}]", ctx)}'
            for name, child in self._record_fields(schema)
        ]
        return '{' + ', '.join(fields) + '}'

    def _emit_object(self, schema: ClonerObject, input_name: str, ctx: SynthesisContext) -> str:
        cls = ctx.bind(schema.cls, 'cls_')
        fields = [
            f'{name!r}: {self.synthesize(child, _attribute(input_name, name), ctx)}'
            for name, child in self._record_fields(schema)
        ]
        return f'_rebuild_object({cls}, {{' + ', '.join(fields) + '})'

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _element_schema(schema: Any, kind: SchemaKind) -> Any:
        if kind is SchemaKind.ARRAY_LIKE:
            return schema.schema
        if len(schema) > 1:
            raise UnsupportedSchemaError(
                schema,
                f"sequence schema declares {len(schema)} element alternatives; "
                f"heterogeneous sequences are not supported",
            )
        return schema[0] if schema else _EMPTY

    @staticmethod
    def _record_fields(schema: Any) -> List[Tuple[str, Any]]:
        fields = schema.fields if isinstance(schema, ClonerObject) else schema
        for name in fields:
            if not isinstance(name, str):
                raise UnsupportedSchemaError(
                    schema, f"record field names must be str, got {name!r}"
                )
        return list(fields.items())

    @staticmethod
    def _check_input_name(input_name: str):
        if (not input_name.isidentifier() or keyword.iskeyword(input_name)
                or input_name.startswith('_') or _GENERATED_NAME.match(input_name)
                or hasattr(builtins, input_name)):
            raise ValueError(f"{input_name!r} cannot be used as the cloner's parameter name")


def synthesize_source(schema: Any, input_name: str = 'src', detect_cycles: bool = False) -> str:
    """
    Return the generated source for ``schema`` without compiling it.

    Meant for diagnostics: print it next to the input that failed to clone.
    """
    generator = CloneCodeGenerator(CloneOptions(detect_cycles=detect_cycles))
    return generator.generate(schema, input_name).source
