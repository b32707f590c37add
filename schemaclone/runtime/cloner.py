"""
Cloner Runtime
==============

Turns generated clone source into callable functions and exposes the
module-level API.

Pipeline:
    schema -> CloneCodeGenerator.generate -> CloneUnit (source + namespace)
           -> compile() -> exec() into a fresh namespace -> clone function

Compiled code objects are cached by source hash, so structurally identical
schemas only pay for ``compile`` once. Every call to :meth:`ClonerCompiler.compile`
still returns a new function bound to its own namespace, which is how two
schemas with the same shape but different custom transforms stay apart.

A clone function holds no state between calls. When cycles are detected its
identity memo is a local variable of the call, so one function may be used
from several threads at once.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from schemaclone.analysis.schema_inference import infer_schema
from schemaclone.compiler.clone_codegen import CloneCodeGenerator, CloneOptions, CloneUnit
from schemaclone.errors import CloneError, CompilationError
from schemaclone.schema.model import describe

logger = logging.getLogger(__name__)


class ClonerCompiler:
    """
    Compiles schemas into specialized deep-copy functions.

    Usage:
        >>> compiler = ClonerCompiler()
        >>> cloner = compiler.compile({'x': float, 'tags': [str]})
        >>> cloner({'x': 1.5, 'tags': ['a']})
        {'x': 1.5, 'tags': ['a']}
    """

    MAX_CACHED = 128

    def __init__(self, max_cached: int = MAX_CACHED, enable_logging: bool = False):
        self.max_cached = max_cached
        self._code_cache: 'OrderedDict[str, Any]' = OrderedDict()
        self._lock = threading.Lock()
        self.stats = {
            'cloners_compiled': 0,
            'cache_hits': 0,
            'compilation_errors': 0,
            'total_compilation_time_ms': 0.0,
        }

        if enable_logging:
            logging.basicConfig(level=logging.DEBUG)

    def compile(
        self,
        schema: Any,
        detect_cycles: bool = False,
        options: Optional[CloneOptions] = None,
    ) -> Callable[[Any], Any]:
        """Generate and materialize a clone function for ``schema``."""
        options = options or CloneOptions(detect_cycles=detect_cycles)
        unit = CloneCodeGenerator(options).generate(schema)
        return self.materialize(unit)

    def materialize(self, unit: CloneUnit) -> Callable[[Any], Any]:
        """Compile a generated unit and return its entry-point function."""
        code = self._code_for(unit)
        namespace = dict(unit.namespace)
        try:
            exec(code, namespace)
            cloner = namespace[unit.entry_point]
        except Exception as e:
            with self._lock:
                self.stats['compilation_errors'] += 1
            raise CompilationError(
                f"generated cloner {unit.source_hash} failed to load: {e}", unit.source
            ) from e

        cloner.__schemaclone_schema__ = unit.schema
        cloner.__schemaclone_source__ = unit.source
        cloner.__schemaclone_options__ = unit.options
        return cloner

    def clear_cache(self):
        with self._lock:
            self._code_cache.clear()

    def _code_for(self, unit: CloneUnit) -> Any:
        with self._lock:
            code = self._code_cache.get(unit.source_hash)
            if code is not None:
                self._code_cache.move_to_end(unit.source_hash)
                self.stats['cache_hits'] += 1
                logger.debug(f"Cache hit for cloner {unit.source_hash}")
                return code

        start = time.perf_counter()
        try:
            code = compile(unit.source, f'<schemaclone:{unit.source_hash}>', 'exec')
        except (SyntaxError, ValueError) as e:
            with self._lock:
                self.stats['compilation_errors'] += 1
            raise CompilationError(
                f"generated cloner {unit.source_hash} does not compile: {e}", unit.source
            ) from e
        elapsed_ms = (time.perf_counter() - start) * 1000

        with self._lock:
            self._code_cache[unit.source_hash] = code
            if len(self._code_cache) > self.max_cached:
                self._code_cache.popitem(last=False)
            self.stats['cloners_compiled'] += 1
            self.stats['total_compilation_time_ms'] += elapsed_ms
        logger.debug(f"Compiled cloner {unit.source_hash} in {elapsed_ms:.3f} ms")
        return code


# ---------------------------------------------------------------------------
# Module-level convenience API
# ---------------------------------------------------------------------------

_default_compiler = ClonerCompiler()


def compile_cloner(schema: Any, detect_cycles: bool = False) -> Callable[[Any], Any]:
    """
    Compile ``schema`` into a deep-copy function.

    Without ``detect_cycles`` the generated code is a tree of literals and
    comprehensions; self-referential schemas are rejected with
    MisconfiguredOptionError. With it, shared and cyclic references inside
    one input are reproduced in the copy.

    Usage:
        from schemaclone import compile_cloner

        clone_point = compile_cloner({'x': float, 'y': float})
        copy = clone_point({'x': 1.0, 'y': 2.0})
    """
    return _default_compiler.compile(schema, detect_cycles=detect_cycles)


def clone(value: Any, detect_cycles: bool = False, include_inherited_fields: bool = False) -> Any:
    """
    Infer a schema from ``value``, compile it and clone ``value`` with it.

    Convenient for one-off copies; reuse :func:`compile_cloner` when the same
    shape is cloned repeatedly. Failures are logged with the input, the
    schema and, when available, the generated source, then re-raised.
    """
    schema = infer_schema(value, include_inherited_fields=include_inherited_fields)
    try:
        cloner = compile_cloner(schema, detect_cycles=detect_cycles)
    except CloneError as e:
        source = getattr(e, 'source', None)
        logger.error(
            f"Cloner generation failed for {value!r} with schema {describe(schema)}: "
            f"{e.args[0] if e.args else e}"
            + (f"\ncode:\n{source}" if source else "")
        )
        raise
    return cloner(value)
