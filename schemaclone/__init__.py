"""
schemaclone: Schema-Specialized Deep Copy for Python
====================================================

schemaclone generates, once per value shape, a dedicated deep-copy function
and reuses it for every value of that shape. The generated code contains no
runtime type dispatch, which makes it considerably faster than a generic
recursive walker such as :func:`copy.deepcopy`.

Core Components:
    - schema: the shape vocabulary (leaf types, records, sequences, wrappers)
    - analysis: schema inference from an example value
    - compiler: generation of the specialized clone source
    - runtime: compilation of that source into a callable

Usage:
    >>> import schemaclone
    >>> schema = schemaclone.infer_schema({'x': 1.0, 'gg': [{'ff': 22}]})
    >>> cloner = schemaclone.compile_cloner(schema)
    >>> cloner({'x': 2.0, 'gg': [{'ff': 1}, {'ff': 2}]})
    {'x': 2.0, 'gg': [{'ff': 1}, {'ff': 2}]}

    >>> o = {'nest': {'a': 1}}
    >>> o['circular'] = o
    >>> c = schemaclone.clone(o, detect_cycles=True)
    >>> c['circular'] is c
    True
"""

__version__ = "1.0.0"

from schemaclone.errors import (
    CloneError,
    UnsupportedTypeError,
    UnsupportedSchemaError,
    MisconfiguredOptionError,
    CompilationError,
)
from schemaclone.schema.model import (
    SchemaKind,
    ClonerMap,
    ClonerSet,
    ClonerArrayLike,
    ClonerObject,
    ClonerCustomFn,
    classify,
    describe,
)
from schemaclone.analysis.schema_inference import (
    InferenceOptions,
    SchemaInferrer,
    infer_schema,
)
from schemaclone.compiler.clone_codegen import (
    CloneCodeGenerator,
    CloneOptions,
    synthesize_source,
)
from schemaclone.runtime.cloner import ClonerCompiler, compile_cloner, clone

__all__ = [
    'CloneError',
    'UnsupportedTypeError',
    'UnsupportedSchemaError',
    'MisconfiguredOptionError',
    'CompilationError',
    'SchemaKind',
    'ClonerMap',
    'ClonerSet',
    'ClonerArrayLike',
    'ClonerObject',
    'ClonerCustomFn',
    'classify',
    'describe',
    'InferenceOptions',
    'SchemaInferrer',
    'infer_schema',
    'CloneCodeGenerator',
    'CloneOptions',
    'synthesize_source',
    'ClonerCompiler',
    'compile_cloner',
    'clone',
]
