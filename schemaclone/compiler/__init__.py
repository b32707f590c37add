"""Source generation for schema-specialized clone functions."""

from schemaclone.compiler.clone_codegen import (
    CloneCodeGenerator,
    CloneOptions,
    CloneUnit,
    SynthesisContext,
    count_references,
    synthesize_source,
)

__all__ = [
    'CloneCodeGenerator',
    'CloneOptions',
    'CloneUnit',
    'SynthesisContext',
    'count_references',
    'synthesize_source',
]
