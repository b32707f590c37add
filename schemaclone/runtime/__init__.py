"""Materialization of generated cloners and the module-level API."""

from schemaclone.runtime.cloner import (
    ClonerCompiler,
    compile_cloner,
    clone,
)

__all__ = [
    'ClonerCompiler',
    'compile_cloner',
    'clone',
]
