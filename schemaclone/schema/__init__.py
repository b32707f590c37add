"""Schema vocabulary shared by inference and the clone compiler."""

from schemaclone.schema.model import (
    SchemaKind,
    LEAF_KINDS,
    CONTAINER_KINDS,
    MEMO_KINDS,
    ClonerMap,
    ClonerSet,
    ClonerArrayLike,
    ClonerObject,
    ClonerCustomFn,
    classify,
    describe,
    iter_children,
)

__all__ = [
    'SchemaKind',
    'LEAF_KINDS',
    'CONTAINER_KINDS',
    'MEMO_KINDS',
    'ClonerMap',
    'ClonerSet',
    'ClonerArrayLike',
    'ClonerObject',
    'ClonerCustomFn',
    'classify',
    'describe',
    'iter_children',
]
