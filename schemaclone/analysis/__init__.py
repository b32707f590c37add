"""Schema inference from example values."""

from schemaclone.analysis.schema_inference import (
    InferenceOptions,
    SchemaInferrer,
    infer_schema,
)

__all__ = [
    'InferenceOptions',
    'SchemaInferrer',
    'infer_schema',
]
