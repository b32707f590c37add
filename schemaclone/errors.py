"""
Error classes for schemaclone.

Every failure raised by inference, code synthesis or materialization derives
from :class:`CloneError`. None of them is retried internally: each one points
at a mismatch between a schema and the data it is used for, or at a bug in the
generated code.
"""

from typing import Any, Optional


class CloneError(Exception):
    """Base class for all schemaclone errors."""


class UnsupportedTypeError(CloneError, TypeError):
    """
    Raised by schema inference when a runtime value has no schema mapping.

    Attributes:
        value: The offending value (the innermost one, not the inference root).
    """

    def __init__(self, value: Any, message: Optional[str] = None):
        self.value = value
        if message is None:
            message = f"cannot infer a clone schema for {type(value).__qualname__} value {value!r}"
        super().__init__(message)


class UnsupportedSchemaError(CloneError, ValueError):
    """
    Raised by code synthesis when a schema node has no copy policy.

    Also raised for sequence schemas declaring more than one element
    alternative, which are rejected rather than truncated.

    Attributes:
        schema: The offending schema node.
    """

    def __init__(self, schema: Any, message: Optional[str] = None):
        self.schema = schema
        if message is None:
            message = f"unsupported schema node {schema!r}"
        super().__init__(message)


class MisconfiguredOptionError(CloneError, ValueError):
    """
    Raised when a schema needs an option that was not enabled.

    The usual case is a cyclic schema compiled without ``detect_cycles``.

    Attributes:
        option: Name of the option that has to be enabled.
    """

    def __init__(self, option: str, message: Optional[str] = None):
        self.option = option
        if message is None:
            message = f"option {option!r} must be enabled for this schema"
        super().__init__(message)


class CompilationError(CloneError):
    """
    Raised when generated source could not be turned into a function.

    Attributes:
        source: The generated module source that failed to compile.
    """

    def __init__(self, message: str, source: str):
        self.source = source
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.args[0]}\n--- generated source ---\n{self.source}"
