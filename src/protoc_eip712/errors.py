from __future__ import annotations

from typing import Sequence


class SchemaError(Exception):
    """Raised when the schema corpus cannot produce a consistent registry."""


class UnresolvedTypeError(SchemaError):
    """Raised when a field type cannot be resolved to a known message."""


class MissingMessageError(SchemaError):
    """Raised when a referenced or requested message type has no definition."""


class NestedTypeCollisionError(SchemaError):
    """Raised when one field name is reached with two different nested shapes."""

    def __init__(self, field_name: str, existing: str, new: str):
        super().__init__(
            f"Nested field collision for '{field_name}'. "
            f"Existing: {existing}, new: {new}"
        )
        self.field_name = field_name
        self.existing = existing
        self.new = new


class FieldOrderError(SchemaError):
    """Raised when registry fields are not in descending alphabetical order."""

    def __init__(self, problems: Sequence[str]):
        super().__init__(
            "EIP-712 field order validation failed.\n\n"
            "Fields MUST be in DESCENDING alphabetical order.\n\n"
            + "\n\n".join(problems)
        )
        self.problems = list(problems)


class CoercionError(ValueError):
    """Raised when runtime input does not fit the schema of a field."""

    def __init__(self, path: str, expected: str, reason: str = ""):
        message = reason or f"must be {expected}"
        super().__init__(f"{path} {message}.")
        self.path = path
        self.expected = expected
