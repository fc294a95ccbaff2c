from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from protoc_eip712.errors import FieldOrderError


def _names(fields: Iterable[Any]) -> List[str]:
    return [f["name"] if isinstance(f, Mapping) else f.name for f in fields]


def _check(label: str, fields: Iterable[Any], problems: List[str]) -> None:
    names = _names(fields)
    expected = sorted(names, reverse=True)
    if names != expected:
        problems.append(
            f"{label}: fields are not in descending alphabetical order.\n"
            f"  Current:  [{', '.join(names)}]\n"
            f"  Expected: [{', '.join(expected)}]"
        )


def validate_field_order(registry: Mapping[str, Any]) -> None:
    """Check every value and nested field list of a registry.

    Accepts the generated ``EIP712_MSG_TYPES`` mapping or a mapping of
    type URL to TypedDataEntry. Raises FieldOrderError listing every
    offending list.
    """
    problems: List[str] = []
    for type_url, config in registry.items():
        if isinstance(config, Mapping):
            value_fields = config.get("value_fields", [])
            nested_types = config.get("nested_types") or {}
        else:
            value_fields = config.value_fields
            nested_types = config.nested_types
        _check(type_url, value_fields, problems)
        for nested_name, nested_fields in nested_types.items():
            _check(f"{type_url} (nested: {nested_name})", nested_fields, problems)

    if problems:
        raise FieldOrderError(problems)
