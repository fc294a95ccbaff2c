"""Name conversions shared by the registry, encoder and builder generators."""

from __future__ import annotations

import keyword
import re

_VERSION_SEGMENT = re.compile(r"^v\d")


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase: license_ids -> licenseIds."""
    return re.sub(r"_([a-z0-9])", lambda m: m.group(1).upper(), name)


def lower_first(name: str) -> str:
    if not name:
        return name
    return name[0].lower() + name[1:]


def to_pascal(name: str) -> str:
    """Join alphanumeric runs with their first letter capitalised.

    ault.license.v1 -> AultLicenseV1
    """
    parts = re.split(r"[^A-Za-z0-9]+", name)
    return "".join(p[:1].upper() + p[1:] for p in parts if p)


def to_identifier(full_name: str) -> str:
    """Flatten a dotted proto name into a Python identifier fragment."""
    return re.sub(r"[^A-Za-z0-9_]", "_", full_name)


def safe_identifier(name: str) -> str:
    """Append an underscore when *name* is a Python keyword (import -> import_)."""
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def infer_module_name(package: str, root_namespace: str = "ault") -> str:
    """Guess the chain module a proto package belongs to.

    ault.license.v1 -> license, cosmos.bank.v1beta1 -> bank, foo -> foo.
    This is a naming heuristic; packages outside the convention fall back
    to their last segment.
    """
    parts = package.split(".")
    if len(parts) >= 2 and parts[0] == root_namespace:
        return parts[1]
    for index, part in enumerate(parts):
        if _VERSION_SEGMENT.match(part):
            if index > 0:
                return parts[index - 1]
            break
    return parts[-1]


def method_name_for(message_name: str, prefix: str = "Msg") -> str:
    """MsgDelegate -> delegate, MsgImport -> import_."""
    base = message_name[len(prefix):] if prefix and message_name.startswith(prefix) else message_name
    return safe_identifier(lower_first(base))
