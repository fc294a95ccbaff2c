"""Structural parser for .proto files.

Extracts just enough structure to build typed-data descriptors: the package,
top-level message blocks with their direct fields, the ``(amino.name)``
option of each message and the request types of ``rpc`` declarations.
Anything it does not understand is skipped rather than reported.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from protoc_eip712.models import FieldDef, MessageDef, ParsedProtoFile

ProtoTextParser = Callable[[str, str], Optional[ParsedProtoFile]]

_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT = re.compile(r"//.*$", re.MULTILINE)
_PACKAGE = re.compile(r"\bpackage\s+([A-Za-z0-9_.]+)\s*;")
_MESSAGE_START = re.compile(r"message\s+([A-Za-z0-9_]+)\s*\{")
_SKIPPED_BLOCK = re.compile(r"^(message|enum|oneof)\b")
_FIELD = re.compile(
    r"^(repeated\s+)?(?:optional\s+)?([A-Za-z0-9_.]+)\s+([A-Za-z0-9_]+)\s*=\s*\d+"
)
_AMINO_NAME = re.compile(r'option\s+\(amino\.name\)\s*=\s*"([^"]+)"')
_RPC = re.compile(
    r"rpc\s+\w+\s*\(\s*([.A-Za-z0-9_]+)\s*\)\s*returns\s*\(\s*([.A-Za-z0-9_]+)\s*\)"
)


def strip_comments(text: str) -> str:
    """Remove block and line comments so braces inside them are not counted."""
    return _LINE_COMMENT.sub("", _BLOCK_COMMENT.sub("", text))


def parse_proto_file(file_path: str) -> Optional[ParsedProtoFile]:
    """Parse a .proto file. Returns None when it has no package declaration."""
    text = Path(file_path).read_text(encoding="utf-8")
    return parse_proto_text(text, source_file=file_path)


def parse_proto_text(text: str, source_file: str = "") -> Optional[ParsedProtoFile]:
    text = strip_comments(text)
    package_match = _PACKAGE.search(text)
    if package_match is None:
        return None
    package = package_match.group(1)

    messages: List[MessageDef] = []
    for name, body in _extract_message_blocks(text):
        amino_match = _AMINO_NAME.search(body)
        messages.append(
            MessageDef(
                name=name,
                package=package,
                fields=tuple(_parse_message_body(body)),
                source_file=source_file,
                amino_name=amino_match.group(1) if amino_match else None,
            )
        )

    request_types = tuple(m.group(1) for m in _RPC.finditer(text))
    return ParsedProtoFile(
        package=package,
        source_file=source_file,
        messages=tuple(messages),
        rpc_request_types=request_types,
    )


def _extract_message_blocks(text: str) -> List[Tuple[str, str]]:
    """Find `message Name { ... }` blocks, resuming the scan after each block."""
    blocks: List[Tuple[str, str]] = []
    pos = 0
    while True:
        match = _MESSAGE_START.search(text, pos)
        if match is None:
            break
        start = match.end() - 1
        depth = 0
        end = start
        while end < len(text):
            ch = text[end]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    break
            end += 1
        blocks.append((match.group(1), text[start + 1:end]))
        pos = end + 1
    return blocks


def _count_braces(line: str) -> int:
    return line.count("{") - line.count("}")


def _parse_message_body(body: str) -> List[FieldDef]:
    """Parse the direct fields of a message body, skipping nested blocks."""
    fields: List[FieldDef] = []
    depth = 0

    for raw_line in body.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if depth == 0 and _SKIPPED_BLOCK.match(line):
            depth += _count_braces(line)
            continue

        if depth == 0:
            field_match = _FIELD.match(line)
            if field_match:
                fields.append(
                    FieldDef(
                        name=field_match.group(3),
                        type_name=field_match.group(2),
                        is_repeated=field_match.group(1) is not None,
                    )
                )

        depth += _count_braces(line)

    return fields
