from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional, Set

from protoc_eip712.models import MessageDef, ParsedProtoFile, ProtoCorpus
from protoc_eip712.parser.proto_parser import ProtoTextParser, parse_proto_text
from protoc_eip712.resolver import resolve_type_name


def find_proto_files(root: str) -> List[str]:
    """Recursively find .proto files under root, sorted for deterministic output."""
    return sorted(str(p) for p in Path(root).rglob("*.proto") if p.is_file())


def _read_text(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def read_proto_files(files: List[str], jobs: int = 1) -> Dict[str, str]:
    """Read files, optionally in parallel. The mapping is keyed by path."""
    if jobs <= 1 or len(files) <= 1:
        return {f: _read_text(f) for f in files}
    with ThreadPoolExecutor(max_workers=jobs) as pool:
        return dict(zip(files, pool.map(_read_text, files)))


def build_corpus(
    parsed_files: List[ParsedProtoFile],
    msg_prefix: str = "Msg",
    proto_base: str = "",
) -> ProtoCorpus:
    """Merge parsed files into the global message/amino/request-type tables."""
    messages: Dict[str, MessageDef] = {}
    amino_names: Dict[str, str] = {}
    request_types: Set[str] = set()

    for parsed in sorted(parsed_files, key=lambda p: p.source_file):
        for message_def in parsed.messages:
            messages[message_def.full_name] = message_def
            if message_def.amino_name:
                amino_names[message_def.full_name] = message_def.amino_name

        for request_type in parsed.rpc_request_types:
            resolved = resolve_type_name(request_type, parsed.package)
            if resolved.rsplit(".", 1)[-1].startswith(msg_prefix):
                request_types.add(resolved)

    return ProtoCorpus(
        messages=messages,
        amino_names=amino_names,
        request_types=tuple(sorted(request_types)),
        proto_base=proto_base,
    )


def load_corpus(
    proto_root: str,
    proto_base: Optional[str] = None,
    msg_prefix: str = "Msg",
    jobs: int = 1,
    parse: ProtoTextParser = parse_proto_text,
    files: Optional[List[str]] = None,
) -> ProtoCorpus:
    """Discover, read and parse every .proto file under proto_root.

    Pass files when the tree was already scanned. Files without a package
    declaration are skipped.
    """
    if files is None:
        files = find_proto_files(proto_root)
    texts = read_proto_files(files, jobs=jobs)

    parsed_files: List[ParsedProtoFile] = []
    for path in files:
        parsed = parse(texts[path], path)
        if parsed is not None:
            parsed_files.append(parsed)

    base = proto_base if proto_base is not None else str(Path(proto_root).parent)
    return build_corpus(parsed_files, msg_prefix=msg_prefix, proto_base=base)
