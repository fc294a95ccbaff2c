from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from protoc_eip712.config import GeneratorConfig, load_overrides
from protoc_eip712.errors import SchemaError
from protoc_eip712.field_order import validate_field_order
from protoc_eip712.generator.builder_generator import generate_builders
from protoc_eip712.generator.encoder_generator import generate_encoders
from protoc_eip712.generator.registry_generator import build_registry, render_registry
from protoc_eip712.loader import find_proto_files, load_corpus
from protoc_eip712.models import ProtoCorpus

REGISTRY_FILE = "registry_generated.py"
BUILDERS_FILE = "msg_generated.py"
ENCODERS_FILE = "msg_encoders_generated.py"


def generate_artifacts(corpus: ProtoCorpus, config: GeneratorConfig) -> Dict[str, str]:
    """Render all three artifacts in memory. Raises SchemaError on any schema problem."""
    entries = build_registry(corpus, config)
    validate_field_order({entry.type_url: entry for entry in entries})
    return {
        REGISTRY_FILE: render_registry(entries),
        BUILDERS_FILE: generate_builders(corpus, config),
        ENCODERS_FILE: generate_encoders(corpus, config),
    }


def write_artifacts(output_dir: str, artifacts: Dict[str, str]) -> List[str]:
    """Write every artifact next to its final name first, then move them into place."""
    os.makedirs(output_dir, exist_ok=True)
    staged: List[Tuple[str, str]] = []
    for file_name, source in sorted(artifacts.items()):
        final_path = os.path.join(output_dir, file_name)
        tmp_path = final_path + ".tmp"
        Path(tmp_path).write_text(source, encoding="utf-8")
        staged.append((tmp_path, final_path))

    written: List[str] = []
    for tmp_path, final_path in staged:
        os.replace(tmp_path, final_path)
        written.append(final_path)
    return written


def run(
    proto_root: str,
    output_dir: str,
    proto_base: Optional[str] = None,
    config: Optional[GeneratorConfig] = None,
    jobs: int = 1,
) -> List[str]:
    """Main pipeline: load, resolve, build registry, render, write."""
    config = config or GeneratorConfig()

    # 1. Find input files
    proto_files = find_proto_files(proto_root)
    if not proto_files:
        print(f"No .proto files found under {proto_root}")
        sys.exit(1)
    print(f"Found {len(proto_files)} proto file(s)")

    # 2. Parse all files into one corpus
    corpus = load_corpus(
        proto_root,
        proto_base=proto_base,
        msg_prefix=config.msg_prefix,
        jobs=jobs,
        files=proto_files,
    )
    print(f"  Parsed {len(corpus.messages)} message(s), {len(corpus.request_types)} request type(s)")

    # 3. Build and render everything before touching the output directory
    try:
        artifacts = generate_artifacts(corpus, config)
    except SchemaError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    # 4. Write
    written = write_artifacts(output_dir, artifacts)
    for f in written:
        print(f"  Generated: {f}")

    print("Done!")
    return written


def main():
    parser = argparse.ArgumentParser(
        description="Generate EIP-712 typed-data registry, message builders and encoders from .proto files",
    )
    parser.add_argument(
        "--proto-root",
        required=True,
        help="Directory scanned recursively for .proto files",
    )
    parser.add_argument(
        "--output-dir",
        required=True,
        help="Directory receiving the generated Python modules",
    )
    parser.add_argument(
        "--proto-base",
        help="Import root of the proto tree (defaults to the parent of --proto-root)",
    )
    parser.add_argument(
        "--pb2-package",
        default="",
        help="Python package prefix under which protoc generated the *_pb2 modules",
    )
    parser.add_argument(
        "--root-namespace",
        default="ault",
        help="Root proto namespace used to infer module names (default: ault)",
    )
    parser.add_argument(
        "--msg-prefix",
        default="Msg",
        help="Name prefix of transaction request messages (default: Msg)",
    )
    parser.add_argument(
        "--overrides",
        help="JSON file with 'registry' and/or 'field_defaults' override maps",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Number of threads used to read proto files",
    )

    args = parser.parse_args()
    config = GeneratorConfig(
        root_namespace=args.root_namespace,
        msg_prefix=args.msg_prefix,
        pb2_package=args.pb2_package,
    )
    if args.overrides:
        try:
            load_overrides(args.overrides, config)
        except (OSError, ValueError) as e:
            print(f"FATAL: {e}", file=sys.stderr)
            sys.exit(1)

    run(args.proto_root, args.output_dir, proto_base=args.proto_base, config=config, jobs=args.jobs)


if __name__ == "__main__":
    main()
