#!/usr/bin/env python3
"""Inspect and maintain the minime vector memory from the command line.

The in-memory fallback only lives as long as this process, so the commands
are mostly useful with the Chroma backend enabled:

    MINIME_VECTOR_STORE_ENABLE_REMOTE=1 python scripts/memory_admin.py list
    python scripts/memory_admin.py add "cats purr when content" --meta topic=pets
    python scripts/memory_admin.py query "what do cats do" -k 2
    python scripts/memory_admin.py clear --yes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Dict, List

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from minime.config import CONFIG
from minime.core.vector_store import VectorMemory, create_vector_memory
from minime.log_setup import setup_logging


def _parse_meta(pairs: List[str]) -> Dict[str, str]:
    meta: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"metadata must be key=value, got {pair!r}")
        meta[key] = value
    return meta


async def _run(args: argparse.Namespace, memory: VectorMemory) -> int:
    kind = await memory.initialize()
    print(f"backend: {kind.value}", file=sys.stderr)

    if args.command == "add":
        record = await memory.add_vector(args.text, id=args.id, meta=_parse_meta(args.meta))
        print(json.dumps({"id": record.id, "text": record.text, "embedded": record.embedding is not None}))
    elif args.command == "query":
        for hit in await memory.query_text(args.text, args.k):
            print(json.dumps(hit.to_dict()))
    elif args.command == "list":
        for record in await memory.list_vectors():
            print(json.dumps({"id": record.id, "text": record.text, "meta": record.metadata}))
    elif args.command == "clear":
        if not args.yes:
            print("Refusing to clear without --yes", file=sys.stderr)
            return 1
        await memory.clear_vectors()
        print("cleared")
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="minime vector memory admin")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Store a document")
    add.add_argument("text")
    add.add_argument("--id", default=None)
    add.add_argument("--meta", action="append", default=[], help="key=value (repeatable)")

    query = sub.add_parser("query", help="Top-k similarity search by text")
    query.add_argument("text")
    query.add_argument("-k", type=int, default=CONFIG.vector_store.default_k)

    sub.add_parser("list", help="List stored documents")

    clear = sub.add_parser("clear", help="Delete every stored document")
    clear.add_argument("--yes", action="store_true")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    try:
        return asyncio.run(_run(args, create_vector_memory(CONFIG)))
    except (ValueError, argparse.ArgumentTypeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
