#!/usr/bin/env python3
"""Dump everything pyshelf can read for one user.

Fetches every collection through the repositories (so the cache and
coalescing paths are exercised) and prints the parsed entities, either as
a readable listing or as JSON.

Usage
-----
Set environment variables and run::

    export SHELF_BASE_URL="https://store.example.com/v1"
    export SHELF_API_TOKEN="..."
    python scripts/dump_library.py USER_ID

Options::

    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --bin                Include soft-deleted books
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyshelf import ShelfClient, ShelfConfig  # noqa: E402
from pyshelf.models import Entity  # noqa: E402


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _describe(entity: Entity) -> str:
    label = entity.get("title") or entity.get("name") or ""
    return f"  {entity.id:<24} {label}"


async def dump_library(client: ShelfClient, user_id: str, *, include_bin: bool) -> dict[str, list[Entity]]:
    books = await client.books.get_active(user_id)
    genres = await client.genres.get_all_sorted(user_id)
    series = await client.series.get_all_sorted(user_id)
    wishlist = await client.wishlist.get_all(user_id)
    result: dict[str, list[Entity]] = {
        "books": list(books),
        "genres": list(genres),
        "series": list(series),
        "wishlist": list(wishlist),
    }
    if include_bin:
        result["bin"] = list(await client.books.get_deleted(user_id))
    return result


async def main() -> None:
    parser = argparse.ArgumentParser(description="Dump a user's library")
    parser.add_argument("user_id", help="Owner of the collections to dump")
    parser.add_argument("--json", dest="json_mode", action="store_true", help="Output as JSON")
    parser.add_argument("--output", "-o", help="Write output to this file")
    parser.add_argument("--bin", action="store_true", help="Include soft-deleted books")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = ShelfConfig.from_env()
    async with ShelfClient(config) as client:
        collections = await dump_library(client, args.user_id, include_bin=args.bin)

    payload: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "user_id": args.user_id,
        **{name: [entity.to_record() for entity in items] for name, items in collections.items()},
    }

    if args.json_mode:
        text = json.dumps(payload, indent=2, default=str, ensure_ascii=False)
    else:
        out = [_section("pyshelf dump_library"), f"  user_id   : {args.user_id}"]
        for name, items in collections.items():
            out.append(_section(f"{name.upper()} ({len(items)})"))
            out.extend(_describe(entity) for entity in items)
        text = "\n".join(out)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Output written to {args.output}", file=sys.stderr)
    else:
        print(text)


if __name__ == "__main__":
    asyncio.run(main())
