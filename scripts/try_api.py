#!/usr/bin/env python3
"""
Manually try the docsym Python API against real Doxygen output.

Indexes a directory of ``search/*.js`` tables, prints stats, runs a few
one-shot searches and replays a typed query through an incremental
session so you can watch stale results being discarded.

Usage:
  python scripts/try_api.py path/to/html/search
  python scripts/try_api.py path/to/html/search --index-only
  python scripts/try_api.py path/to/html/search --type "make_persistent"

Requirements:
  - docsym installed (pip install -e . from project root)
"""

import asyncio
import sys
from pathlib import Path

# Use src layout so "docsym" is importable when run from the repo
_src = Path(__file__).resolve().parent.parent / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))


async def _replay_typing(client, root: Path, word: str) -> None:
    from docsym import SessionEvent

    def show(displayed):
        if displayed.no_matches:
            print(f"    [gen {displayed.generation}] '{displayed.query}': no matches")
        elif displayed.hits:
            names = ", ".join(h.qualified_path for h in displayed.hits[:3])
            print(f"    [gen {displayed.generation}] '{displayed.query}': {names}")

    session = client.session(path=root, on_display=show)
    events = [SessionEvent.input(word[:i], seq=i) for i in range(1, len(word) + 1)]
    await session.run(events)
    await session.aclose()


def main() -> None:
    import argparse
    from docsym import Docsym, DocsymConfig, DocsymError

    parser = argparse.ArgumentParser(
        description="Try the docsym API: index Doxygen search tables and run example queries.",
    )
    parser.add_argument("source", type=Path, help="Doxygen html/search directory (or a .jsonl file)")
    parser.add_argument("--root", type=Path, default=Path("."), help="Where the .docsym/ sidecar goes")
    parser.add_argument("--index-only", action="store_true", help="Only run index(); skip searches")
    parser.add_argument("--type", dest="typed", default="mutex", help="Word to replay keystroke by keystroke")
    args = parser.parse_args()

    client = Docsym(config=DocsymConfig(max_results=10, debounce_seconds=0.05))
    root = args.root.resolve()

    # ── Index ─────────────────────────────────────────────────────
    print("=" * 60)
    print("  STEP 1: Index")
    print("=" * 60)
    try:
        result = client.index(args.source, path=root, show_progress=True)
    except DocsymError as e:
        print(f"  Error: {e}")
        sys.exit(1)
    print(f"\n  Snapshot {result.snapshot_version}: {result.records_indexed} records, "
          f"{result.buckets} buckets, {result.records_rejected} rejected.")

    if args.index_only:
        print("\n  (--index-only: skipping search examples)")
        return

    # ── Stats ────────────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("  STEP 2: Stats")
    print("=" * 60)
    for key, value in client.stats(root).items():
        print(f"  {key}: {value}")

    # ── One-shot search ──────────────────────────────────────────
    print("\n" + "=" * 60)
    print("  STEP 3: Search")
    print("=" * 60)
    for q in ("mutex", "obj mutex", "alloc", "zzz"):
        print(f"\n  Query: \"{q}\"")
        hits = client.search(q, path=root, max_results=5)
        for i, h in enumerate(hits, 1):
            print(f"    {i}. {h.label}  [{h.kind}]  {h.qualified_path}")
        if not hits:
            print("    (no matches)")

    # ── Incremental session ──────────────────────────────────────
    print("\n" + "=" * 60)
    print(f"  STEP 4: Typing \"{args.typed}\"")
    print("=" * 60)
    asyncio.run(_replay_typing(client, root, args.typed))


if __name__ == "__main__":
    main()
