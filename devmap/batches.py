"""Split a consolidated developers-data.json into numbered batch files + index.json."""

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from .logs import setup_logging

_LOGGER = logging.getLogger("devmap.batches")

DEFAULT_BATCH_SIZE = 20


def split_developers(developers, batch_size=DEFAULT_BATCH_SIZE):
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [developers[i:i + batch_size] for i in range(0, len(developers), batch_size)]


def _write_json(path, payload):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def write_batches(source_file, out_dir, batch_size=DEFAULT_BATCH_SIZE):
    with open(source_file, encoding="utf-8") as f:
        developers = json.load(f).get("developers") or []
    _LOGGER.info("Found %d developers to convert to batches", len(developers))

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    now = datetime.now(timezone.utc).isoformat()

    batches = split_developers(developers, batch_size)
    summaries = []
    for n, batch in enumerate(batches):
        filename = f"developers-batch-{n}.json"
        _write_json(out_dir / filename, {
            "batch": n,
            "generated_at": now,
            "developers": batch,
            "total_in_batch": len(batch),
        })
        summaries.append({"batch": n, "file": filename, "count": len(batch), "generated_at": now})
        _LOGGER.info("Created %s with %d developers", filename, len(batch))

    index = {
        "total_developers": len(developers),
        "total_batches": len(batches),
        "batches": summaries,
        "last_updated": now,
    }
    _write_json(out_dir / "index.json", index)
    _LOGGER.info("Created %s with %d batch references", out_dir / "index.json", len(batches))
    return index


def main(argv=None):
    parser = argparse.ArgumentParser(description="Split developer data into batch files.")
    parser.add_argument("--source", default="developers-data.json", help="Consolidated data file.")
    parser.add_argument("--out", default="data", help="Output directory.")
    parser.add_argument("--size", type=int, default=DEFAULT_BATCH_SIZE, help="Developers per batch.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs.")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    write_batches(args.source, args.out, args.size)
    return 0
