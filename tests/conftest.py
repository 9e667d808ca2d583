"""
Shared fixtures for the devmap test suite.

- Makes the repository root importable (so "devmap" resolves without an install)
- Zero-delay settings so pacing sleeps don't slow the suite down
- Helpers to build developer records and on-disk batch layouts
"""

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from devmap.errors import DataNotFound
from devmap.settings import Settings


def record(login, followers=0, location=None, lat=None, lng=None, **extra):
    rec = {
        "login": login,
        "name": extra.pop("name", login.title()),
        "avatar_url": f"https://avatars.example/{login}",
        "html_url": f"https://github.com/{login}",
        "location": location,
        "followers": followers,
    }
    if lat is not None:
        rec["coordinates"] = {"lat": lat, "lng": lng}
    rec.update(extra)
    return rec


def write_layout(root, batches=None, fallback=None):
    """Write data/index.json + batch files and/or developers-data.json under root."""
    root = Path(root)
    if batches is not None:
        data = root / "data"
        data.mkdir(parents=True, exist_ok=True)
        index = {
            "total_developers": sum(len(b) for b in batches),
            "total_batches": len(batches),
            "batches": [],
        }
        for n, devs in enumerate(batches):
            name = f"developers-batch-{n}.json"
            (data / name).write_text(json.dumps({"batch": n, "developers": devs}), encoding="utf-8")
            index["batches"].append({"batch": n, "file": name, "count": len(devs)})
        (data / "index.json").write_text(json.dumps(index), encoding="utf-8")
    if fallback is not None:
        (root / "developers-data.json").write_text(json.dumps({"developers": fallback}), encoding="utf-8")
    return root


@pytest.fixture
def settings():
    return Settings(initial_batch_delay=0, batch_delay=0, geocode_delay=0)


class FakeSource:
    """In-memory data source that records every path it was asked for."""

    def __init__(self, files):
        self.files = files
        self.requests = []

    async def fetch(self, relpath):
        self.requests.append(relpath)
        if relpath not in self.files:
            raise DataNotFound(relpath)
        value = self.files[relpath]
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self):
        pass
